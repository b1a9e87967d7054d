"""Thin REST client for the CI server: run status, run log, failure details."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .config import DEFAULT_HTTP_TIMEOUT
from .errors import FatalFetchError, RunwatchError, TransientFetchError
from .snapshot import BuildSnapshot, snapshot_from_payload

logger = logging.getLogger(__name__)


class RunClient:
    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        *,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.base_url = base_url.rstrip("/")
        self._http = httpx.Client(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def close(self):
        self._http.close()

    def __enter__(self) -> "RunClient":
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _get_json(self, path: str, params: dict[str, Any] | None = None) -> tuple[bool, dict[str, Any]]:
        logger.debug("GET %s %s", path, params or "")
        try:
            response = self._http.get(path, params=params)
        except httpx.HTTPError as exc:
            return False, {"error": f"http_get_failed: {exc}"}
        try:
            data = response.json()
        except ValueError:
            data = {"error": response.text}
        if response.status_code >= 300:
            return False, {
                "error": f"http_status_{response.status_code}",
                "detail": data,
            }
        return True, data if isinstance(data, dict) else {"result": data}

    def fetch_status(self, run_id: str) -> BuildSnapshot:
        ok, data = self._get_json(f"/app/rest/builds/id:{run_id}")
        if not ok:
            raise FatalFetchError(run_id, _describe(data))
        return snapshot_from_payload(data, run_id)

    def fetch_log(self, run_id: str) -> str:
        try:
            response = self._http.get(
                "/downloadBuildLog.html",
                params={"buildId": run_id},
                headers={"Accept": "text/plain"},
            )
        except httpx.HTTPError as exc:
            raise TransientFetchError(f"failed to get build log: {exc}") from exc
        if response.status_code != 200:
            raise TransientFetchError(f"failed to get build log: status {response.status_code}")
        return response.text

    def fetch_problems(self, run_id: str) -> list[dict[str, Any]]:
        ok, data = self._get_json(
            "/app/rest/problemOccurrences",
            params={
                "locator": f"build:(id:{run_id})",
                "fields": "count,problemOccurrence(id,type,identity,details)",
            },
        )
        if not ok:
            raise RunwatchError(f"failed to get build problems: {_describe(data)}")
        problems = data.get("problemOccurrence")
        return [item for item in problems if isinstance(item, dict)] if isinstance(problems, list) else []

    def fetch_failed_tests(self, run_id: str, limit: int) -> tuple[int, list[dict[str, Any]]]:
        """Return (failed test count, first ``limit`` failed test occurrences)."""
        locator = f"build:(id:{run_id}),status:FAILURE"
        ok, summary = self._get_json(
            "/app/rest/testOccurrences",
            params={"locator": locator, "fields": "count,passed,failed,ignored"},
        )
        if not ok:
            raise RunwatchError(f"failed to get build tests: {_describe(summary)}")
        failed = summary.get("failed")
        failed_count = int(failed) if isinstance(failed, int) else 0
        if failed_count == 0:
            return 0, []

        ok, details = self._get_json(
            "/app/rest/testOccurrences",
            params={
                "locator": f"{locator},count:{limit}",
                "fields": "testOccurrence(id,name,status,duration,details,newFailure,firstFailed(build(number)))",
            },
        )
        if not ok:
            raise RunwatchError(f"failed to get build tests: {_describe(details)}")
        occurrences = details.get("testOccurrence")
        tests = [item for item in occurrences if isinstance(item, dict)] if isinstance(occurrences, list) else []
        return failed_count, tests


def _describe(data: dict[str, Any]) -> str:
    error = str(data.get("error") or "request failed")
    detail = data.get("detail")
    if isinstance(detail, dict):
        messages = [
            str(item.get("message", "")).strip()
            for item in detail.get("errors", [])
            if isinstance(item, dict)
        ] if isinstance(detail.get("errors"), list) else []
        message = "; ".join(m for m in messages if m) or str(detail.get("error", "")).strip()
        if message:
            return f"{error}: {message[:200]}"
    return error
