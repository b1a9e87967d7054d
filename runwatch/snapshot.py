"""Run status snapshots built from the REST payload of a single run."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class StatusCategory(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"
    UNKNOWN = "unknown"

    @property
    def terminal(self) -> bool:
        return self in TERMINAL_CATEGORIES


TERMINAL_CATEGORIES = frozenset({
    StatusCategory.SUCCEEDED,
    StatusCategory.FAILED,
    StatusCategory.CANCELED,
})


@dataclass(frozen=True)
class BuildSnapshot:
    """Status of the watched run as of one successful status fetch."""

    id: str
    number: str
    job_name: str
    category: StatusCategory
    percent: int = 0
    status_message: str = ""
    web_url: str = ""

    @property
    def terminal(self) -> bool:
        return self.category.terminal


def category_for(state: str | None, status: str | None) -> StatusCategory:
    clean_state = str(state or "").strip().lower()
    if clean_state == "queued":
        return StatusCategory.QUEUED
    if clean_state == "running":
        return StatusCategory.RUNNING
    if clean_state != "finished":
        return StatusCategory.UNKNOWN

    clean_status = str(status or "").strip().upper()
    if clean_status == "SUCCESS":
        return StatusCategory.SUCCEEDED
    if clean_status in ("FAILURE", "ERROR"):
        return StatusCategory.FAILED
    # Stopped and removed runs finish with UNKNOWN or no status at all.
    return StatusCategory.CANCELED


def _clamp_percent(value: Any) -> int:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return 0
    return max(0, min(100, int(value)))


def snapshot_from_payload(payload: dict[str, Any], run_id: str = "") -> BuildSnapshot:
    build_type = payload.get("buildType") if isinstance(payload.get("buildType"), dict) else {}
    job_name = str(build_type.get("name") or payload.get("buildTypeId") or "").strip()
    return BuildSnapshot(
        id=str(payload.get("id") or run_id).strip(),
        number=str(payload.get("number") or "").strip(),
        job_name=job_name,
        category=category_for(payload.get("state"), payload.get("status")),
        percent=_clamp_percent(payload.get("percentageComplete")),
        status_message=str(payload.get("statusText") or "").strip(),
        web_url=str(payload.get("webUrl") or "").strip(),
    )
