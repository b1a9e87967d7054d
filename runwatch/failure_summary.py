"""Breakdown printed once a watched run finishes with a failure."""

from __future__ import annotations

import logging
from typing import Any

from rich.console import Console
from rich.markup import escape

from .client import RunClient
from .config import MAX_FAILED_TESTS_TO_SHOW
from .errors import RunwatchError
from .output import DIM, RED, YELLOW, console as default_console, faint, format_duration

logger = logging.getLogger(__name__)

FAILED_TESTS_PROBLEM = "TC_FAILED_TESTS"


def _test_line(test: dict[str, Any]) -> str:
    line = f"  [{RED}]•[/] {escape(str(test.get('name', '')))}"
    duration = test.get("duration")
    if isinstance(duration, (int, float)) and duration > 0:
        line += " " + faint(f"({format_duration(duration / 1000)})")
    if test.get("newFailure"):
        line += f" [{YELLOW}](new)[/]"
    else:
        first_failed = test.get("firstFailed") if isinstance(test.get("firstFailed"), dict) else {}
        build = first_failed.get("build") if isinstance(first_failed.get("build"), dict) else {}
        if build.get("number"):
            line += " " + faint(f"(failing since #{build['number']})")
    return line


def report_failure_summary(
    client: RunClient,
    run_id: str,
    number: str,
    web_url: str,
    status_message: str,
    *,
    console: Console | None = None,
):
    """Print problems and failed tests of a failed run. Never raises on fetch errors."""
    out = console or default_console
    header = f"[{RED}]✗[/] Build {escape(run_id)}  #{escape(number)} failed"
    if status_message:
        header += ": " + escape(status_message)
    out.print()
    out.print(header)

    failed_count = 0
    tests: list[dict[str, Any]] = []
    tests_ok = False
    try:
        failed_count, tests = client.fetch_failed_tests(run_id, MAX_FAILED_TESTS_TO_SHOW)
        tests_ok = True
    except RunwatchError as exc:
        logger.debug("failed to fetch build tests for %s: %s", run_id, exc)
    show_tests = tests_ok and failed_count > 0

    try:
        problems = client.fetch_problems(run_id)
    except RunwatchError as exc:
        logger.debug("failed to fetch build problems for %s: %s", run_id, exc)
        problems = []

    shown = [p for p in problems if not (show_tests and p.get("type") == FAILED_TESTS_PROBLEM)]
    if shown:
        out.print()
        out.print("Problems:")
        for problem in shown:
            detail = str(problem.get("details") or problem.get("identity") or "").strip()
            out.print(f"  [{RED}]•[/] {escape(detail)}")

    if show_tests:
        out.print()
        out.print(f"Failed tests ({failed_count}):")
        for test in tests:
            out.print(_test_line(test))
            details = str(test.get("details") or "").strip()
            for detail_line in details.splitlines():
                out.print(f"    [{DIM}]{escape(detail_line)}[/]")
        if failed_count > len(tests):
            out.print("  " + faint(f"... and {failed_count - len(tests)} more"))

    out.print()
    out.print(f"View details: {escape(web_url)}")
