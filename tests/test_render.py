"""Tests for the viewport, the three renderers and the final summaries."""

from __future__ import annotations

import io

from rich.console import Console
from rich.text import Text

from runwatch.logparse import LogBuffer, LogLine, Severity
from runwatch.render import (
    InteractiveRenderer,
    PlainRenderer,
    QuietRenderer,
    fit_line,
    make_renderer,
    print_summary,
    viewport,
)
from runwatch.session import WatchMode, WatchOutcome, WatchSession, WatchView
from runwatch.snapshot import BuildSnapshot, StatusCategory

URL = "http://ci.example/build/42"


def _console(width: int = 200, height: int = 25) -> Console:
    return Console(file=io.StringIO(), width=width, height=height, force_terminal=False, color_system=None)


def _snap(category: StatusCategory, percent: int = 0) -> BuildSnapshot:
    return BuildSnapshot(id="42", number="17", job_name="Build", category=category, percent=percent, web_url=URL)


def _view(
    category: StatusCategory | None = None,
    percent: int | None = None,
    *,
    mode: WatchMode = WatchMode.PLAIN,
    logs: LogBuffer | None = None,
    now: float = 0.0,
    frame: int = 0,
    log_unavailable: bool = False,
) -> WatchView:
    return WatchView(
        session=WatchSession(run_id="42", mode=mode),
        snapshot=_snap(category, percent or 0) if category is not None else None,
        category=category,
        percent=percent,
        logs=logs or LogBuffer(),
        frame=frame,
        log_unavailable=log_unavailable,
        now=now,
    )


def _lines(count: int) -> list[LogLine]:
    return [LogLine(f"10:00:{i:02d}", Severity.INFO, f"line {i}") for i in range(count)]


# ── Viewport ─────────────────────────────────────────────────────


def test_viewport_shows_the_tail():
    rows = viewport(_lines(10), 40, 3)
    assert [row.plain for row in rows] == ["[10:00:07] line 7", "[10:00:08] line 8", "[10:00:09] line 9"]


def test_viewport_pads_short_logs():
    rows = viewport(_lines(2), 40, 5)
    assert len(rows) == 5
    assert [row.plain for row in rows[2:]] == ["", "", ""]


def test_viewport_zero_height():
    assert viewport(_lines(3), 40, 0) == []


def test_fit_line_truncates_with_ellipsis():
    line = LogLine("10:00:00", Severity.WARNING, "x" * 100)
    text = fit_line(line, 20)
    assert text.cell_len <= 20
    assert text.plain.endswith("…")


def test_fit_line_keeps_ansi_colors_out_of_the_width():
    line = LogLine("", Severity.PLAIN, "\x1b[31mred\x1b[0m text")
    text = fit_line(line, 40)
    assert text.plain == "red text"


# ── Interactive ──────────────────────────────────────────────────


def test_compose_fills_the_terminal_height():
    renderer = InteractiveRenderer(_console(width=80, height=10))
    logs = LogBuffer()
    logs.ingest("".join(f"[10:00:{i:02d}]i: line {i}\n" for i in range(20)))

    group = renderer.compose(_view(StatusCategory.RUNNING, 40, logs=logs))

    assert len(group.renderables) == 10
    log_rows = group.renderables[2:-1]
    assert [row.plain for row in log_rows][-1] == "[10:00:19] line 19"
    assert all(row.cell_len < 80 for row in log_rows)


def test_compose_without_logs_shows_placeholder():
    renderer = InteractiveRenderer(_console(width=80, height=10))
    group = renderer.compose(_view())
    assert isinstance(group.renderables[0], Text)
    assert group.renderables[0].plain.endswith("Refreshing...")
    assert group.renderables[2].plain == "Waiting for logs..."


def test_header_truncated_to_width():
    renderer = InteractiveRenderer(_console(width=30, height=10))
    group = renderer.compose(_view(StatusCategory.RUNNING, 40))
    assert group.renderables[0].cell_len <= 30


def test_header_includes_status_and_percent():
    renderer = InteractiveRenderer(_console())
    header = Text.from_markup(renderer.header(_view(StatusCategory.RUNNING, 40))).plain
    assert header == f"● Build 42  #17 {URL} · Running (40%)"


def test_footer_spinner_and_log_warning():
    renderer = InteractiveRenderer(_console())
    assert renderer.footer(_view(StatusCategory.RUNNING, frame=1)).plain == "q quit /"
    assert renderer.footer(_view(StatusCategory.SUCCEEDED)).plain == "q quit"
    footer = renderer.footer(_view(StatusCategory.RUNNING, log_unavailable=True)).plain
    assert footer.endswith("· log unavailable")


# ── Quiet ────────────────────────────────────────────────────────


def test_quiet_prints_only_deltas():
    console = _console()
    renderer = QuietRenderer(console)
    views = [
        _view(StatusCategory.QUEUED, mode=WatchMode.QUIET),
        _view(StatusCategory.QUEUED, mode=WatchMode.QUIET),
        _view(StatusCategory.RUNNING, 0, mode=WatchMode.QUIET),
        _view(StatusCategory.RUNNING, 50, mode=WatchMode.QUIET),
        _view(StatusCategory.RUNNING, 50, mode=WatchMode.QUIET),
        _view(StatusCategory.RUNNING, 100, mode=WatchMode.QUIET, now=100.0),
        _view(StatusCategory.RUNNING, 100, mode=WatchMode.QUIET, now=130.0),
        _view(StatusCategory.RUNNING, 100, mode=WatchMode.QUIET, now=230.0),
    ]
    for view in views:
        renderer.update(view)

    assert console.file.getvalue() == f"Watching: {URL}\nQueued\rRunning... 50%... 100%... +2m"


def test_quiet_ignores_views_without_snapshot():
    console = _console()
    QuietRenderer(console).update(_view(mode=WatchMode.QUIET))
    assert console.file.getvalue() == ""


# ── Plain ────────────────────────────────────────────────────────


def test_plain_status_line():
    renderer = PlainRenderer(_console())
    line = Text.from_markup(renderer.status_line(_view(StatusCategory.RUNNING, 50))).plain
    assert line.startswith(f"● Build 42  #17 {URL} · Running (50%)")


def test_plain_rewrites_line_only_for_new_snapshots():
    console = _console()
    renderer = PlainRenderer(console)
    renderer.start(_view())
    view = _view(StatusCategory.RUNNING, 10)
    renderer.update(view)
    renderer.update(view)

    output = console.file.getvalue()
    assert output.startswith("> Watching run #42... (Ctrl-C to stop watching)\n")
    assert output.count("\r") == 1


def test_make_renderer_by_mode():
    assert isinstance(make_renderer(WatchMode.INTERACTIVE, _console()), InteractiveRenderer)
    assert isinstance(make_renderer(WatchMode.QUIET, _console()), QuietRenderer)
    assert isinstance(make_renderer(WatchMode.PLAIN, _console()), PlainRenderer)


# ── Summaries ────────────────────────────────────────────────────


def test_success_summary_includes_details_link():
    console = _console()
    print_summary(console, WatchOutcome.SUCCEEDED, _view(StatusCategory.SUCCEEDED))
    assert console.file.getvalue() == f"✓ Build 42  #17 succeeded\n\nView details: {URL}\n"


def test_success_summary_quiet_is_one_line():
    console = _console()
    print_summary(console, WatchOutcome.SUCCEEDED, _view(StatusCategory.SUCCEEDED, mode=WatchMode.QUIET))
    assert console.file.getvalue() == "✓ Build 42  #17 succeeded\n"


def test_timeout_summary_has_resume_hint():
    console = _console()
    print_summary(console, WatchOutcome.TIMED_OUT, _view(StatusCategory.RUNNING, mode=WatchMode.INTERACTIVE))
    assert console.file.getvalue() == "✗ Timeout exceeded\nHint: Resume watching: runwatch watch 42 --logs\n"


def test_failed_outcome_prints_nothing():
    console = _console()
    print_summary(console, WatchOutcome.FAILED, _view(StatusCategory.FAILED))
    assert console.file.getvalue() == ""
