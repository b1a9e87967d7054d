"""Renderers for the three watch presentation modes."""

from __future__ import annotations

from typing import Sequence

from rich.console import Console, Group
from rich.live import Live
from rich.markup import escape
from rich.rule import Rule
from rich.text import Text

from .logparse import LogLine
from .output import (
    CYAN,
    DIM,
    GREEN,
    RED,
    YELLOW,
    SEVERITY_STYLES,
    console as default_console,
    faint,
    status_icon,
    status_text,
)
from .session import WatchMode, WatchOutcome, WatchView
from .snapshot import StatusCategory


RESERVED_ROWS = 3  # header, rule, footer
MIN_LOG_ROWS = 3
SPINNER_FRAMES = ("|", "/", "-", "\\")


# ── Viewport ─────────────────────────────────────────────────────

def fit_line(line: LogLine, width: int) -> Text:
    """Style a log line and cut it to ``width`` cells with an ellipsis."""
    text = Text.from_ansi(
        line.display,
        style=SEVERITY_STYLES[line.severity],
        no_wrap=True,
        overflow="ellipsis",
    )
    width = max(width, 1)
    if text.cell_len > width:
        text.truncate(width, overflow="ellipsis")
    return text


def viewport(lines: Sequence[LogLine], width: int, height: int) -> list[Text]:
    """The last ``height`` lines fitted to ``width``, padded with blank rows."""
    if height <= 0:
        return []
    rows = [fit_line(line, width) for line in list(lines)[-height:]]
    rows.extend(Text("") for _ in range(height - len(rows)))
    return rows


# ── Summaries ────────────────────────────────────────────────────

def _job_label(view: WatchView) -> str:
    snapshot = view.snapshot
    if snapshot is None:
        return f"run {escape(view.session.run_id)}"
    return f"[{CYAN}]{escape(snapshot.job_name)}[/] {escape(snapshot.id)}  #{escape(snapshot.number)}"


def print_summary(console: Console, outcome: WatchOutcome, view: WatchView):
    """Final lines for every outcome except a failure, which has its own report."""
    session = view.session
    snapshot = view.snapshot
    quiet = session.mode is WatchMode.QUIET

    if outcome is WatchOutcome.SUCCEEDED:
        console.print(f"[{GREEN}]✓[/] {_job_label(view)} succeeded")
        if not quiet and snapshot is not None and snapshot.web_url:
            console.print()
            console.print(f"View details: {escape(snapshot.web_url)}")
    elif outcome is WatchOutcome.CANCELED:
        number = escape(snapshot.number) if snapshot is not None else "?"
        console.print(f"[{YELLOW}]○[/] Build {escape(session.run_id)}  #{number} cancelled")
    elif outcome is WatchOutcome.DETACHED:
        console.print(faint("Interrupted. Run continues in background."))
        console.print(f"{faint('Hint:')} Resume watching: {escape(session.resume_command())}")
    elif outcome is WatchOutcome.TIMED_OUT:
        console.print(f"[{RED}]✗[/] Timeout exceeded")
        console.print(f"{faint('Hint:')} Resume watching: {escape(session.resume_command())}")


def _emit(console: Console, markup: str):
    console.print(markup, end="", soft_wrap=True)


def _carriage_return(console: Console):
    console.file.write("\r")
    console.file.flush()


# ── Renderers ────────────────────────────────────────────────────

class Renderer:
    """No-op base; the controller calls these from its own thread only."""

    animated = False

    def __init__(self, console: Console | None = None):
        self.console = console or default_console

    def start(self, view: WatchView):
        pass

    def update(self, view: WatchView):
        pass

    def resize(self):
        pass

    def stop(self):
        pass

    def finish(self, outcome: WatchOutcome, view: WatchView):
        self.console.print()
        print_summary(self.console, outcome, view)


class InteractiveRenderer(Renderer):
    """Full-screen view: header, rule, tail of the log, footer."""

    animated = True

    def __init__(self, console: Console | None = None):
        super().__init__(console)
        self._live: Live | None = None

    def start(self, view: WatchView):
        self._live = Live(
            self.compose(view),
            console=self.console,
            screen=True,
            auto_refresh=False,
        )
        self._live.start()

    def update(self, view: WatchView):
        if self._live is not None:
            self._live.update(self.compose(view), refresh=True)

    def resize(self):
        if self._live is not None:
            self._live.refresh()

    def stop(self):
        if self._live is not None:
            self._live.stop()
            self._live = None

    def header(self, view: WatchView) -> str:
        snapshot = view.snapshot
        if snapshot is None or view.category is None:
            return f"[{YELLOW}]*[/] Refreshing..."
        header = (
            f"{status_icon(view.category)} [bold]{escape(snapshot.job_name)}[/] {escape(snapshot.id)}  "
            f"#{escape(snapshot.number)} {faint(snapshot.web_url)} · {status_text(view.category)}"
        )
        if view.percent:
            header += f" ({view.percent}%)"
        return header

    def footer(self, view: WatchView) -> Text:
        footer = Text("q quit", style=DIM)
        if not view.finished:
            footer.append(" " + SPINNER_FRAMES[view.frame % len(SPINNER_FRAMES)], style=DIM)
        if view.log_unavailable:
            footer.append(" · log unavailable", style=DIM)
        return footer

    def compose(self, view: WatchView) -> Group:
        width, height = self.console.size
        rows = max(height - RESERVED_ROWS, MIN_LOG_ROWS)

        header = Text.from_markup(self.header(view), overflow="ellipsis")
        header.no_wrap = True
        if header.cell_len > width:
            header.truncate(width, overflow="ellipsis")

        if len(view.logs) == 0:
            log_rows = [Text("Waiting for logs...", style=DIM)]
            log_rows.extend(Text("") for _ in range(rows - 1))
        else:
            log_rows = viewport(view.logs.tail(rows), width - 1, rows)
        return Group(header, Rule(style=DIM), *log_rows, self.footer(view))


class QuietRenderer(Renderer):
    """Only state-change deltas: Queued, Running, N%, +Nm overtime."""

    def __init__(self, console: Console | None = None):
        super().__init__(console)
        self._announced = False
        self._last_category: StatusCategory | None = None
        self._last_percent = 0
        self._complete_at: float | None = None
        self._last_overtime = 0

    def update(self, view: WatchView):
        snapshot = view.snapshot
        category = view.category
        if snapshot is None or category is None:
            return
        if not self._announced:
            self.console.print(f"Watching: {escape(snapshot.web_url)}")
            self._announced = True

        if category is not self._last_category:
            if category is StatusCategory.QUEUED:
                _emit(self.console, "Queued")
            elif category is StatusCategory.RUNNING:
                _carriage_return(self.console)
                _emit(self.console, "Running")
            self._last_category = category

        if category is not StatusCategory.RUNNING:
            return
        percent = view.percent or 0
        if percent > self._last_percent:
            _emit(self.console, f"... {percent}%")
            self._last_percent = percent
            if percent == 100:
                self._complete_at = view.now
        if percent == 100 and self._complete_at is not None:
            overtime = int((view.now - self._complete_at) // 60)
            if overtime > self._last_overtime:
                _emit(self.console, f"... +{overtime}m")
                self._last_overtime = overtime


class PlainRenderer(Renderer):
    """One status line rewritten in place on every status fetch."""

    def __init__(self, console: Console | None = None):
        super().__init__(console)
        self._last_snapshot = None

    def start(self, view: WatchView):
        self.console.print(
            f"[{CYAN}]>[/] Watching run #{escape(view.session.run_id)}... "
            f"{faint('(Ctrl-C to stop watching)')}"
        )

    def status_line(self, view: WatchView) -> str:
        snapshot = view.snapshot
        category = view.category
        progress = f" ({view.percent}%)" if view.percent else ""
        return (
            f"{status_icon(category)} [{CYAN}]{escape(snapshot.job_name)}[/] {escape(snapshot.id)}  "
            f"#{escape(snapshot.number)} {faint(snapshot.web_url)} · {status_text(category)}{progress}    "
        )

    def update(self, view: WatchView):
        if view.snapshot is None or view.category is None or view.snapshot is self._last_snapshot:
            return
        self._last_snapshot = view.snapshot
        _carriage_return(self.console)
        _emit(self.console, self.status_line(view))

    def finish(self, outcome: WatchOutcome, view: WatchView):
        self.console.print()
        super().finish(outcome, view)


def make_renderer(mode: WatchMode, console: Console | None = None) -> Renderer:
    renderers = {
        WatchMode.INTERACTIVE: InteractiveRenderer,
        WatchMode.QUIET: QuietRenderer,
        WatchMode.PLAIN: PlainRenderer,
    }
    return renderers[mode](console)
