"""
Watch controller.

A single-threaded reducer over ``EventKind``. Fetch tasks post their results
to one queue; ticks, frames and the session timeout are synthesized from
deadlines. All state changes and every draw happen on the controller thread.
"""

from __future__ import annotations

import logging
import queue
import signal
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator

from .config import LOG_FAILURE_WARN_AFTER, SPINNER_TICK
from .events import Event, EventKind, LogResult
from .keys import KeyListener
from .logparse import LogBuffer
from .poller import Poller, RunSource
from .render import Renderer
from .session import OUTCOME_FOR_RESULT, WatchMode, WatchOutcome, WatchSession, WatchView
from .state import StateTracker

logger = logging.getLogger(__name__)

FailureReporter = Callable[[str, str, str, str], None]


class WatchController:
    def __init__(
        self,
        session: WatchSession,
        source: RunSource,
        renderer: Renderer,
        *,
        failure_reporter: FailureReporter | None = None,
        clock: Callable[[], float] = time.monotonic,
        attach_terminal: bool = True,
    ):
        self.session = session
        self.renderer = renderer
        self.tracker = StateTracker()
        self.logs = LogBuffer()
        self.frame = 0
        self.log_failures = 0

        self._report_failure = failure_reporter
        self._clock = clock
        self._attach_terminal = attach_terminal
        # SimpleQueue.put is reentrant, so signal handlers may post to it.
        self._events: queue.SimpleQueue[Event] = queue.SimpleQueue()
        self._poller = Poller(source, session.run_id, self.post)
        self._tick = 0
        self._pending = 0
        self._next_poll_at: float | None = None
        self._next_frame_at = 0.0
        self._deadline: float | None = None

        self._handlers: dict[EventKind, Callable[[Event], WatchOutcome | None]] = {
            EventKind.TICK: self._on_tick,
            EventKind.STATUS_ARRIVED: self._on_status,
            EventKind.LOG_ARRIVED: self._on_log,
            EventKind.FATAL_ERROR: self._on_fatal,
            EventKind.USER_INTERRUPT: self._on_interrupt,
            EventKind.TIMEOUT_ELAPSED: self._on_timeout,
            EventKind.TERMINAL_RESIZED: self._on_resize,
            EventKind.FRAME: self._on_frame,
        }
        missing = set(EventKind) - set(self._handlers)
        if missing:
            raise RuntimeError(f"unhandled event kinds: {sorted(kind.value for kind in missing)}")

    # ── Public ───────────────────────────────────────────────────

    def post(self, event: Event):
        self._events.put(event)

    def interrupt(self):
        self.post(Event(EventKind.USER_INTERRUPT))

    def view(self) -> WatchView:
        return WatchView(
            session=self.session,
            snapshot=self.tracker.snapshot,
            category=self.tracker.category,
            percent=self.tracker.percent,
            logs=self.logs,
            frame=self.frame,
            log_unavailable=self.log_failures >= LOG_FAILURE_WARN_AFTER,
            now=self._clock(),
        )

    def run(self) -> WatchOutcome:
        """Watch until the run finishes, the user detaches or the timeout elapses."""
        started = self._clock()
        if self.session.timeout:
            self._deadline = started + self.session.timeout
        self._next_frame_at = started + SPINNER_TICK

        outcome: WatchOutcome | None = None
        with self._terminal():
            try:
                self.renderer.start(self.view())
                self._poll()
                while outcome is None:
                    event = self._next_event()
                    outcome = self._handlers[event.kind](event)
            finally:
                self._poller.close()
                self.renderer.stop()

        self.renderer.finish(outcome, self.view())
        snapshot = self.tracker.snapshot
        if outcome is WatchOutcome.FAILED and self._report_failure is not None and snapshot is not None:
            self._report_failure(self.session.run_id, snapshot.number, snapshot.web_url, snapshot.status_message)
        return outcome

    # ── Scheduling ───────────────────────────────────────────────

    def _poll(self):
        self._tick += 1
        self._pending += self._poller.dispatch(self._tick)
        self._next_poll_at = self._clock() + self.session.interval

    def _timers(self) -> list[tuple[float, EventKind]]:
        # Earlier entries win ties: the timeout beats a due tick.
        if self.tracker.finished:
            return []
        timers: list[tuple[float, EventKind]] = []
        if self._deadline is not None:
            timers.append((self._deadline, EventKind.TIMEOUT_ELAPSED))
        if self._pending == 0 and self._next_poll_at is not None:
            timers.append((self._next_poll_at, EventKind.TICK))
        if self.renderer.animated:
            timers.append((self._next_frame_at, EventKind.FRAME))
        return timers

    def _next_event(self) -> Event:
        timers = self._timers()
        if not timers:
            return self._events.get()
        due_at, kind = min(timers, key=lambda timer: timer[0])
        try:
            return self._events.get(timeout=max(0.0, due_at - self._clock()))
        except queue.Empty:
            return Event(kind)

    def _draw(self):
        self.renderer.update(self.view())

    def _settled_outcome(self) -> WatchOutcome | None:
        if not self.tracker.finished or self._pending > 0:
            return None
        self.logs.flush()
        self._draw()
        return OUTCOME_FOR_RESULT[self.tracker.result]

    # ── Handlers ─────────────────────────────────────────────────

    def _on_tick(self, event: Event) -> WatchOutcome | None:
        if not self.tracker.finished and self._pending == 0:
            self._poll()
        return None

    def _on_status(self, event: Event) -> WatchOutcome | None:
        self._pending -= 1
        if self.tracker.observe(event.payload):
            logger.debug("run %s is now %s", self.session.run_id, self.tracker.phase.value)
        self._draw()
        return self._settled_outcome()

    def _on_log(self, event: Event) -> WatchOutcome | None:
        self._pending -= 1
        result: LogResult = event.payload
        if result.error is not None:
            self.log_failures += 1
            if self.log_failures == LOG_FAILURE_WARN_AFTER:
                logger.warning(
                    "run log unavailable for %d consecutive fetches: %s",
                    self.log_failures,
                    result.error,
                )
        else:
            self.log_failures = 0
            self.logs.ingest(result.text)
        self._draw()
        return self._settled_outcome()

    def _on_fatal(self, event: Event) -> WatchOutcome | None:
        self._pending -= 1
        raise event.payload

    def _on_interrupt(self, event: Event) -> WatchOutcome | None:
        if self.tracker.finished:
            self.logs.flush()
            return OUTCOME_FOR_RESULT[self.tracker.result]
        self.session.cancelled = True
        return WatchOutcome.DETACHED

    def _on_timeout(self, event: Event) -> WatchOutcome | None:
        logger.debug("watch timeout of %ss elapsed for run %s", self.session.timeout, self.session.run_id)
        return WatchOutcome.TIMED_OUT

    def _on_resize(self, event: Event) -> WatchOutcome | None:
        self.renderer.resize()
        self._draw()
        return None

    def _on_frame(self, event: Event) -> WatchOutcome | None:
        self.frame += 1
        self._next_frame_at = self._clock() + SPINNER_TICK
        self._draw()
        return None

    # ── Terminal ─────────────────────────────────────────────────

    @contextmanager
    def _terminal(self) -> Iterator[None]:
        if not self._attach_terminal or threading.current_thread() is not threading.main_thread():
            yield
            return

        previous = {signal.SIGINT: signal.signal(signal.SIGINT, self._on_sigint)}
        if hasattr(signal, "SIGWINCH"):
            previous[signal.SIGWINCH] = signal.signal(signal.SIGWINCH, self._on_sigwinch)
        keys = KeyListener(self.interrupt) if self.session.mode is WatchMode.INTERACTIVE else None
        if keys is not None:
            keys.start()
        try:
            yield
        finally:
            if keys is not None:
                keys.stop()
            for signum, handler in previous.items():
                signal.signal(signum, handler)

    def _on_sigint(self, signum, frame):
        self.post(Event(EventKind.USER_INTERRUPT))

    def _on_sigwinch(self, signum, frame):
        self.post(Event(EventKind.TERMINAL_RESIZED))
