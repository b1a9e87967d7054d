"""Concurrent status/log fetches whose results are posted back as events."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Protocol

from .errors import FatalFetchError
from .events import Event, EventKind, LogResult
from .snapshot import BuildSnapshot

logger = logging.getLogger(__name__)


class RunSource(Protocol):
    def fetch_status(self, run_id: str) -> BuildSnapshot: ...

    def fetch_log(self, run_id: str) -> str: ...


class Poller:
    """
    Issues the status and log fetch of one tick as two independent tasks.

    Tasks never touch controller state; each one posts exactly one event.
    """

    def __init__(self, source: RunSource, run_id: str, post: Callable[[Event], None]):
        self._source = source
        self._run_id = run_id
        self._post = post
        self._closed = threading.Event()

    def dispatch(self, tick: int) -> int:
        """Start both fetches for a tick. Returns the number of pending results."""
        for target, name in ((self._fetch_status, "status"), (self._fetch_log, "log")):
            thread = threading.Thread(
                target=target,
                args=(tick,),
                name=f"runwatch-{name}-{tick}",
                daemon=True,
            )
            thread.start()
        return 2

    def close(self):
        # In-flight fetches are abandoned; their threads never block exit.
        self._closed.set()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def _deliver(self, event: Event):
        if self._closed.is_set():
            logger.debug("dropping %s for run %s after the watch ended", event.kind.value, self._run_id)
            return
        self._post(event)

    def _fetch_status(self, tick: int):
        try:
            snapshot = self._source.fetch_status(self._run_id)
        except FatalFetchError as exc:
            self._deliver(Event(EventKind.FATAL_ERROR, exc, tick))
            return
        except Exception as exc:
            self._deliver(Event(EventKind.FATAL_ERROR, FatalFetchError(self._run_id, str(exc)), tick))
            return
        self._deliver(Event(EventKind.STATUS_ARRIVED, snapshot, tick))

    def _fetch_log(self, tick: int):
        try:
            text = self._source.fetch_log(self._run_id)
        except Exception as exc:
            logger.debug("log fetch for run %s failed (tick %d): %s", self._run_id, tick, exc)
            self._deliver(Event(EventKind.LOG_ARRIVED, LogResult("", error=str(exc) or type(exc).__name__), tick))
            return
        self._deliver(Event(EventKind.LOG_ARRIVED, LogResult(text or ""), tick))
