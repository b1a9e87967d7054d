"""Tests for the per-tick fetch tasks."""

from __future__ import annotations

import threading

from runwatch.events import EventKind
from runwatch.poller import Poller
from runwatch.snapshot import BuildSnapshot, StatusCategory


class BlockingSource:
    def __init__(self):
        self.release = threading.Event()
        self.started = threading.Event()

    def fetch_status(self, run_id: str) -> BuildSnapshot:
        self.started.set()
        self.release.wait(5)
        return BuildSnapshot(id=run_id, number="1", job_name="Build", category=StatusCategory.RUNNING)

    def fetch_log(self, run_id: str) -> str:
        self.release.wait(5)
        return "[10:00:00]i: hello\n"


def _fetch_threads() -> list[threading.Thread]:
    return [thread for thread in threading.enumerate() if thread.name.startswith("runwatch-")]


def test_dispatch_posts_one_event_per_fetch():
    source = BlockingSource()
    events = []
    done = threading.Semaphore(0)

    def post(event):
        events.append(event)
        done.release()

    poller = Poller(source, "42", post)
    source.release.set()
    assert poller.dispatch(3) == 2
    assert done.acquire(timeout=5) and done.acquire(timeout=5)

    assert sorted(event.kind.value for event in events) == [
        EventKind.LOG_ARRIVED.value,
        EventKind.STATUS_ARRIVED.value,
    ]
    assert all(event.tick == 3 for event in events)


def test_in_flight_fetches_never_hold_the_process():
    source = BlockingSource()
    events = []
    poller = Poller(source, "42", events.append)
    poller.dispatch(1)
    assert source.started.wait(5)

    threads = _fetch_threads()
    assert threads
    assert all(thread.daemon for thread in threads)

    poller.close()
    source.release.set()
    for thread in threads:
        thread.join(5)

    assert poller.closed
    assert events == []
