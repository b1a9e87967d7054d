"""Events consumed by the watch controller."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class EventKind(str, Enum):
    TICK = "tick"
    STATUS_ARRIVED = "status_arrived"
    LOG_ARRIVED = "log_arrived"
    FATAL_ERROR = "fatal_error"
    USER_INTERRUPT = "user_interrupt"
    TIMEOUT_ELAPSED = "timeout_elapsed"
    TERMINAL_RESIZED = "terminal_resized"
    FRAME = "frame"


@dataclass(frozen=True)
class LogResult:
    text: str
    error: str | None = None


@dataclass(frozen=True)
class Event:
    kind: EventKind
    payload: Any = None
    tick: int = 0
