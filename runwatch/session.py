"""Watch session settings, outcomes and the read-only view handed to renderers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .config import DEFAULT_INTERVAL, MIN_INTERVAL
from .errors import EXIT_CANCELLED, EXIT_FAILURE, EXIT_OK, EXIT_TIMEOUT, ConfigError
from .logparse import LogBuffer
from .snapshot import BuildSnapshot, StatusCategory


class WatchMode(str, Enum):
    INTERACTIVE = "interactive"
    QUIET = "quiet"
    PLAIN = "plain"


class WatchOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"
    DETACHED = "detached"
    TIMED_OUT = "timed_out"

    @property
    def exit_code(self) -> int:
        return _EXIT_CODES[self]


_EXIT_CODES = {
    WatchOutcome.SUCCEEDED: EXIT_OK,
    WatchOutcome.DETACHED: EXIT_OK,
    WatchOutcome.FAILED: EXIT_FAILURE,
    WatchOutcome.CANCELED: EXIT_CANCELLED,
    WatchOutcome.TIMED_OUT: EXIT_TIMEOUT,
}

OUTCOME_FOR_RESULT = {
    StatusCategory.SUCCEEDED: WatchOutcome.SUCCEEDED,
    StatusCategory.FAILED: WatchOutcome.FAILED,
    StatusCategory.CANCELED: WatchOutcome.CANCELED,
}


@dataclass
class WatchSession:
    run_id: str
    interval: float = DEFAULT_INTERVAL
    mode: WatchMode = WatchMode.PLAIN
    timeout: float | None = None
    cancelled: bool = False

    def __post_init__(self):
        self.run_id = str(self.run_id).strip()
        if not self.run_id:
            raise ConfigError("Run id must not be empty")
        if self.interval < MIN_INTERVAL:
            raise ConfigError(f"--interval must be at least {MIN_INTERVAL} second, got {self.interval:g}")
        if self.timeout is not None and self.timeout < 0:
            raise ConfigError(f"--timeout must not be negative, got {self.timeout:g}")
        if not self.timeout:
            self.timeout = None

    def resume_command(self) -> str:
        command = f"runwatch watch {self.run_id}"
        if self.mode is WatchMode.INTERACTIVE:
            command += " --logs"
        elif self.mode is WatchMode.QUIET:
            command += " --quiet"
        return command


@dataclass(frozen=True)
class WatchView:
    """What a renderer may look at; rebuilt by the controller for every draw."""

    session: WatchSession
    snapshot: BuildSnapshot | None
    category: StatusCategory | None
    percent: int | None
    logs: LogBuffer
    frame: int = 0
    log_unavailable: bool = False
    now: float = 0.0

    @property
    def finished(self) -> bool:
        return self.category is not None and self.category.terminal
