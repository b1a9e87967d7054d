"""Error taxonomy and process exit codes shared by every runwatch command."""

from __future__ import annotations


EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 2
EXIT_TIMEOUT = 124


class RunwatchError(Exception):
    """Base class for errors reported on the command line."""


class ConfigError(RunwatchError):
    """Missing or invalid configuration, environment or flags."""


class FatalFetchError(RunwatchError):
    """The run status could not be fetched; the watch session cannot continue."""

    def __init__(self, run_id: str, message: str):
        super().__init__(f"failed to fetch run {run_id}: {message}")
        self.run_id = run_id


class TransientFetchError(RunwatchError):
    """A fetch that is retried on the next tick (the run log)."""


class ExitError(RunwatchError):
    """Ends the command with a specific exit code and no extra message."""

    def __init__(self, code: int):
        super().__init__(f"exit status {code}")
        self.code = code
