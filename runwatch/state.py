"""Forward-only lifecycle tracking for the watched run."""

from __future__ import annotations

import logging
from enum import Enum

from .snapshot import BuildSnapshot, StatusCategory

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    FINISHED = "finished"


_PHASE_ORDER = {Phase.QUEUED: 0, Phase.RUNNING: 1, Phase.FINISHED: 2}

_CATEGORY_PHASES = {
    StatusCategory.QUEUED: Phase.QUEUED,
    StatusCategory.RUNNING: Phase.RUNNING,
    StatusCategory.SUCCEEDED: Phase.FINISHED,
    StatusCategory.FAILED: Phase.FINISHED,
    StatusCategory.CANCELED: Phase.FINISHED,
}


class StateTracker:
    """Interprets status snapshots into Queued -> Running -> Finished."""

    def __init__(self):
        self.snapshot: BuildSnapshot | None = None
        self.phase: Phase | None = None
        self.result: StatusCategory | None = None

    @property
    def finished(self) -> bool:
        return self.phase is Phase.FINISHED

    @property
    def category(self) -> StatusCategory | None:
        if self.result is not None:
            return self.result
        if self.phase is Phase.RUNNING:
            return StatusCategory.RUNNING
        if self.phase is Phase.QUEUED:
            return StatusCategory.QUEUED
        return self.snapshot.category if self.snapshot is not None else None

    @property
    def percent(self) -> int | None:
        if self.phase is not Phase.RUNNING or self.snapshot is None:
            return None
        return self.snapshot.percent

    def observe(self, snapshot: BuildSnapshot) -> bool:
        """Take a new snapshot. Returns True when the phase changed."""
        if self.finished:
            logger.debug("ignoring snapshot for run %s after it finished", snapshot.id)
            return False

        self.snapshot = snapshot
        target = _CATEGORY_PHASES.get(snapshot.category)
        if target is None:
            return False
        if self.phase is not None and _PHASE_ORDER[target] < _PHASE_ORDER[self.phase]:
            logger.debug("run %s reported %s while %s; keeping phase", snapshot.id, target.value, self.phase.value)
            return False

        changed = target is not self.phase
        self.phase = target
        if target is Phase.FINISHED:
            self.result = snapshot.category
        return changed
