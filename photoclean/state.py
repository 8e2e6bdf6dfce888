"""
Run state management for PhotoClean.

Holds the phase, progress, message and result of one analysis run. Only the
run's own worker thread writes to it; everyone else reads immutable
snapshots.
"""

from __future__ import annotations

import threading
import time
from dataclasses import replace
from typing import Optional

from .models import AnalysisConfig, DuplicateGroup, RunPhase, RunSnapshot, RunStats
from .pipeline.workers import CancellationToken


class AnalysisRun:
    """
    State of a single analysis invocation.

    A fresh instance is created for every run and discarded afterwards, so
    nothing leaks from one run into the next.
    """

    def __init__(self, run_id: str, config: AnalysisConfig, total_items: int):
        self._lock = threading.Lock()
        self.run_id = run_id
        self.config = config
        self.token = CancellationToken()
        self.start_time = time.time()

        self.phase = RunPhase.NOT_STARTED
        self.progress = 0.0
        self.message = ''
        self.groups: list[DuplicateGroup] = []
        self.stats = RunStats(submitted=total_items)

    @property
    def cancel_requested(self) -> bool:
        """Check if cancel has been requested."""
        return self.token.cancelled

    def request_cancel(self) -> None:
        """Request cancellation of this run."""
        self.token.cancel()

    def update(
        self,
        phase: Optional[RunPhase] = None,
        progress: Optional[float] = None,
        message: Optional[str] = None,
        groups: Optional[list[DuplicateGroup]] = None,
    ) -> None:
        """
        Apply a state change.

        Progress never moves backwards; a lower value is ignored.
        """
        with self._lock:
            if phase is not None:
                self.phase = phase
            if progress is not None:
                self.progress = max(self.progress, min(1.0, float(progress)))
            if message is not None:
                self.message = message
            if groups is not None:
                self.groups = list(groups)
            self.stats.elapsed_seconds = time.time() - self.start_time

    def snapshot(self) -> RunSnapshot:
        """Return an immutable copy of the current state."""
        with self._lock:
            return RunSnapshot(
                run_id=self.run_id,
                phase=self.phase,
                progress=self.progress,
                message=self.message,
                groups=tuple(self.groups),
                stats=replace(self.stats),
            )


__all__ = ['AnalysisRun']
