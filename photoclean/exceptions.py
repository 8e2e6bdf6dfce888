"""
Exception types for PhotoClean.

Item-level failures are recovered inside the stages and never stop a run.
Run-level conditions (rejection, cancellation) surface to the caller.
"""


class PhotoCleanError(Exception):
    """Base class for all PhotoClean errors."""


class ItemReadError(PhotoCleanError):
    """The bytes of a single image could not be obtained."""

    def __init__(self, ref: str, reason: str):
        super().__init__(f"Could not read {ref}: {reason}")
        self.ref = ref
        self.reason = reason


class ConcurrentRunRejected(PhotoCleanError):
    """A new analysis was requested while another one is still active."""

    def __init__(self, active_run_id: str):
        super().__init__(f"An analysis is already running (run {active_run_id})")
        self.active_run_id = active_run_id


class AnalysisCancelled(PhotoCleanError):
    """Raised inside a stage once a cancellation request has been observed."""


__all__ = [
    'PhotoCleanError',
    'ItemReadError',
    'ConcurrentRunRejected',
    'AnalysisCancelled',
]
