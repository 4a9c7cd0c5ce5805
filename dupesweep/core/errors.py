# dupesweep/core/errors.py
from typing import Any


class DupeSweepError(Exception):
    """Base class for errors raised by dupesweep."""


class ConfigError(DupeSweepError):
    pass


class WouldEmptyGroup(DupeSweepError):
    """Raised when selecting a file would leave its group with no keeper."""

    def __init__(self, record: Any, group: Any):
        self.record = record
        self.group = group
        super().__init__(
            f"Cannot select {record.path}: every other copy in the group is already selected"
        )


class InvalidTransition(DupeSweepError):
    def __init__(self, current: Any, target: Any):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move session from {current.value} to {target.value}")


class ScanCancelled(DupeSweepError):
    """Internal signal used to unwind the scan pipeline once cancellation is observed."""
