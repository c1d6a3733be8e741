"""Lifecycle states of a submitted collector job."""

from __future__ import annotations

from enum import Enum


class JobState(str, Enum):
    """Submitted -> Running -> one of the terminal states."""

    SUBMITTED = "Submitted"
    RUNNING = "Running"
    COMPLETE = "Complete"
    FAILED = "Failed"
    TIMED_OUT = "TimedOut"
    CANCELLED = "Cancelled"

    @property
    def terminal(self) -> bool:
        return self not in (JobState.SUBMITTED, JobState.RUNNING)
