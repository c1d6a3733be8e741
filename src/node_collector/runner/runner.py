"""Submit a job and wait until it finishes, fails, times out or is cancelled."""

from __future__ import annotations

import logging
import threading
import time
from datetime import timedelta
from typing import Any, Callable

from node_collector.cluster.kube import API_ERRORS, describe_error
from node_collector.cluster.stores import JobStore
from node_collector.errors import ApplyError, JobCancelledError, RunTimeoutError, WorkloadFailedError
from node_collector.manifest.models import JobDescription
from node_collector.runner.models import JobState

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 2.0


def _condition(job: Any, kind: str) -> Any | None:
    status = getattr(job, "status", None)
    for c in getattr(status, "conditions", None) or []:
        if c.type == kind and c.status == "True":
            return c
    return None


def observe_state(job: Any) -> JobState:
    """Map a job's reported status onto a JobState (never TimedOut/Cancelled).

    Only the Complete/Failed conditions are terminal. Pod counters alone mean
    the controller is still working: a failed pod may be waiting out its
    backoff before a retry, and one succeeded pod may not meet ``completions``.
    """
    status = getattr(job, "status", None)
    if status is None:
        return JobState.SUBMITTED
    if _condition(job, "Failed") is not None:
        return JobState.FAILED
    if _condition(job, "Complete") is not None:
        return JobState.COMPLETE
    if (status.active or 0) or (status.succeeded or 0) or (status.failed or 0):
        return JobState.RUNNING
    return JobState.SUBMITTED


class JobRunner:
    """Runs one job to a terminal state.

    ``timeout`` is the external wait deadline, independent of the job's own
    activeDeadlineSeconds; ``None`` or 0 waits until the job finishes or the
    ``cancel`` event is set.
    """

    def __init__(
        self,
        jobs: JobStore,
        timeout: timedelta | float | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        cancel: threading.Event | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if isinstance(timeout, timedelta):
            timeout = timeout.total_seconds()
        self._jobs = jobs
        self._timeout = timeout or None
        self._poll_interval = poll_interval
        self._cancel = cancel or threading.Event()
        self._clock = clock
        self.state: JobState | None = None

    def _transition(self, job: JobDescription, state: JobState) -> None:
        if state != self.state:
            logger.info("Job %s/%s: %s", job.namespace, job.name, state.value)
            self.state = state

    def run(self, job: JobDescription) -> Any:
        """Create ``job`` and block until it completes. Returns the last observed job object."""
        try:
            self._jobs.create_job(job.namespace, job.to_manifest())
        except API_ERRORS as e:
            raise ApplyError(f"creating job {job.namespace}/{job.name}: {describe_error(e)}") from e
        self._transition(job, JobState.SUBMITTED)

        deadline = self._clock() + self._timeout if self._timeout else None
        while True:
            if self._cancel.is_set():
                self._transition(job, JobState.CANCELLED)
                raise JobCancelledError(f"waiting for job {job.namespace}/{job.name} was cancelled")

            try:
                current = self._jobs.read_job(job.namespace, job.name)
            except API_ERRORS as e:
                logger.warning("Failed to read job %s/%s: %s", job.namespace, job.name, describe_error(e))
            else:
                observed = observe_state(current)
                if observed.terminal:
                    self._transition(job, observed)
                    if observed == JobState.FAILED:
                        cond = _condition(current, "Failed")
                        raise WorkloadFailedError(
                            job.name,
                            reason=getattr(cond, "reason", None),
                            message=getattr(cond, "message", None),
                        )
                    return current
                if observed == JobState.RUNNING:
                    self._transition(job, observed)

            wait = self._poll_interval
            if deadline is not None:
                remaining = deadline - self._clock()
                if remaining <= 0:
                    self._transition(job, JobState.TIMED_OUT)
                    raise RunTimeoutError(
                        f"job {job.namespace}/{job.name} did not finish within {self._timeout:g}s"
                    )
                wait = min(wait, remaining)
            if self._cancel.wait(wait):
                self._transition(job, JobState.CANCELLED)
                raise JobCancelledError(f"waiting for job {job.namespace}/{job.name} was cancelled")
