"""Error taxonomy for the node-collector job pipeline."""

from __future__ import annotations


class CollectorError(Exception):
    """Base class for every error raised by the pipeline."""


class TemplateError(CollectorError):
    """Template is unknown or its YAML is malformed."""


class DecodeError(CollectorError):
    """Template parsed but does not have the shape of a batch/v1 Job."""


class NamespaceError(CollectorError):
    """Namespace lookup or creation failed."""


class RBACProvisionError(CollectorError):
    """Creating one of the RBAC objects failed; earlier objects are not rolled back."""

    def __init__(self, step: str, message: str) -> None:
        super().__init__(f"creating {step}: {message}")
        self.step = step


class ApplyError(CollectorError):
    """Job submission was rejected by the cluster."""


class RunTimeoutError(CollectorError):
    """The job did not reach a terminal state before the wait deadline."""


class WorkloadFailedError(CollectorError):
    """The job reported failure."""

    def __init__(self, job_name: str, reason: str | None = None, message: str | None = None) -> None:
        detail = ": ".join(p for p in (reason, message) if p)
        super().__init__(f"job {job_name} failed" + (f" ({detail})" if detail else ""))
        self.job_name = job_name
        self.reason = reason


class JobCancelledError(CollectorError):
    """The caller cancelled the wait before the job finished."""


class PodNotFoundError(CollectorError):
    """No pod owned by the job appeared in time."""


class LogStreamError(CollectorError):
    """Opening or reading a container log stream failed."""
