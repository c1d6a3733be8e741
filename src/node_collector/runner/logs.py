"""Find the pod a job created and stream one of its container logs."""

from __future__ import annotations

import contextlib
import logging
import threading
import time
from typing import Any, Callable

import urllib3

from node_collector.cluster.kube import API_ERRORS, describe_error
from node_collector.cluster.stores import PodLogStore
from node_collector.errors import JobCancelledError, LogStreamError, PodNotFoundError
from node_collector.manifest.models import JobDescription

logger = logging.getLogger(__name__)

# Label the job controller puts on every pod it creates.
JOB_NAME_LABEL = "job-name"


def _created_at(pod: Any) -> float:
    ts = getattr(pod.metadata, "creation_timestamp", None)
    return ts.timestamp() if ts else 0.0


class LogsReader:
    """Opens log streams for containers of job-owned pods."""

    def __init__(
        self,
        pods: PodLogStore,
        pod_timeout: float = 30.0,
        poll_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._pods = pods
        self._pod_timeout = pod_timeout
        self._poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep

    def find_pod(self, job: JobDescription, cancel: threading.Event | None = None) -> Any:
        """Newest pod labelled with the job's name; waits up to ``pod_timeout``.

        Setting ``cancel`` interrupts the wait with JobCancelledError.
        """
        selector = f"{JOB_NAME_LABEL}={job.name}"
        deadline = self._clock() + self._pod_timeout
        while True:
            if cancel is not None and cancel.is_set():
                raise JobCancelledError(f"waiting for a pod of job {job.namespace}/{job.name} was cancelled")
            try:
                pods = self._pods.list_pods(job.namespace, selector)
            except API_ERRORS as e:
                raise LogStreamError(f"listing pods of job {job.namespace}/{job.name}: {describe_error(e)}") from e
            if pods:
                return max(pods, key=_created_at)
            if self._clock() >= deadline:
                raise PodNotFoundError(f"no pod found for job {job.namespace}/{job.name}")
            if cancel is not None:
                cancel.wait(self._poll_interval)
            else:
                self._sleep(self._poll_interval)

    def get_logs_by_job_and_container_name(
        self, job: JobDescription, container: str, cancel: threading.Event | None = None
    ) -> Any:
        """Readable, closeable stream of ``container``'s log. The caller closes it."""
        pod = self.find_pod(job, cancel)
        pod_name = pod.metadata.name
        logger.debug("Reading logs of %s/%s container %s", job.namespace, pod_name, container)
        try:
            return self._pods.stream_pod_log(job.namespace, pod_name, container)
        except API_ERRORS as e:
            raise LogStreamError(f"opening logs of {job.namespace}/{pod_name}/{container}: {e}") from e


def read_all(stream: Any) -> str:
    """Buffer a log stream into text and close it."""
    try:
        with contextlib.closing(stream):
            data = stream.read()
    except (urllib3.exceptions.HTTPError, OSError) as e:
        raise LogStreamError(f"reading logs: {e}") from e
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data or ""
