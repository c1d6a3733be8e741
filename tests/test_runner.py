"""Tests for JobRunner state handling."""

import threading

import pytest
from kubernetes import client

from conftest import api_error, transport_error
from node_collector.errors import ApplyError, JobCancelledError, RunTimeoutError, WorkloadFailedError
from node_collector.manifest import JobBuilder
from node_collector.runner import JobRunner, JobState, observe_state


@pytest.fixture
def job():
    return JobBuilder("node-collector").with_namespace("ns").with_name("collector-job").build()


def test_completes_and_returns_observed_job(cluster, job):
    runner = JobRunner(cluster, timeout=5, poll_interval=0.01)

    result = runner.run(job)

    assert result.status.succeeded == 1
    assert runner.state == JobState.COMPLETE
    assert cluster.calls[0] == ("create_job", "ns", "collector-job")


def test_failed_condition_raises_workload_failed(cluster, job):
    cluster.job_status = client.V1JobStatus(
        failed=1,
        conditions=[
            client.V1JobCondition(
                type="Failed",
                status="True",
                reason="DeadlineExceeded",
                message="Job was active longer than specified deadline",
            )
        ],
    )
    runner = JobRunner(cluster, timeout=5, poll_interval=0.01)

    with pytest.raises(WorkloadFailedError) as exc:
        runner.run(job)

    assert exc.value.reason == "DeadlineExceeded"
    assert "DeadlineExceeded" in str(exc.value)
    assert runner.state == JobState.FAILED


def test_times_out_while_running(cluster, job):
    cluster.job_status = client.V1JobStatus(active=1)
    runner = JobRunner(cluster, timeout=0.05, poll_interval=0.01)

    with pytest.raises(RunTimeoutError):
        runner.run(job)

    assert runner.state == JobState.TIMED_OUT
    assert "delete_job" not in cluster.methods()


def test_cancel_event_stops_wait(cluster, job):
    cluster.job_status = client.V1JobStatus(active=1)
    cancel = threading.Event()
    cancel.set()
    runner = JobRunner(cluster, poll_interval=0.01, cancel=cancel)

    with pytest.raises(JobCancelledError):
        runner.run(job)

    assert runner.state == JobState.CANCELLED
    assert cluster.methods() == ["create_job"]


def test_cancel_from_another_thread(cluster, job):
    cluster.job_status = client.V1JobStatus(active=1)
    cancel = threading.Event()
    timer = threading.Timer(0.05, cancel.set)
    timer.start()
    try:
        with pytest.raises(JobCancelledError):
            JobRunner(cluster, poll_interval=0.01, cancel=cancel).run(job)
    finally:
        timer.cancel()


def test_submission_conflict_is_apply_error(cluster, job):
    cluster.errors["create_job"] = api_error(409, "AlreadyExists")

    with pytest.raises(ApplyError, match="409"):
        JobRunner(cluster, timeout=1, poll_interval=0.01).run(job)

    assert cluster.methods() == ["create_job"]


def test_submission_transport_failure_is_apply_error(cluster, job):
    cluster.errors["create_job"] = transport_error("/apis/batch/v1/namespaces/ns/jobs")

    with pytest.raises(ApplyError, match="Max retries exceeded"):
        JobRunner(cluster, timeout=1, poll_interval=0.01).run(job)


def test_waits_through_backoff_between_pod_retries(cluster, job):
    # failed pod, replacement not started yet, then a successful retry
    statuses = iter(
        [
            client.V1JobStatus(failed=1, active=0),
            client.V1JobStatus(failed=1, active=1),
            client.V1JobStatus(
                failed=1, succeeded=1, conditions=[client.V1JobCondition(type="Complete", status="True")]
            ),
        ]
    )
    real_read = cluster.read_job

    def read(namespace, name):
        cluster.job_status = next(statuses)
        return real_read(namespace, name)

    cluster.read_job = read
    runner = JobRunner(cluster, timeout=5, poll_interval=0.01)

    result = runner.run(job)

    assert result.status.succeeded == 1
    assert runner.state == JobState.COMPLETE


def test_transport_failure_on_status_read_keeps_polling(cluster, job):
    failures = [transport_error()]
    real_read = cluster.read_job

    def read(namespace, name):
        if failures:
            raise failures.pop()
        return real_read(namespace, name)

    cluster.read_job = read

    result = JobRunner(cluster, timeout=5, poll_interval=0.01).run(job)

    assert result.status.succeeded == 1


def test_status_read_error_keeps_polling(cluster, job):
    cluster.job_status = client.V1JobStatus(active=1)
    cluster.errors["read_job"] = api_error(500, "Internal Server Error")
    attempts = []

    real_read = cluster.read_job

    def flaky_read(namespace, name):
        attempts.append(name)
        if len(attempts) == 2:
            cluster.errors.pop("read_job")
            cluster.job_status = client.V1JobStatus(
                succeeded=1, conditions=[client.V1JobCondition(type="Complete", status="True")]
            )
        return real_read(namespace, name)

    cluster.read_job = flaky_read

    result = JobRunner(cluster, timeout=5, poll_interval=0.01).run(job)

    assert result.status.succeeded == 1
    assert len(attempts) == 2


@pytest.mark.parametrize(
    "status,expected",
    [
        (None, JobState.SUBMITTED),
        (client.V1JobStatus(), JobState.SUBMITTED),
        (client.V1JobStatus(active=1), JobState.RUNNING),
        # counters without a condition: still retrying or short of completions
        (client.V1JobStatus(succeeded=1), JobState.RUNNING),
        (client.V1JobStatus(failed=1, active=0), JobState.RUNNING),
        (client.V1JobStatus(failed=2), JobState.RUNNING),
        (
            client.V1JobStatus(failed=1, conditions=[client.V1JobCondition(type="Failed", status="True")]),
            JobState.FAILED,
        ),
        (
            client.V1JobStatus(conditions=[client.V1JobCondition(type="Complete", status="True")]),
            JobState.COMPLETE,
        ),
        (
            client.V1JobStatus(active=1, conditions=[client.V1JobCondition(type="Failed", status="False")]),
            JobState.RUNNING,
        ),
    ],
)
def test_observe_state(status, expected):
    assert observe_state(client.V1Job(status=status)) == expected


def test_terminal_states():
    assert not JobState.RUNNING.terminal
    assert JobState.TIMED_OUT.terminal
    assert JobState.CANCELLED.terminal
