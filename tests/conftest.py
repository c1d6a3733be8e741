"""Shared fixtures: an in-memory cluster implementing every store protocol."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
import urllib3
from kubernetes import client
from kubernetes.client.rest import ApiException

from node_collector.collector import CollectorConfig

_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

MULTI_CONTAINER_TEMPLATE = """\
apiVersion: batch/v1
kind: Job
metadata:
  name: multi
  labels:
    app: multi
    team: platform
  annotations:
    owner: sre
spec:
  template:
    spec:
      nodeName: pinned-node
      restartPolicy: Never
      containers:
        - name: node-collector
          image: example.com/collector:1.0
          args: ["k8s"]
        - name: sidecar
          image: example.com/sidecar:1.0
        - name: shipper
          image: example.com/shipper:1.0
"""


def api_error(status: int, reason: str = "") -> ApiException:
    return ApiException(status=status, reason=reason or str(status))


def transport_error(path: str = "/api/v1") -> urllib3.exceptions.MaxRetryError:
    return urllib3.exceptions.MaxRetryError(None, path)


class FakeStream:
    """Stands in for the urllib3 response returned with _preload_content=False."""

    def __init__(self, data: bytes, error: Exception | None = None) -> None:
        self._data = data
        self._error = error
        self.closed = False

    def read(self) -> bytes:
        if self._error is not None:
            raise self._error
        return self._data

    def close(self) -> None:
        self.closed = True


class FakeCluster:
    """Records every call; ``errors`` maps a method name to the exception it raises."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.errors: dict[str, Exception] = {}
        self.namespaces: set[str] = set()
        self.jobs: dict[tuple[str, str], dict[str, Any]] = {}
        self.job_status: client.V1JobStatus | None = client.V1JobStatus(
            succeeded=1,
            conditions=[client.V1JobCondition(type="Complete", status="True")],
        )
        self.pod_logs: dict[str, bytes] = {}
        self.auto_pods = True
        self.streams: list[FakeStream] = []

    def _record(self, method: str, *args: Any) -> None:
        self.calls.append((method, *args))
        err = self.errors.get(method)
        if err is not None:
            raise err

    def methods(self) -> list[str]:
        return [c[0] for c in self.calls]

    def calls_to(self, method: str) -> list[tuple[Any, ...]]:
        return [c for c in self.calls if c[0] == method]

    # NamespaceStore

    def read_namespace(self, name: str) -> client.V1Namespace:
        self._record("read_namespace", name)
        if name not in self.namespaces:
            raise api_error(404, "Not Found")
        return client.V1Namespace(metadata=client.V1ObjectMeta(name=name))

    def create_namespace(self, name: str) -> client.V1Namespace:
        self._record("create_namespace", name)
        self.namespaces.add(name)
        return client.V1Namespace(metadata=client.V1ObjectMeta(name=name))

    def delete_namespace(self, name: str) -> None:
        self._record("delete_namespace", name)
        self.namespaces.discard(name)

    # JobStore

    def create_job(self, namespace: str, manifest: dict[str, Any]) -> client.V1Job:
        name = manifest["metadata"]["name"]
        self._record("create_job", namespace, name)
        if (namespace, name) in self.jobs:
            raise api_error(409, "AlreadyExists")
        self.jobs[(namespace, name)] = manifest
        return client.V1Job(metadata=client.V1ObjectMeta(name=name, namespace=namespace))

    def read_job(self, namespace: str, name: str) -> client.V1Job:
        self._record("read_job", namespace, name)
        return client.V1Job(
            metadata=client.V1ObjectMeta(name=name, namespace=namespace),
            status=self.job_status,
        )

    def delete_job(self, namespace: str, name: str) -> None:
        self._record("delete_job", namespace, name)
        self.jobs.pop((namespace, name), None)

    # RBACStore

    def create_cluster_role(self, body: dict[str, Any]) -> dict[str, Any]:
        self._record("create_cluster_role", body["metadata"]["name"])
        return body

    def delete_cluster_role(self, name: str) -> None:
        self._record("delete_cluster_role", name)

    def create_service_account(self, namespace: str, body: dict[str, Any]) -> dict[str, Any]:
        self._record("create_service_account", namespace, body["metadata"]["name"])
        return body

    def delete_service_account(self, namespace: str, name: str) -> None:
        self._record("delete_service_account", namespace, name)

    def create_cluster_role_binding(self, body: dict[str, Any]) -> dict[str, Any]:
        self._record("create_cluster_role_binding", body["metadata"]["name"])
        return body

    def delete_cluster_role_binding(self, name: str) -> None:
        self._record("delete_cluster_role_binding", name)

    # PodLogStore

    def list_pods(self, namespace: str, label_selector: str) -> list[client.V1Pod]:
        self._record("list_pods", namespace, label_selector)
        job_name = label_selector.split("=", 1)[1]
        if not self.auto_pods or (namespace, job_name) not in self.jobs:
            return []
        return [
            client.V1Pod(
                metadata=client.V1ObjectMeta(
                    name=f"{job_name}-old",
                    namespace=namespace,
                    creation_timestamp=_NOW - timedelta(minutes=5),
                )
            ),
            client.V1Pod(
                metadata=client.V1ObjectMeta(name=f"{job_name}-x7k2p", namespace=namespace, creation_timestamp=_NOW)
            ),
        ]

    def stream_pod_log(self, namespace: str, pod_name: str, container: str) -> FakeStream:
        self._record("stream_pod_log", namespace, pod_name, container)
        stream = FakeStream(self.pod_logs.get(pod_name, b""))
        self.streams.append(stream)
        return stream


@pytest.fixture
def cluster() -> FakeCluster:
    return FakeCluster()


@pytest.fixture
def fast_config() -> CollectorConfig:
    """Collector config with timings suitable for tests."""
    return (
        CollectorConfig.builder()
        .with_namespace("collector-ns")
        .with_poll_interval(0.01)
        .with_pod_timeout(0.0)
        .with_timeout(5.0)
        .build()
    )


@pytest.fixture
def template_dir(tmp_path):
    (tmp_path / "multi.yaml").write_text(MULTI_CONTAINER_TEMPLATE, encoding="utf-8")
    return tmp_path
