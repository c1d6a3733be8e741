"""Capability protocols the pipeline needs from a cluster.

Implementations raise ``kubernetes.client.rest.ApiException`` for API errors so
callers can tell a 404 from anything else. Every delete uses background
propagation: the call returns once the API server accepts it and dependents
(e.g. a job's pods) are garbage-collected by the cluster.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class NamespaceStore(Protocol):
    def read_namespace(self, name: str) -> Any: ...

    def create_namespace(self, name: str) -> Any: ...

    def delete_namespace(self, name: str) -> None: ...


@runtime_checkable
class JobStore(Protocol):
    def create_job(self, namespace: str, manifest: dict[str, Any]) -> Any: ...

    def read_job(self, namespace: str, name: str) -> Any: ...

    def delete_job(self, namespace: str, name: str) -> None: ...


@runtime_checkable
class RBACStore(Protocol):
    def create_cluster_role(self, body: dict[str, Any]) -> Any: ...

    def delete_cluster_role(self, name: str) -> None: ...

    def create_service_account(self, namespace: str, body: dict[str, Any]) -> Any: ...

    def delete_service_account(self, namespace: str, name: str) -> None: ...

    def create_cluster_role_binding(self, body: dict[str, Any]) -> Any: ...

    def delete_cluster_role_binding(self, name: str) -> None: ...


@runtime_checkable
class PodLogStore(Protocol):
    def list_pods(self, namespace: str, label_selector: str) -> list[Any]: ...

    def stream_pod_log(self, namespace: str, pod_name: str, container: str) -> Any:
        """Return a readable, closeable stream of the container's log."""
        ...
