"""Cluster stores backed by the official Kubernetes Python client."""

from __future__ import annotations

import logging
from typing import Any

import urllib3
from kubernetes import client, config
from kubernetes.client.rest import ApiException

logger = logging.getLogger(__name__)

BACKGROUND = "Background"

# What a cluster call can raise: API rejections and transport failures.
API_ERRORS = (ApiException, urllib3.exceptions.HTTPError)


def describe_error(e: Exception) -> str:
    if isinstance(e, ApiException):
        return f"{e.status} {e.reason}"
    return str(e)


def _load_kube_config(kubeconfig_path: str | None, context: str | None) -> client.Configuration:
    """Load in-cluster or kubeconfig-based configuration."""
    try:
        config.load_incluster_config()
        return client.Configuration.get_default_copy()
    except config.ConfigException:
        pass
    kwargs: dict[str, Any] = {}
    if kubeconfig_path:
        kwargs["config_file"] = str(kubeconfig_path)
    if context:
        kwargs["context"] = context
    config.load_kube_config(**kwargs)
    return client.Configuration.get_default_copy()


class KubernetesCluster:
    """Implements every store protocol against a live API server."""

    def __init__(
        self,
        kubeconfig: str | None = None,
        context: str | None = None,
        api_client: client.ApiClient | None = None,
    ) -> None:
        if api_client is None:
            api_client = client.ApiClient(_load_kube_config(kubeconfig, context))
        self._core = client.CoreV1Api(api_client)
        self._batch = client.BatchV1Api(api_client)
        self._rbac = client.RbacAuthorizationV1Api(api_client)

    # Namespaces

    def read_namespace(self, name: str) -> client.V1Namespace:
        return self._core.read_namespace(name=name)

    def create_namespace(self, name: str) -> client.V1Namespace:
        body = client.V1Namespace(metadata=client.V1ObjectMeta(name=name))
        return self._core.create_namespace(body=body)

    def delete_namespace(self, name: str) -> None:
        self._core.delete_namespace(name=name, propagation_policy=BACKGROUND)

    # Jobs

    def create_job(self, namespace: str, manifest: dict[str, Any]) -> client.V1Job:
        return self._batch.create_namespaced_job(namespace=namespace, body=manifest)

    def read_job(self, namespace: str, name: str) -> client.V1Job:
        return self._batch.read_namespaced_job_status(name=name, namespace=namespace)

    def delete_job(self, namespace: str, name: str) -> None:
        self._batch.delete_namespaced_job(name=name, namespace=namespace, propagation_policy=BACKGROUND)

    # RBAC

    def create_cluster_role(self, body: dict[str, Any]) -> client.V1ClusterRole:
        return self._rbac.create_cluster_role(body=body)

    def delete_cluster_role(self, name: str) -> None:
        self._rbac.delete_cluster_role(name=name, propagation_policy=BACKGROUND)

    def create_service_account(self, namespace: str, body: dict[str, Any]) -> client.V1ServiceAccount:
        return self._core.create_namespaced_service_account(namespace=namespace, body=body)

    def delete_service_account(self, namespace: str, name: str) -> None:
        self._core.delete_namespaced_service_account(
            name=name, namespace=namespace, propagation_policy=BACKGROUND
        )

    def create_cluster_role_binding(self, body: dict[str, Any]) -> client.V1ClusterRoleBinding:
        return self._rbac.create_cluster_role_binding(body=body)

    def delete_cluster_role_binding(self, name: str) -> None:
        self._rbac.delete_cluster_role_binding(name=name, propagation_policy=BACKGROUND)

    # Pods

    def list_pods(self, namespace: str, label_selector: str) -> list[client.V1Pod]:
        return self._core.list_namespaced_pod(namespace=namespace, label_selector=label_selector).items

    def stream_pod_log(self, namespace: str, pod_name: str, container: str) -> Any:
        # _preload_content=False hands back the raw urllib3 response unread.
        return self._core.read_namespaced_pod_log(
            name=pod_name,
            namespace=namespace,
            container=container,
            _preload_content=False,
        )
