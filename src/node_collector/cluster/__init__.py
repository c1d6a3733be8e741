"""Cluster layer: store protocols and the Kubernetes client implementation."""

from node_collector.cluster.kube import API_ERRORS, KubernetesCluster, describe_error
from node_collector.cluster.stores import JobStore, NamespaceStore, PodLogStore, RBACStore

__all__ = [
    "API_ERRORS",
    "JobStore",
    "KubernetesCluster",
    "NamespaceStore",
    "PodLogStore",
    "RBACStore",
    "describe_error",
]
