"""Collector: run a node-collector job on one node and return its output."""

from __future__ import annotations

import logging
import threading
from typing import Any

from kubernetes.client.rest import ApiException

from node_collector.cluster.kube import API_ERRORS, KubernetesCluster, describe_error
from node_collector.collector.models import (
    AUTO_CREATED_LABEL,
    COLLECTOR_NAME_LABEL,
    RESOURCE_KIND_LABEL,
    RESOURCE_NAME_LABEL,
    CollectorConfig,
)
from node_collector.config import Settings
from node_collector.errors import ApplyError, NamespaceError
from node_collector.manifest.builder import JobBuilder
from node_collector.manifest.models import JobDescription, ObjectRef, compute_hash
from node_collector.rbac.models import RBACBundle
from node_collector.rbac.provisioner import RBACProvisioner
from node_collector.runner.logs import LogsReader, read_all
from node_collector.runner.runner import JobRunner

logger = logging.getLogger(__name__)

# Container whose log carries the collected data.
COLLECTOR_CONTAINER = "node-collector"
NODE_INFO_KIND = "Node-Info"


class Collector:
    """Submits node-collector jobs into one namespace.

    ``cluster`` must implement NamespaceStore, JobStore, RBACStore and
    PodLogStore (KubernetesCluster does).
    """

    def __init__(
        self,
        cluster: Any,
        config: CollectorConfig | None = None,
        logs_reader: LogsReader | None = None,
    ) -> None:
        self._cluster = cluster
        self.config = config or CollectorConfig()
        self._logs = logs_reader or LogsReader(
            cluster,
            pod_timeout=self.config.pod_timeout,
            poll_interval=min(self.config.poll_interval, 1.0),
        )
        self._rbac = RBACProvisioner(cluster)

    @classmethod
    def from_settings(cls, settings: Settings, config: CollectorConfig | None = None) -> Collector:
        cluster = KubernetesCluster(
            kubeconfig=str(settings.kubeconfig) if settings.kubeconfig else None,
            context=settings.context,
        )
        return cls(cluster, config or CollectorConfig.from_settings(settings))

    def append_labels(self, labels: dict[str, str]) -> None:
        """Merge ``labels`` into the config used by later calls."""
        self.config = self.config.with_labels(labels)

    def job_name_for(self, node_name: str) -> str:
        """Stable job name for (node, namespace), so repeated runs target one resource."""
        ref = ObjectRef(kind=NODE_INFO_KIND, name=node_name, namespace=self.config.namespace)
        return f"{self.config.template_name}-{compute_hash(ref)}"

    def identification_labels(self, node_name: str) -> dict[str, str]:
        """Labels naming the collector and the node a job was submitted for."""
        return {
            COLLECTOR_NAME_LABEL: COLLECTOR_CONTAINER,
            RESOURCE_NAME_LABEL: node_name,
            RESOURCE_KIND_LABEL: NODE_INFO_KIND,
        }

    def _job_builder(self, node_name: str, extra_labels: dict[str, str] | None = None) -> JobBuilder:
        cfg = self.config
        labels = {**self.identification_labels(node_name), **(extra_labels or {}), **cfg.labels}
        return (
            JobBuilder(cfg.template_name)
            .with_template_dir(cfg.template_dir)
            .with_namespace(cfg.namespace)
            .with_node_name(node_name)
            .with_labels(labels)
            .with_annotations(cfg.annotations)
            .with_timeout(cfg.collector_timeout)
            .with_security_context(cfg.security_context)
            .with_pod_security_context(cfg.pod_security_context)
            .with_image_ref(cfg.image_ref)
            .with_affinity(cfg.affinity)
            .with_tolerations(cfg.tolerations)
            .with_volumes(cfg.volumes)
            .with_volume_mounts(cfg.volume_mounts)
            .with_image_pull_secrets(cfg.image_pull_secrets)
            .with_node_config(cfg.node_config)
            .with_priority_class_name(cfg.priority_class_name)
            .with_resource_requirements(cfg.resource_requirements)
        )

    def _ensure_namespace(self) -> None:
        namespace = self.config.namespace
        try:
            self._cluster.read_namespace(namespace)
            return
        except API_ERRORS as e:
            if not isinstance(e, ApiException) or e.status != 404:
                raise NamespaceError(f"looking up namespace {namespace}: {describe_error(e)}") from e
        logger.info("Creating namespace %s", namespace)
        try:
            self._cluster.create_namespace(namespace)
        except API_ERRORS as e:
            raise NamespaceError(f"creating namespace {namespace}: {describe_error(e)}") from e

    def _delete_job(self, job: JobDescription) -> None:
        try:
            self._cluster.delete_job(job.namespace, job.name)
        except Exception as e:
            logger.warning("Failed to delete job %s/%s: %s", job.namespace, job.name, e)

    def apply_and_collect(self, node_name: str, cancel: threading.Event | None = None) -> str:
        """Run the collector on ``node_name``, wait for it, return its output and clean up.

        Cleanup (RBAC bundle, then the job) only happens once the job has
        completed. If submission or waiting fails, the job and any RBAC
        objects are left for ``cleanup``.
        """
        cfg = self.config
        self._ensure_namespace()

        bundle: RBACBundle | None = None
        if cfg.node_config:
            bundle = RBACBundle.for_namespace(cfg.namespace)
            self._rbac.create(bundle)

        builder = (
            self._job_builder(node_name, {AUTO_CREATED_LABEL: "true"})
            .with_name(self.job_name_for(node_name))
            .with_use_node_selector(True)
        )
        if bundle is not None:
            builder.with_service_account(bundle.service_account_name)
        job = builder.build()

        JobRunner(self._cluster, timeout=cfg.timeout, poll_interval=cfg.poll_interval, cancel=cancel).run(job)
        try:
            stream = self._logs.get_logs_by_job_and_container_name(job, COLLECTOR_CONTAINER, cancel)
            return read_all(stream)
        finally:
            if bundle is not None:
                self._rbac.delete(bundle)
            self._delete_job(job)

    def apply(self, node_name: str) -> Any:
        """Submit a job named from the config and return it without waiting.

        The caller owns the job from here on: no logs are read and nothing is deleted.
        """
        cfg = self.config
        job = (
            self._job_builder(node_name)
            .with_name(cfg.name)
            .with_service_account(cfg.service_account)
            .with_use_node_selector(cfg.use_node_selector)
            .build()
        )
        try:
            created = self._cluster.create_job(job.namespace, job.to_manifest())
        except API_ERRORS as e:
            raise ApplyError(f"creating job {job.namespace}/{job.name}: {describe_error(e)}") from e
        logger.info("Applied job %s/%s for node %s", job.namespace, job.name, node_name)
        return created

    def cleanup(self) -> None:
        """Delete the whole collector namespace; errors are logged and ignored."""
        try:
            self._cluster.delete_namespace(self.config.namespace)
        except Exception as e:
            logger.warning("Failed to delete namespace %s: %s", self.config.namespace, e)
