"""Collector configuration and identification metadata keys."""

from __future__ import annotations

from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field

from node_collector.config import Settings
from node_collector.manifest.builder import to_plain

# Identification metadata; attached to jobs, never interpreted here.
COLLECTOR_NAME_LABEL = "node-collector.io/name"
AUTO_CREATED_LABEL = "node-collector.io/auto-created"
RESOURCE_NAME_LABEL = "node-collector.io/resource-name"
RESOURCE_KIND_LABEL = "node-collector.io/resource-kind"

DEFAULT_NAMESPACE = "node-collector"
DEFAULT_TEMPLATE = "node-collector"


class CollectorConfig(BaseModel):
    """Immutable settings shared by every job a Collector submits."""

    model_config = ConfigDict(frozen=True)

    namespace: str = Field(default=DEFAULT_NAMESPACE, min_length=1)
    template_name: str = Field(default=DEFAULT_TEMPLATE, min_length=1)
    template_dir: str | None = None
    name: str | None = None
    image_ref: str | None = None
    service_account: str | None = None
    priority_class_name: str | None = None
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    affinity: dict[str, Any] | None = None
    tolerations: list[dict[str, Any]] = Field(default_factory=list)
    pod_security_context: dict[str, Any] | None = None
    security_context: dict[str, Any] | None = None
    volumes: list[dict[str, Any]] = Field(default_factory=list)
    volume_mounts: list[dict[str, Any]] = Field(default_factory=list)
    image_pull_secrets: list[dict[str, Any]] = Field(default_factory=list)
    resource_requirements: dict[str, Any] | None = None
    node_config: bool = False
    use_node_selector: bool = False
    # Seconds. timeout bounds the wait; collector_timeout becomes activeDeadlineSeconds.
    timeout: float = Field(default=0.0, ge=0.0)
    collector_timeout: float = Field(default=0.0, ge=0.0)
    poll_interval: float = Field(default=2.0, gt=0.0)
    pod_timeout: float = Field(default=30.0, ge=0.0)

    @classmethod
    def builder(cls) -> CollectorConfigBuilder:
        return CollectorConfigBuilder()

    @classmethod
    def from_settings(cls, settings: Settings) -> CollectorConfig:
        return CollectorConfigBuilder.from_settings(settings).build()

    def with_labels(self, labels: dict[str, str]) -> CollectorConfig:
        """Copy with ``labels`` merged over the current labels."""
        return self.model_copy(update={"labels": {**self.labels, **labels}})


class CollectorConfigBuilder:
    """Records options in call order; the last call for an option wins.

    ``with_labels`` is the exception: successive calls merge. Options never
    set keep the CollectorConfig defaults.
    """

    def __init__(self) -> None:
        self._fields: dict[str, Any] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> CollectorConfigBuilder:
        """Builder preloaded from environment settings; later calls override."""
        return (
            cls()
            .with_namespace(settings.namespace)
            .with_template_name(settings.template_name)
            .with_template_dir(str(settings.template_dir) if settings.template_dir else None)
            .with_image_ref(settings.image_ref)
            .with_service_account(settings.service_account)
            .with_node_config(settings.node_config)
            .with_timeout(settings.wait_timeout_seconds)
            .with_collector_timeout(settings.job_timeout_seconds)
            .with_poll_interval(settings.poll_interval_seconds)
            .with_pod_timeout(settings.pod_lookup_timeout_seconds)
        )

    def _set(self, key: str, value: Any) -> CollectorConfigBuilder:
        if value is not None:
            self._fields[key] = value
        return self

    def with_namespace(self, namespace: str | None) -> CollectorConfigBuilder:
        return self._set("namespace", namespace)

    def with_template_name(self, name: str | None) -> CollectorConfigBuilder:
        return self._set("template_name", name)

    def with_template_dir(self, template_dir: str | None) -> CollectorConfigBuilder:
        return self._set("template_dir", template_dir)

    def with_name(self, name: str | None) -> CollectorConfigBuilder:
        return self._set("name", name)

    def with_image_ref(self, image_ref: str | None) -> CollectorConfigBuilder:
        return self._set("image_ref", image_ref)

    def with_service_account(self, service_account: str | None) -> CollectorConfigBuilder:
        return self._set("service_account", service_account)

    def with_priority_class_name(self, name: str | None) -> CollectorConfigBuilder:
        return self._set("priority_class_name", name)

    def with_labels(self, labels: dict[str, str]) -> CollectorConfigBuilder:
        self._fields["labels"] = {**self._fields.get("labels", {}), **labels}
        return self

    def with_annotations(self, annotations: dict[str, str] | None) -> CollectorConfigBuilder:
        return self._set("annotations", dict(annotations) if annotations is not None else None)

    def with_affinity(self, affinity: Any) -> CollectorConfigBuilder:
        return self._set("affinity", to_plain(affinity))

    def with_tolerations(self, tolerations: Iterable[Any] | None) -> CollectorConfigBuilder:
        return self._set("tolerations", _plain_list(tolerations))

    def with_pod_security_context(self, context: Any) -> CollectorConfigBuilder:
        return self._set("pod_security_context", to_plain(context))

    def with_security_context(self, context: Any) -> CollectorConfigBuilder:
        return self._set("security_context", to_plain(context))

    def with_volumes(self, volumes: Iterable[Any] | None) -> CollectorConfigBuilder:
        return self._set("volumes", _plain_list(volumes))

    def with_volume_mounts(self, volume_mounts: Iterable[Any] | None) -> CollectorConfigBuilder:
        return self._set("volume_mounts", _plain_list(volume_mounts))

    def with_image_pull_secrets(self, secrets: Iterable[Any] | None) -> CollectorConfigBuilder:
        return self._set("image_pull_secrets", _plain_list(secrets))

    def with_resource_requirements(self, requirements: Any) -> CollectorConfigBuilder:
        return self._set("resource_requirements", to_plain(requirements))

    def with_node_config(self, node_config: bool) -> CollectorConfigBuilder:
        return self._set("node_config", node_config)

    def with_use_node_selector(self, use_node_selector: bool) -> CollectorConfigBuilder:
        return self._set("use_node_selector", use_node_selector)

    def with_timeout(self, seconds: float | None) -> CollectorConfigBuilder:
        return self._set("timeout", seconds)

    def with_collector_timeout(self, seconds: float | None) -> CollectorConfigBuilder:
        return self._set("collector_timeout", seconds)

    def with_poll_interval(self, seconds: float | None) -> CollectorConfigBuilder:
        return self._set("poll_interval", seconds)

    def with_pod_timeout(self, seconds: float | None) -> CollectorConfigBuilder:
        return self._set("pod_timeout", seconds)

    def build(self) -> CollectorConfig:
        return CollectorConfig(**self._fields)


def _plain_list(items: Iterable[Any] | None) -> list[Any] | None:
    if items is None:
        return None
    return [to_plain(item) for item in items]
