"""Build a JobDescription from a named template and a set of mutations.

Mutations run in the fixed order of ``_MUTATIONS``. Most of them touch
disjoint fields. Two groups depend on the single-primary-container template
shape and must stay as they are:

* resource requirements are written to every container;
* image, container security context, ``--node`` arguments and volume mounts
  only touch the first container (auxiliary sidecars are left alone).
"""

from __future__ import annotations

import functools
from datetime import timedelta
from typing import Any, Callable, Iterable

from kubernetes import client

from node_collector.errors import DecodeError
from node_collector.manifest.models import JobDescription, JobOptions
from node_collector.manifest.templates import load_template

HOSTNAME_LABEL = "kubernetes.io/hostname"

Manifest = dict[str, Any]


@functools.lru_cache(maxsize=1)
def _serializer() -> client.ApiClient:
    return client.ApiClient()


def to_plain(obj: Any) -> Any:
    """Turn kubernetes model objects (V1Affinity, ...) into manifest dicts."""
    if obj is None:
        return None
    return _serializer().sanitize_for_serialization(obj)


def _pod_spec(manifest: Manifest) -> dict[str, Any]:
    return manifest["spec"]["template"]["spec"]


def _primary(manifest: Manifest) -> dict[str, Any]:
    return _pod_spec(manifest)["containers"][0]


def _set_namespace(manifest: Manifest, opts: JobOptions) -> None:
    if opts.namespace:
        manifest["metadata"]["namespace"] = opts.namespace
    manifest["metadata"].setdefault("namespace", "default")


def _set_name(manifest: Manifest, opts: JobOptions) -> None:
    if opts.name:
        manifest["metadata"]["name"] = opts.name


def _set_image(manifest: Manifest, opts: JobOptions) -> None:
    if opts.image_ref:
        _primary(manifest)["image"] = opts.image_ref


def _add_node_args(manifest: Manifest, opts: JobOptions) -> None:
    if opts.node_config:
        container = _primary(manifest)
        container["args"] = list(container.get("args") or []) + ["--node", opts.node_name]


def _set_node_selector(manifest: Manifest, opts: JobOptions) -> None:
    if opts.use_node_selector:
        spec = _pod_spec(manifest)
        spec.pop("nodeName", None)
        spec["nodeSelector"] = {HOSTNAME_LABEL: opts.node_name}


def _merge_labels(manifest: Manifest, opts: JobOptions) -> None:
    if opts.labels:
        labels = manifest["metadata"].get("labels") or {}
        labels.update(opts.labels)
        manifest["metadata"]["labels"] = labels


def _merge_annotations(manifest: Manifest, opts: JobOptions) -> None:
    if opts.annotations:
        annotations = manifest["metadata"].get("annotations") or {}
        annotations.update(opts.annotations)
        manifest["metadata"]["annotations"] = annotations


def _set_service_account(manifest: Manifest, opts: JobOptions) -> None:
    if opts.service_account:
        _pod_spec(manifest)["serviceAccountName"] = opts.service_account


def _set_affinity(manifest: Manifest, opts: JobOptions) -> None:
    if opts.affinity is not None:
        _pod_spec(manifest)["affinity"] = opts.affinity


def _set_tolerations(manifest: Manifest, opts: JobOptions) -> None:
    if opts.tolerations:
        _pod_spec(manifest)["tolerations"] = list(opts.tolerations)


def _set_priority_class(manifest: Manifest, opts: JobOptions) -> None:
    if opts.priority_class_name:
        _pod_spec(manifest)["priorityClassName"] = opts.priority_class_name


def _set_pod_security_context(manifest: Manifest, opts: JobOptions) -> None:
    if opts.pod_security_context is not None:
        _pod_spec(manifest)["securityContext"] = opts.pod_security_context


def _set_active_deadline(manifest: Manifest, opts: JobOptions) -> None:
    if opts.timeout is None:
        return
    seconds = int(opts.timeout.total_seconds())
    if seconds > 0:
        manifest["spec"]["activeDeadlineSeconds"] = seconds


def _set_container_security_context(manifest: Manifest, opts: JobOptions) -> None:
    if opts.security_context is not None:
        _primary(manifest)["securityContext"] = opts.security_context


def _set_volumes(manifest: Manifest, opts: JobOptions) -> None:
    if opts.volumes:
        _pod_spec(manifest)["volumes"] = list(opts.volumes)


def _set_image_pull_secrets(manifest: Manifest, opts: JobOptions) -> None:
    if opts.image_pull_secrets:
        _pod_spec(manifest)["imagePullSecrets"] = list(opts.image_pull_secrets)


def _set_resources(manifest: Manifest, opts: JobOptions) -> None:
    if opts.resource_requirements is not None:
        for container in _pod_spec(manifest)["containers"]:
            container["resources"] = dict(opts.resource_requirements)


def _set_volume_mounts(manifest: Manifest, opts: JobOptions) -> None:
    if opts.volume_mounts:
        _primary(manifest)["volumeMounts"] = list(opts.volume_mounts)


_MUTATIONS: tuple[Callable[[Manifest, JobOptions], None], ...] = (
    _set_namespace,
    _set_name,
    _set_image,
    _add_node_args,
    _set_node_selector,
    _merge_labels,
    _merge_annotations,
    _set_service_account,
    _set_affinity,
    _set_tolerations,
    _set_priority_class,
    _set_pod_security_context,
    _set_active_deadline,
    _set_container_security_context,
    _set_volumes,
    _set_image_pull_secrets,
    _set_resources,
    _set_volume_mounts,
)


class JobBuilder:
    """Accumulates job options; ``build()`` validates them and renders the job.

    Setting the same option twice keeps the last value. Passing ``None`` leaves
    the option unset, so the template value is kept.
    """

    def __init__(self, template: str | None = None) -> None:
        self._options: dict[str, Any] = {}
        if template:
            self._options["template"] = template

    def _set(self, key: str, value: Any) -> JobBuilder:
        if value is not None:
            self._options[key] = value
        return self

    def with_template(self, template: str | None) -> JobBuilder:
        return self._set("template", template)

    def with_template_dir(self, template_dir: str | None) -> JobBuilder:
        return self._set("template_dir", str(template_dir) if template_dir else None)

    def with_node_name(self, node_name: str | None) -> JobBuilder:
        return self._set("node_name", node_name)

    def with_name(self, name: str | None) -> JobBuilder:
        return self._set("name", name or None)

    def with_namespace(self, namespace: str | None) -> JobBuilder:
        return self._set("namespace", namespace)

    def with_service_account(self, service_account: str | None) -> JobBuilder:
        return self._set("service_account", service_account or None)

    def with_labels(self, labels: dict[str, str] | None) -> JobBuilder:
        return self._set("labels", dict(labels) if labels is not None else None)

    def with_annotations(self, annotations: dict[str, str] | None) -> JobBuilder:
        return self._set("annotations", dict(annotations) if annotations is not None else None)

    def with_affinity(self, affinity: Any) -> JobBuilder:
        return self._set("affinity", to_plain(affinity))

    def with_tolerations(self, tolerations: Iterable[Any] | None) -> JobBuilder:
        return self._set("tolerations", _plain_list(tolerations))

    def with_priority_class_name(self, priority_class_name: str | None) -> JobBuilder:
        return self._set("priority_class_name", priority_class_name or None)

    def with_image_ref(self, image_ref: str | None) -> JobBuilder:
        return self._set("image_ref", image_ref or None)

    def with_security_context(self, security_context: Any) -> JobBuilder:
        return self._set("security_context", to_plain(security_context))

    def with_pod_security_context(self, pod_security_context: Any) -> JobBuilder:
        return self._set("pod_security_context", to_plain(pod_security_context))

    def with_volumes(self, volumes: Iterable[Any] | None) -> JobBuilder:
        return self._set("volumes", _plain_list(volumes))

    def with_volume_mounts(self, volume_mounts: Iterable[Any] | None) -> JobBuilder:
        return self._set("volume_mounts", _plain_list(volume_mounts))

    def with_image_pull_secrets(self, image_pull_secrets: Iterable[Any] | None) -> JobBuilder:
        return self._set("image_pull_secrets", _plain_list(image_pull_secrets))

    def with_resource_requirements(self, resource_requirements: Any) -> JobBuilder:
        return self._set("resource_requirements", to_plain(resource_requirements))

    def with_timeout(self, timeout: timedelta | float | None) -> JobBuilder:
        return self._set("timeout", timeout)

    def with_node_config(self, node_config: bool) -> JobBuilder:
        return self._set("node_config", node_config)

    def with_use_node_selector(self, use_node_selector: bool) -> JobBuilder:
        return self._set("use_node_selector", use_node_selector)

    def options(self) -> JobOptions:
        """Validate the accumulated options."""
        return JobOptions(**self._options)

    def build(self) -> JobDescription:
        opts = self.options()
        manifest = load_template(opts.template, opts.template_dir)
        for mutate in _MUTATIONS:
            mutate(manifest, opts)
        name = manifest["metadata"].get("name")
        if not name:
            raise DecodeError(f"template {opts.template!r} has no metadata.name and no name was given")
        return JobDescription(
            name=name,
            namespace=manifest["metadata"]["namespace"],
            node_name=opts.node_name,
            manifest=manifest,
        )


def _plain_list(items: Iterable[Any] | None) -> list[Any] | None:
    if items is None:
        return None
    return [to_plain(item) for item in items]
