"""Job descriptions, builder options and identity hashing."""

from __future__ import annotations

import copy
import hashlib
from datetime import timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Same alphabet Kubernetes uses for generated names: no vowels, no 0/1/3.
_SAFE_ALPHABET = "bcdfghjklmnpqrstvwxz2456789"


def safe_encode(value: str) -> str:
    """Map every character onto the safe alphabet."""
    return "".join(_SAFE_ALPHABET[ord(ch) % len(_SAFE_ALPHABET)] for ch in value)


class ObjectRef(BaseModel):
    """Identity key of a collection target."""

    model_config = ConfigDict(frozen=True)

    kind: str
    name: str
    namespace: str

    def identity(self) -> str:
        return f"{self.kind}/{self.namespace}/{self.name}"


def compute_hash(ref: ObjectRef) -> str:
    """Short, deterministic, DNS-safe identifier for ``ref``."""
    digest = hashlib.sha256(ref.identity().encode("utf-8")).digest()
    return safe_encode(str(int.from_bytes(digest[:4], "big")))


class JobOptions(BaseModel):
    """Validated option set consumed by JobBuilder.build()."""

    model_config = ConfigDict(frozen=True)

    template: str = Field(..., min_length=1)
    template_dir: str | None = None
    node_name: str | None = None
    namespace: str = ""
    name: str | None = None
    image_ref: str | None = None
    service_account: str | None = None
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    affinity: dict[str, Any] | None = None
    tolerations: list[dict[str, Any]] = Field(default_factory=list)
    priority_class_name: str | None = None
    pod_security_context: dict[str, Any] | None = None
    security_context: dict[str, Any] | None = None
    volumes: list[dict[str, Any]] = Field(default_factory=list)
    volume_mounts: list[dict[str, Any]] = Field(default_factory=list)
    image_pull_secrets: list[dict[str, Any]] = Field(default_factory=list)
    resource_requirements: dict[str, Any] | None = None
    timeout: timedelta | None = None
    node_config: bool = False
    use_node_selector: bool = False

    @model_validator(mode="after")
    def _node_name_required(self) -> JobOptions:
        if (self.node_config or self.use_node_selector) and not self.node_name:
            raise ValueError("node_name is required when node_config or use_node_selector is set")
        return self


class JobDescription(BaseModel):
    """A ready-to-submit batch/v1 Job. Treat as read-only once built."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    namespace: str
    node_name: str | None = None
    manifest: dict[str, Any]

    def to_manifest(self) -> dict[str, Any]:
        """Deep copy of the manifest, safe to hand to an API client."""
        return copy.deepcopy(self.manifest)

    @property
    def _pod_spec(self) -> dict[str, Any]:
        return self.manifest["spec"]["template"]["spec"]

    @property
    def labels(self) -> dict[str, str]:
        return dict(self.manifest["metadata"].get("labels") or {})

    @property
    def annotations(self) -> dict[str, str]:
        return dict(self.manifest["metadata"].get("annotations") or {})

    @property
    def containers(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self._pod_spec["containers"])

    @property
    def image(self) -> str | None:
        return self._pod_spec["containers"][0].get("image")

    @property
    def args(self) -> list[str]:
        return list(self._pod_spec["containers"][0].get("args") or [])

    @property
    def service_account(self) -> str | None:
        return self._pod_spec.get("serviceAccountName")

    @property
    def node_selector(self) -> dict[str, str]:
        return dict(self._pod_spec.get("nodeSelector") or {})

    @property
    def active_deadline_seconds(self) -> int | None:
        return self.manifest["spec"].get("activeDeadlineSeconds")

    def pod_spec_field(self, key: str) -> Any:
        """Deep copy of a pod spec field (affinity, tolerations, volumes, ...)."""
        return copy.deepcopy(self._pod_spec.get(key))
