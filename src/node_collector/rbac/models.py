"""RBAC objects granting the collector workload read access to node data."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_PURPOSE = "node-collector"


class RBACBundle(BaseModel):
    """ClusterRole, ServiceAccount and ClusterRoleBinding created as one unit."""

    model_config = ConfigDict(frozen=True)

    namespace: str = Field(..., min_length=1)
    role_name: str
    service_account_name: str
    binding_name: str

    @classmethod
    def for_namespace(cls, namespace: str, purpose: str = DEFAULT_PURPOSE) -> RBACBundle:
        """Names derived from purpose and namespace so sessions in different namespaces never collide."""
        prefix = f"{purpose}-{namespace}"
        return cls(
            namespace=namespace,
            role_name=f"{prefix}-role",
            service_account_name=f"{prefix}-sa",
            binding_name=f"{prefix}-binding",
        )

    def cluster_role(self) -> dict[str, Any]:
        return {
            "apiVersion": "rbac.authorization.k8s.io/v1",
            "kind": "ClusterRole",
            "metadata": {"name": self.role_name},
            "rules": [
                {"apiGroups": [""], "resources": ["nodes/proxy"], "verbs": ["get"]},
            ],
        }

    def service_account(self) -> dict[str, Any]:
        return {
            "apiVersion": "v1",
            "kind": "ServiceAccount",
            "metadata": {"name": self.service_account_name, "namespace": self.namespace},
        }

    def cluster_role_binding(self) -> dict[str, Any]:
        return {
            "apiVersion": "rbac.authorization.k8s.io/v1",
            "kind": "ClusterRoleBinding",
            "metadata": {"name": self.binding_name},
            "roleRef": {
                "apiGroup": "rbac.authorization.k8s.io",
                "kind": "ClusterRole",
                "name": self.role_name,
            },
            "subjects": [
                {
                    "kind": "ServiceAccount",
                    "name": self.service_account_name,
                    "namespace": self.namespace,
                }
            ],
        }
