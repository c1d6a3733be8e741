"""RBAC layer: the bundle model and its provisioner."""

from node_collector.rbac.models import RBACBundle
from node_collector.rbac.provisioner import RBACProvisioner

__all__ = [
    "RBACBundle",
    "RBACProvisioner",
]
