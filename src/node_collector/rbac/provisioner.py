"""Create and delete the collector's RBAC bundle."""

from __future__ import annotations

import logging

from node_collector.cluster.kube import API_ERRORS, describe_error
from node_collector.cluster.stores import RBACStore
from node_collector.errors import RBACProvisionError
from node_collector.rbac.models import RBACBundle

logger = logging.getLogger(__name__)


class RBACProvisioner:
    """Creates role, service account and binding; deletes them best-effort."""

    def __init__(self, store: RBACStore) -> None:
        self._store = store

    def create(self, bundle: RBACBundle) -> None:
        """Create role, then service account, then binding.

        Stops at the first failure. Objects created before it are left in
        place; the caller decides whether to call ``delete``.
        """
        steps = (
            ("cluster role", lambda: self._store.create_cluster_role(bundle.cluster_role())),
            (
                "service account",
                lambda: self._store.create_service_account(bundle.namespace, bundle.service_account()),
            ),
            ("role binding", lambda: self._store.create_cluster_role_binding(bundle.cluster_role_binding())),
        )
        for step, create in steps:
            try:
                create()
            except API_ERRORS as e:
                raise RBACProvisionError(step, describe_error(e)) from e
            logger.debug("Created %s for %s", step, bundle.namespace)
        logger.info("Provisioned RBAC bundle %s in %s", bundle.role_name, bundle.namespace)

    def delete(self, bundle: RBACBundle) -> None:
        """Delete binding, role and service account; failures are logged, never raised."""
        steps = (
            ("role binding", lambda: self._store.delete_cluster_role_binding(bundle.binding_name)),
            ("cluster role", lambda: self._store.delete_cluster_role(bundle.role_name)),
            (
                "service account",
                lambda: self._store.delete_service_account(bundle.namespace, bundle.service_account_name),
            ),
        )
        for step, delete in steps:
            try:
                delete()
            except Exception as e:
                logger.warning("Failed to delete %s for %s: %s", step, bundle.namespace, e)
