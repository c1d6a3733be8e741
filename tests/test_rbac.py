"""Tests for the RBAC bundle and provisioner."""

import pytest

from conftest import api_error, transport_error
from node_collector.errors import RBACProvisionError
from node_collector.rbac import RBACBundle, RBACProvisioner


def test_bundle_names_derive_from_namespace():
    bundle = RBACBundle.for_namespace("collector-ns")

    assert bundle.role_name == "node-collector-collector-ns-role"
    assert bundle.service_account_name == "node-collector-collector-ns-sa"
    assert bundle.binding_name == "node-collector-collector-ns-binding"
    assert RBACBundle.for_namespace("other").role_name != bundle.role_name


def test_binding_points_at_role_and_service_account():
    bundle = RBACBundle.for_namespace("ns")
    binding = bundle.cluster_role_binding()

    assert binding["roleRef"]["name"] == bundle.role_name
    assert binding["subjects"] == [{"kind": "ServiceAccount", "name": bundle.service_account_name, "namespace": "ns"}]
    assert bundle.cluster_role()["rules"][0]["resources"] == ["nodes/proxy"]


def test_create_in_order(cluster):
    RBACProvisioner(cluster).create(RBACBundle.for_namespace("ns"))

    assert cluster.methods() == [
        "create_cluster_role",
        "create_service_account",
        "create_cluster_role_binding",
    ]


def test_create_fails_fast_without_rollback(cluster):
    cluster.errors["create_service_account"] = api_error(403, "Forbidden")

    with pytest.raises(RBACProvisionError) as exc:
        RBACProvisioner(cluster).create(RBACBundle.for_namespace("ns"))

    assert exc.value.step == "service account"
    assert cluster.methods() == ["create_cluster_role", "create_service_account"]


def test_delete_is_best_effort(cluster):
    cluster.errors["delete_cluster_role_binding"] = api_error(404, "Not Found")
    cluster.errors["delete_cluster_role"] = RuntimeError("connection reset")
    bundle = RBACBundle.for_namespace("ns")

    RBACProvisioner(cluster).delete(bundle)

    assert cluster.calls == [
        ("delete_cluster_role_binding", bundle.binding_name),
        ("delete_cluster_role", bundle.role_name),
        ("delete_service_account", "ns", bundle.service_account_name),
    ]


def test_create_maps_transport_failure(cluster):
    cluster.errors["create_cluster_role"] = transport_error("/apis/rbac.authorization.k8s.io/v1/clusterroles")

    with pytest.raises(RBACProvisionError) as exc:
        RBACProvisioner(cluster).create(RBACBundle.for_namespace("ns"))

    assert exc.value.step == "cluster role"
    assert "Max retries exceeded" in str(exc.value)
    assert cluster.methods() == ["create_cluster_role"]
