"""Unit tests for Service and Deployment cloning."""

from __future__ import annotations

import copy

import pytest

from preview_mesh.cloner import (
    HEADLESS_CLUSTER_IP,
    LAST_APPLIED_ANNOTATION,
    clone_deployment,
    clone_service,
    find_workload,
    strip_server_fields,
)
from preview_mesh.errors import PreviewNameError, WorkloadNotFoundError
from preview_mesh.selector import SelectorPair
from tests.helpers.fake_registry import make_deployment, make_service

SELECTOR = SelectorPair(key="app", value="checkout")


class TestStripServerFields:
    """Tests for strip_server_fields."""

    def test_removes_identity_and_status(self) -> None:
        """Server-assigned metadata and status are dropped."""
        manifest = make_deployment("checkout", {"app": "checkout"})

        strip_server_fields(manifest)

        metadata = manifest["metadata"]
        for field in ("uid", "resourceVersion", "generation", "managedFields"):
            assert field not in metadata, f"{field} should be stripped"
        assert "status" not in manifest
        assert metadata["name"] == "checkout"

    def test_drops_last_applied_annotation_only(self) -> None:
        """Other annotations survive; an emptied mapping is removed."""
        kept = make_service("checkout", {"app": "checkout"})
        kept["metadata"]["annotations"] = {
            LAST_APPLIED_ANNOTATION: "{}",
            "team": "payments",
        }
        emptied = make_service("checkout", {"app": "checkout"})
        emptied["metadata"]["annotations"] = {LAST_APPLIED_ANNOTATION: "{}"}

        strip_server_fields(kept)
        strip_server_fields(emptied)

        assert kept["metadata"]["annotations"] == {"team": "payments"}
        assert "annotations" not in emptied["metadata"]


class TestCloneService:
    """Tests for clone_service."""

    def test_renames_and_relabels(self) -> None:
        """The clone selects only preview pods and carries the preview name."""
        origin = make_service("checkout", {"app": "checkout"})

        clone = clone_service(origin, SELECTOR, "42")

        assert clone["metadata"]["name"] == "pr42-checkout"
        assert clone["metadata"]["namespace"] == "default"
        assert clone["metadata"]["labels"]["app"] == "pr42-checkout"
        assert clone["spec"]["selector"] == {"app": "pr42-checkout"}

    def test_drops_cluster_allocated_fields(self) -> None:
        """Cluster IPs and node ports are left for the cluster to assign."""
        origin = make_service("checkout", {"app": "checkout"})
        origin["spec"]["type"] = "NodePort"
        origin["spec"]["ports"][0]["nodePort"] = 30080

        clone = clone_service(origin, SELECTOR, "42")

        assert "clusterIP" not in clone["spec"]
        assert "clusterIPs" not in clone["spec"]
        assert clone["spec"]["ports"] == [
            {"name": "http", "port": 80, "targetPort": 8080}
        ]
        assert "uid" not in clone["metadata"]
        assert "status" not in clone

    def test_headless_service_stays_headless(self) -> None:
        """A user-declared clusterIP of None is copied, not cleared."""
        origin = make_service("checkout", {"app": "checkout"})
        origin["spec"]["clusterIP"] = HEADLESS_CLUSTER_IP
        origin["spec"]["clusterIPs"] = [HEADLESS_CLUSTER_IP]

        clone = clone_service(origin, SELECTOR, "42")

        assert clone["spec"]["clusterIP"] == "None"
        assert clone["spec"]["clusterIPs"] == ["None"]
        assert clone["spec"]["selector"] == {"app": "pr42-checkout"}

    def test_keeps_other_selector_entries(self) -> None:
        """Only the resolved key is rewritten."""
        origin = make_service("checkout", {"app": "checkout", "tier": "web"})

        clone = clone_service(origin, SELECTOR, "42")

        assert clone["spec"]["selector"] == {"app": "pr42-checkout", "tier": "web"}

    def test_origin_is_not_modified(self) -> None:
        """Cloning works on a deep copy."""
        origin = make_service("checkout", {"app": "checkout"})
        snapshot = copy.deepcopy(origin)

        clone_service(origin, SELECTOR, "42")

        assert origin == snapshot

    def test_overlong_name_is_rejected(self) -> None:
        """Origins whose preview name would exceed the limit fail."""
        origin = make_service("a" * 60, {"app": "checkout"})

        with pytest.raises(PreviewNameError):
            clone_service(origin, SELECTOR, "42")


class TestFindWorkload:
    """Tests for find_workload."""

    def test_returns_first_match(self) -> None:
        """The first Deployment whose matchLabels carry the pair is used."""
        deployments = [
            make_deployment("cart", {"app": "cart"}),
            make_deployment("checkout-v1", {"app": "checkout"}),
            make_deployment("checkout-v2", {"app": "checkout"}),
        ]

        workload = find_workload(deployments, SELECTOR, "default")

        assert workload["metadata"]["name"] == "checkout-v1"

    def test_missing_workload_fails(self) -> None:
        """No silent empty clone is produced when nothing matches."""
        deployments = [make_deployment("cart", {"app": "cart"})]

        with pytest.raises(WorkloadNotFoundError, match="app=checkout"):
            find_workload(deployments, SELECTOR, "default")

    def test_deployment_without_selector_is_skipped(self) -> None:
        """Deployments lacking matchLabels never match."""
        broken = make_deployment("odd", {"app": "checkout"})
        del broken["spec"]["selector"]

        with pytest.raises(WorkloadNotFoundError):
            find_workload([broken], SELECTOR, "default")


class TestCloneDeployment:
    """Tests for clone_deployment."""

    def test_rewrites_selector_and_pod_labels(self) -> None:
        """The clone's pods carry the preview value and nothing else changes."""
        workload = make_deployment(
            "checkout", {"app": "checkout", "track": "stable"}, image="shop:2.1"
        )

        clone = clone_deployment(workload, SELECTOR, "42")

        assert clone["metadata"]["name"] == "pr42-checkout"
        assert clone["spec"]["selector"]["matchLabels"] == {
            "app": "pr42-checkout",
            "track": "stable",
        }
        assert clone["spec"]["template"]["metadata"]["labels"]["app"] == (
            "pr42-checkout"
        )
        assert clone["spec"]["template"]["spec"]["containers"][0]["image"] == (
            "shop:2.1"
        )
        assert "managedFields" not in clone["metadata"]
        assert "status" not in clone

    def test_workload_is_not_modified(self) -> None:
        """The listed Deployment stays untouched."""
        workload = make_deployment("checkout", {"app": "checkout"})
        snapshot = copy.deepcopy(workload)

        clone_deployment(workload, SELECTOR, "42")

        assert workload == snapshot
