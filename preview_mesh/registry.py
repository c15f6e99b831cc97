"""Cluster registry protocol consumed by the preview engine.

The engine only needs four capabilities from the cluster: list objects of a
resource type, create an object, server-side apply an object, and delete an
object. ``preview_mesh.kubectl.KubectlRegistry`` provides them by shelling
out to kubectl; tests substitute an in-memory double.
"""

from __future__ import annotations

import typing as typ

Manifest = dict[str, typ.Any]

SERVICES = "services"
DEPLOYMENTS = "deployments.apps"
VIRTUAL_SERVICES = "virtualservices.networking.istio.io"

# kind -> resource name accepted by kubectl
RESOURCE_FOR_KIND: dict[str, str] = {
    "Service": SERVICES,
    "Deployment": DEPLOYMENTS,
    "VirtualService": VIRTUAL_SERVICES,
}


class ClusterRegistry(typ.Protocol):
    """Workload and routing registry capabilities."""

    def list_objects(self, resource: str, namespace: str | None) -> list[Manifest]:
        """List objects of ``resource``; ``namespace=None`` lists all namespaces."""
        ...

    def create_object(self, manifest: Manifest) -> Manifest:
        """Create ``manifest`` and return the stored object."""
        ...

    def apply_object(
        self, payload: bytes, *, field_manager: str, force: bool
    ) -> Manifest:
        """Server-side apply a serialized manifest as ``field_manager``."""
        ...

    def delete_object(self, resource: str, name: str, namespace: str) -> None:
        """Delete an object, ignoring one that is already gone."""
        ...


def object_ref(manifest: Manifest) -> tuple[str, str, str]:
    """Return ``(resource, name, namespace)`` identifying ``manifest``."""
    metadata = manifest.get("metadata", {})
    kind = manifest.get("kind", "")
    name = metadata.get("name", "")
    namespace = metadata.get("namespace", "")
    return RESOURCE_FOR_KIND.get(kind, kind), name, namespace


__all__ = [
    "DEPLOYMENTS",
    "RESOURCE_FOR_KIND",
    "SERVICES",
    "VIRTUAL_SERVICES",
    "ClusterRegistry",
    "Manifest",
    "object_ref",
]
