"""Clone origin Services and Deployments into preview variants.

Clones are deep copies of the origin manifests with server-assigned identity
removed, a preview name, and the selector label rewritten to the preview
value. The functions here only build manifests; creation is left to the
registry so cloning stays testable without a cluster.

Examples
--------
Clone the origin Service and its workload for version 42:

    selector = resolve_selector(origin_service)
    service = clone_service(origin_service, selector, "42")
    workload = find_workload(deployments, selector, "default")
    deployment = clone_deployment(workload, selector, "42")

"""

from __future__ import annotations

import copy
import typing as typ

from preview_mesh.errors import WorkloadNotFoundError
from preview_mesh.naming import preview_resource_name

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from preview_mesh.registry import Manifest
    from preview_mesh.selector import SelectorPair

# Metadata assigned by the API server; a create carrying them is rejected or
# would claim the origin's identity.
SERVER_METADATA_FIELDS = (
    "resourceVersion",
    "uid",
    "creationTimestamp",
    "generation",
    "managedFields",
    "selfLink",
    "deletionTimestamp",
    "deletionGracePeriodSeconds",
    "ownerReferences",
)
LAST_APPLIED_ANNOTATION = "kubectl.kubernetes.io/last-applied-configuration"

# Service spec fields allocated per object by the cluster.
_SERVICE_ALLOCATED_FIELDS = ("healthCheckNodePort",)
_SERVICE_IP_FIELDS = ("clusterIP", "clusterIPs")

# clusterIP value a user sets to declare a headless Service.
HEADLESS_CLUSTER_IP = "None"


def strip_server_fields(manifest: Manifest) -> Manifest:
    """Remove server-managed bookkeeping from ``manifest`` in place.

    Returns the same manifest for chaining.
    """
    metadata = manifest.setdefault("metadata", {})
    for field in SERVER_METADATA_FIELDS:
        metadata.pop(field, None)

    annotations = metadata.get("annotations")
    if annotations is not None:
        annotations.pop(LAST_APPLIED_ANNOTATION, None)
        if not annotations:
            del metadata["annotations"]

    manifest.pop("status", None)
    return manifest


def _renamed_copy(origin: Manifest, version: str) -> Manifest:
    clone = strip_server_fields(copy.deepcopy(origin))
    metadata = clone["metadata"]
    metadata["name"] = preview_resource_name(metadata.get("name", ""), version)
    return clone


def clone_service(origin: Manifest, selector: SelectorPair, version: str) -> Manifest:
    """Build the preview Service for ``origin``.

    Parameters
    ----------
    origin : Manifest
        Origin Service manifest.
    selector : SelectorPair
        Selector pair resolved from ``origin``.
    version : str
        Preview version tag.

    Returns
    -------
    Manifest
        A new Service named ``pr<version>-<origin>`` whose own label and
        selector for ``selector.key`` carry the preview value. A headless
        origin yields a headless clone.

    """
    clone = _renamed_copy(origin, version)
    preview_value = selector.preview_value(version)

    labels = clone["metadata"].setdefault("labels", {})
    labels[selector.key] = preview_value

    spec = clone.setdefault("spec", {})
    stripped = _SERVICE_ALLOCATED_FIELDS
    if spec.get("clusterIP") != HEADLESS_CLUSTER_IP:
        stripped += _SERVICE_IP_FIELDS
    for field in stripped:
        spec.pop(field, None)
    for port in spec.get("ports", []):
        port.pop("nodePort", None)
    spec.setdefault("selector", {})[selector.key] = preview_value
    return clone


def find_workload(
    deployments: cabc.Iterable[Manifest], selector: SelectorPair, namespace: str
) -> Manifest:
    """Return the first Deployment whose matchLabels carry ``selector``.

    Raises
    ------
    WorkloadNotFoundError
        If no Deployment matches. An empty clone is never produced.

    """
    for deployment in deployments:
        match_labels = (
            deployment.get("spec", {}).get("selector", {}).get("matchLabels")
        )
        if selector.matches(match_labels):
            return deployment
    raise WorkloadNotFoundError(selector.key, selector.value, namespace)


def clone_deployment(
    workload: Manifest, selector: SelectorPair, version: str
) -> Manifest:
    """Build the preview Deployment for ``workload``.

    The clone's ``spec.selector.matchLabels`` and pod template labels carry
    the preview value for ``selector.key`` so its pods are selected only by
    the preview Service.
    """
    clone = _renamed_copy(workload, version)
    preview_value = selector.preview_value(version)

    spec = clone.setdefault("spec", {})
    spec.setdefault("selector", {}).setdefault("matchLabels", {})[selector.key] = (
        preview_value
    )
    template_metadata = spec.setdefault("template", {}).setdefault("metadata", {})
    template_metadata.setdefault("labels", {})[selector.key] = preview_value
    return clone


__all__ = [
    "HEADLESS_CLUSTER_IP",
    "LAST_APPLIED_ANNOTATION",
    "SERVER_METADATA_FIELDS",
    "clone_deployment",
    "clone_service",
    "find_workload",
    "strip_server_fields",
]
