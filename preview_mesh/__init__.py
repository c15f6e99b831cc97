"""Header-routed preview deployments for Istio meshes.

A preview is a clone of one origin Service and its Deployment, named
``pr<version>-<origin>``, reachable through the mesh when the preview header
starts with ``pr<version>-`` and from outside on its own URL through the
ingress gateway. The primary entrypoints are:

- create_preview: Clone the origin workload and compose its routes
- list_previews: List previews routed for an origin Service

For lower-level operations, import directly from submodules:

- preview_mesh.naming: Preview name encoding and decoding
- preview_mesh.selector: Origin selector resolution
- preview_mesh.cloner: Service and Deployment cloning
- preview_mesh.routes: Mesh route table composition
- preview_mesh.gateway: Gateway route construction
- preview_mesh.kubectl: kubectl-backed cluster registry

"""

from __future__ import annotations

from preview_mesh.config import PreviewConfig
from preview_mesh.errors import (
    AlreadyExistsError,
    NotFoundError,
    OriginNotFoundError,
    PreviewConfigError,
    PreviewError,
    PreviewNameError,
    PreviewStageError,
    PreviewURLError,
    RemoteTransportError,
    SelectorNotFoundError,
    SerializationError,
    WorkloadNotFoundError,
)
from preview_mesh.kubectl import KubectlRegistry
from preview_mesh.orchestration import (
    PreviewRequest,
    PreviewResult,
    PreviewRoute,
    create_preview,
    list_previews,
)

__all__ = [
    "AlreadyExistsError",
    "KubectlRegistry",
    "NotFoundError",
    "OriginNotFoundError",
    "PreviewConfig",
    "PreviewConfigError",
    "PreviewError",
    "PreviewNameError",
    "PreviewRequest",
    "PreviewResult",
    "PreviewRoute",
    "PreviewStageError",
    "PreviewURLError",
    "RemoteTransportError",
    "SelectorNotFoundError",
    "SerializationError",
    "WorkloadNotFoundError",
    "create_preview",
    "list_previews",
]
