"""Build the edge route exposing one preview on an external URL.

The edge route terminates the preview URL at the ingress gateway, stamps the
preview header with ``pr<version>-<origin>`` and forwards to the preview
host. Downstream, the mesh route table matches that header by prefix, so
calls the preview makes to other services stay on the same preview version.
"""

from __future__ import annotations

import typing as typ
from urllib.parse import urlsplit

from preview_mesh.errors import PreviewURLError
from preview_mesh.models import (
    ISTIO_API_VERSION,
    VIRTUAL_SERVICE_KIND,
    HeaderOperations,
    Headers,
    HTTPMatchRequest,
    HTTPRoute,
    StringMatch,
)
from preview_mesh.naming import gateway_route_name, preview_name

if typ.TYPE_CHECKING:
    from preview_mesh.config import PreviewConfig
    from preview_mesh.registry import Manifest


def split_preview_url(url: str) -> tuple[str, str]:
    """Split a preview URL into ``(host, path)``.

    Scheme, port, query, and fragment are dropped. A bare host such as
    ``pr42.example.com`` is accepted as well as a full URL.

    Raises
    ------
    PreviewURLError
        If no host can be extracted from ``url``.

    Examples
    --------
    >>> split_preview_url("https://pr42.example.com")
    ('pr42.example.com', '')
    >>> split_preview_url("pr42.example.com/api")
    ('pr42.example.com', '/api')

    """
    candidate = url.strip()
    if "://" not in candidate:
        candidate = f"//{candidate}"
    parts = urlsplit(candidate)
    if not parts.hostname:
        raise PreviewURLError(url)
    path = parts.path.rstrip("/")
    return parts.hostname, path


def build_gateway_route(
    origin: str,
    version: str,
    url: str,
    gateway: str,
    config: PreviewConfig,
) -> Manifest:
    """Build the gateway-bound VirtualService for one preview.

    Parameters
    ----------
    origin : str
        Origin Service name.
    version : str
        Preview version tag.
    url : str
        External preview URL; its host becomes the VirtualService host and a
        non-root path becomes a URI prefix match.
    gateway : str
        Istio Gateway the route binds to.
    config : PreviewConfig
        Namespaces and header name.

    Returns
    -------
    Manifest
        VirtualService manifest ready to be created.

    """
    host, path = split_preview_url(url)
    preview_host = preview_name(config.host_for(origin), version)
    headers = Headers(
        request=HeaderOperations(
            add={config.preview_header: preview_name(origin, version)}
        )
    )
    match = [HTTPMatchRequest(uri=StringMatch(prefix=path))] if path else None
    route = HTTPRoute.to_host(preview_host, preview_host, match=match, headers=headers)
    return {
        "apiVersion": ISTIO_API_VERSION,
        "kind": VIRTUAL_SERVICE_KIND,
        "metadata": {
            "name": gateway_route_name(origin, version),
            "namespace": config.mesh_namespace,
        },
        "spec": {
            "hosts": [host],
            "gateways": [gateway],
            "http": [route.to_builtins()],
        },
    }


__all__ = ["build_gateway_route", "split_preview_url"]
