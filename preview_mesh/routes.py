"""Compose the shared mesh route table for an origin host.

Each origin host has one mesh-internal VirtualService shared by all of its
previews. Its ``http`` list holds one route per preview version, matching the
preview header by the version's prefix, followed by a single catch-all route
to the origin host. Istio evaluates routes in order and the first match wins,
so preview routes must always precede the catch-all.

The merge is modelled as a :class:`RouteTableTransaction`: the fetched table
is kept as an immutable snapshot, routes are upserted by name into a working
list, and ``render`` produces the document to submit. Nothing fetched from
the cluster is mutated in place, so each merge can be inspected (``changes``)
and undone (``rollback_manifest``).

Examples
--------
Add version 42 of ``checkout`` to its route table:

    tables = registry.list_objects(VIRTUAL_SERVICES, None)
    txn = RouteTableTransaction.begin(tables, "checkout", config)
    txn.upsert(preview_route("checkout", "42", config))
    server_side_apply(registry, txn.render(), field_manager=config.field_manager)

"""

from __future__ import annotations

import copy
import dataclasses
import enum
import typing as typ

from preview_mesh.cloner import strip_server_fields
from preview_mesh.logging import get_logger, log_warning
from preview_mesh.models import (
    ISTIO_API_VERSION,
    VIRTUAL_SERVICE_KIND,
    HTTPMatchRequest,
    HTTPRoute,
    StringMatch,
)
from preview_mesh.naming import (
    header_prefix,
    is_preview_name,
    preview_name,
    route_table_name,
    split_preview_name,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from preview_mesh.config import PreviewConfig
    from preview_mesh.registry import Manifest

logger = get_logger(__name__)

Route = dict[str, typ.Any]


class RouteChangeKind(enum.StrEnum):
    """How an upsert altered the route table."""

    APPENDED = "appended"
    REPLACED = "replaced"
    UNCHANGED = "unchanged"


@dataclasses.dataclass(frozen=True, slots=True)
class RouteChange:
    """Audit record of one upsert."""

    name: str
    kind: RouteChangeKind


def is_mesh_internal(virtual_service: Manifest) -> bool:
    """Return True when a VirtualService binds to no external gateway."""
    return not virtual_service.get("spec", {}).get("gateways")


def find_route_table(
    virtual_services: cabc.Iterable[Manifest], origin_host: str
) -> Manifest | None:
    """Return the mesh-internal VirtualService that serves ``origin_host``.

    Gateway-bound VirtualServices are skipped. When several candidates list
    the host, the first is used and a warning is logged.
    """
    candidates = [
        vs
        for vs in virtual_services
        if is_mesh_internal(vs) and origin_host in vs.get("spec", {}).get("hosts", [])
    ]
    if not candidates:
        return None
    if len(candidates) > 1:
        names = ", ".join(vs.get("metadata", {}).get("name", "?") for vs in candidates)
        log_warning(
            logger,
            "Host %s is served by %d mesh VirtualServices (%s); using the first",
            origin_host,
            len(candidates),
            names,
        )
    return candidates[0]


def default_route_table(origin: str, config: PreviewConfig) -> Manifest:
    """Build a new route table holding only the catch-all route to ``origin``."""
    origin_host = config.host_for(origin)
    default_route = HTTPRoute.to_host(origin_host, origin_host)
    return {
        "apiVersion": ISTIO_API_VERSION,
        "kind": VIRTUAL_SERVICE_KIND,
        "metadata": {
            "name": route_table_name(origin),
            "namespace": config.mesh_namespace,
        },
        "spec": {
            "hosts": [origin_host],
            "http": [default_route.to_builtins()],
        },
    }


def preview_route(origin: str, version: str, config: PreviewConfig) -> HTTPRoute:
    """Build the route sending ``version``-tagged requests to its preview host.

    The route matches when the preview header starts with ``pr<version>-``
    and is named after the preview host.
    """
    preview_host = preview_name(config.host_for(origin), version)
    match = HTTPMatchRequest(
        headers={config.preview_header: StringMatch(prefix=header_prefix(version))}
    )
    return HTTPRoute.to_host(preview_host, preview_host, match=[match])


def is_preview_route(route: Route) -> bool:
    """Return True when ``route`` is named in the preview namespace."""
    return is_preview_name(route.get("name", ""))


def order_routes(routes: cabc.Iterable[Route]) -> list[Route]:
    """Move every preview route ahead of every other route.

    The partition is stable: routes keep their relative order within each
    group, so previews stay in creation order and the catch-all stays last.
    """
    return sorted(routes, key=lambda route: not is_preview_route(route))


@dataclasses.dataclass(slots=True)
class RouteTableTransaction:
    """Read-modify-write of one origin's route table.

    Attributes
    ----------
    origin_host : str
        Fully-qualified host the table serves.
    snapshot : Manifest
        Deep copy of the table as fetched, or the freshly built default table.
    created : bool
        True when no table existed and ``snapshot`` is the default table.
    routes : list[Route]
        Working route list, initially the snapshot's routes.
    changes : list[RouteChange]
        Upserts performed in this transaction, in order.

    """

    origin_host: str
    snapshot: Manifest
    created: bool
    routes: list[Route]
    changes: list[RouteChange] = dataclasses.field(default_factory=list)

    @classmethod
    def begin(
        cls,
        virtual_services: cabc.Iterable[Manifest],
        origin: str,
        config: PreviewConfig,
    ) -> RouteTableTransaction:
        """Start a transaction on the route table for ``origin``.

        A default table is created lazily when the origin has none yet.
        """
        origin_host = config.host_for(origin)
        existing = find_route_table(virtual_services, origin_host)
        if existing is None:
            snapshot = default_route_table(origin, config)
            created = True
        else:
            snapshot = copy.deepcopy(existing)
            created = False
        routes = copy.deepcopy(snapshot.get("spec", {}).get("http") or [])
        return cls(
            origin_host=origin_host,
            snapshot=snapshot,
            created=created,
            routes=routes,
        )

    @property
    def name(self) -> str:
        """Name of the routing object."""
        return self.snapshot["metadata"]["name"]

    @property
    def namespace(self) -> str:
        """Namespace of the routing object."""
        return self.snapshot["metadata"].get("namespace", "")

    def upsert(self, route: HTTPRoute | Route) -> RouteChange:
        """Insert ``route``, replacing any route with the same name in place.

        Re-running a preview therefore leaves exactly one route per version
        and never moves unrelated routes.
        """
        document = route.to_builtins() if isinstance(route, HTTPRoute) else route
        name = document.get("name", "")
        for index, existing in enumerate(self.routes):
            if existing.get("name") == name:
                kind = (
                    RouteChangeKind.UNCHANGED
                    if existing == document
                    else RouteChangeKind.REPLACED
                )
                self.routes[index] = document
                break
        else:
            self.routes.append(document)
            kind = RouteChangeKind.APPENDED
        change = RouteChange(name=name, kind=kind)
        self.changes.append(change)
        return change

    def ordered_routes(self) -> list[Route]:
        """Return the working routes with previews ahead of the catch-all."""
        return order_routes(self.routes)

    def _document(self, routes: list[Route]) -> Manifest:
        document = strip_server_fields(copy.deepcopy(self.snapshot))
        document["apiVersion"] = ISTIO_API_VERSION
        document["kind"] = VIRTUAL_SERVICE_KIND
        document.setdefault("spec", {})["http"] = copy.deepcopy(routes)
        return document

    def render(self) -> Manifest:
        """Return the table to submit, ready for server-side apply."""
        return self._document(self.ordered_routes())

    def rollback_manifest(self) -> Manifest:
        """Return the table as it was before this transaction."""
        return self._document(self.snapshot.get("spec", {}).get("http") or [])


def preview_versions(virtual_service: Manifest, origin_host: str) -> list[str]:
    """Return the versions routed by a table, in evaluation order."""
    versions = []
    for route in virtual_service.get("spec", {}).get("http") or []:
        parts = split_preview_name(route.get("name", ""))
        if parts is not None and parts[1] == origin_host:
            versions.append(parts[0])
    return versions


__all__ = [
    "RouteChange",
    "RouteChangeKind",
    "RouteTableTransaction",
    "default_route_table",
    "find_route_table",
    "is_mesh_internal",
    "is_preview_route",
    "order_routes",
    "preview_route",
    "preview_versions",
]
