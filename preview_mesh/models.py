"""Typed Istio routing structures emitted by the preview engine.

Only the subset of ``networking.istio.io/v1beta1`` that the engine writes is
modelled. Routes read back from the cluster stay plain dictionaries so fields
this tool does not know about survive a read-modify-write untouched.
"""

from __future__ import annotations

import typing as typ

import msgspec

ISTIO_API_VERSION = "networking.istio.io/v1beta1"
VIRTUAL_SERVICE_KIND = "VirtualService"


class StringMatch(msgspec.Struct, kw_only=True, omit_defaults=True):
    """String match policy; exactly one of the fields is set."""

    exact: str | None = None
    prefix: str | None = None


class HTTPMatchRequest(msgspec.Struct, kw_only=True, omit_defaults=True):
    """Match predicate on request headers and URI."""

    headers: dict[str, StringMatch] | None = None
    uri: StringMatch | None = None


class Destination(msgspec.Struct, kw_only=True):
    """Destination host of a route."""

    host: str


class HeaderOperations(msgspec.Struct, kw_only=True, omit_defaults=True):
    """Header mutations applied before forwarding."""

    add: dict[str, str] | None = None
    set: dict[str, str] | None = None


class Headers(msgspec.Struct, kw_only=True, omit_defaults=True):
    """Request header manipulation."""

    request: HeaderOperations | None = None


class HTTPRouteDestination(msgspec.Struct, kw_only=True, omit_defaults=True):
    """Weighted destination of an HTTP route."""

    destination: Destination
    headers: Headers | None = None


class HTTPRoute(msgspec.Struct, kw_only=True, omit_defaults=True):
    """One ordered rule of a VirtualService ``http`` list.

    Attributes
    ----------
    name : str
        Route name. Preview routes are named after their preview host, which
        is how ordering tells preview routes from the default route.
    route : list[HTTPRouteDestination]
        Destinations for matching requests.
    match : list[HTTPMatchRequest] | None
        Match predicates. ``None`` makes the route a catch-all.

    """

    name: str
    route: list[HTTPRouteDestination]
    match: list[HTTPMatchRequest] | None = None

    @classmethod
    def to_host(
        cls,
        name: str,
        host: str,
        *,
        match: list[HTTPMatchRequest] | None = None,
        headers: Headers | None = None,
    ) -> HTTPRoute:
        """Build a route sending matching requests to a single host."""
        destination = HTTPRouteDestination(
            destination=Destination(host=host), headers=headers
        )
        return cls(name=name, route=[destination], match=match)

    def to_builtins(self) -> dict[str, typ.Any]:
        """Return the route as a JSON-compatible dictionary."""
        return msgspec.to_builtins(self)


__all__ = [
    "ISTIO_API_VERSION",
    "VIRTUAL_SERVICE_KIND",
    "Destination",
    "HTTPMatchRequest",
    "HTTPRoute",
    "HTTPRouteDestination",
    "HeaderOperations",
    "Headers",
    "StringMatch",
]
