"""Preview naming codec.

Preview resources live in a reserved namespace of names built from a fixed
prefix, the version tag, and the origin identifier::

    pr<version>-<origin>

The same encoding is used for Service and Deployment names, mesh host names,
the value stamped into the preview header, and the header-match prefix that
distinguishes one version's traffic from another's.

Version tags follow a strict grammar (a digit followed by lowercase letters or
digits) so the first separator after the prefix always ends the version. An
origin identifier that already parses as a preview name is rejected, which
keeps preview names from colliding with ordinary identifiers.

Examples
--------
>>> preview_name("checkout", "42")
'pr42-checkout'
>>> preview_version("pr42-checkout")
'42'
>>> header_prefix("42")
'pr42-'

"""

from __future__ import annotations

import re

from preview_mesh.errors import PreviewNameError

PREVIEW_PREFIX = "pr"
SEPARATOR = "-"

# Kubernetes object names used as DNS labels are limited to 63 characters.
MAX_NAME_LENGTH = 63

_VERSION_PATTERN = re.compile(r"^[0-9][a-z0-9]*$")
_PREVIEW_PATTERN = re.compile(
    rf"^{PREVIEW_PREFIX}(?P<version>[0-9][a-z0-9]*){SEPARATOR}(?P<origin>.*)$"
)


def validate_version(version: str) -> str:
    """Return ``version`` unchanged if it follows the version grammar.

    Raises
    ------
    PreviewNameError
        If the version is empty or contains characters outside the grammar.

    """
    if not _VERSION_PATTERN.match(version):
        raise PreviewNameError.invalid_version(version)
    return version


def preview_name(origin: str, version: str) -> str:
    """Encode an origin identifier and version tag into a preview name.

    Parameters
    ----------
    origin : str
        Origin identifier. May be empty, which yields the header-match prefix.
    version : str
        Version tag, such as a pull-request number.

    Returns
    -------
    str
        ``pr<version>-<origin>``.

    Raises
    ------
    PreviewNameError
        If ``version`` does not follow the version grammar.

    """
    validate_version(version)
    return f"{PREVIEW_PREFIX}{version}{SEPARATOR}{origin}"


def split_preview_name(name: str) -> tuple[str, str] | None:
    """Split a preview name into ``(version, origin)``.

    Returns ``None`` when ``name`` is not in the preview namespace.
    """
    match = _PREVIEW_PATTERN.match(name)
    if match is None:
        return None
    return match["version"], match["origin"]


def preview_version(name: str) -> str:
    """Decode the version tag from a preview name.

    Names outside the preview namespace are returned unchanged. A name is
    only in the namespace when a grammar-conforming version and a separator
    follow the prefix, so ``prod-api`` and ``pr42`` decode to themselves.

    Examples
    --------
    >>> preview_version("pr7-pr7-api")
    '7'
    >>> preview_version("checkout")
    'checkout'
    >>> preview_version("prod-api")
    'prod-api'

    """
    parts = split_preview_name(name)
    if parts is None:
        return name
    return parts[0]


def is_preview_name(name: str) -> bool:
    """Return True when ``name`` carries the reserved preview prefix."""
    return split_preview_name(name) is not None


def header_prefix(version: str) -> str:
    """Return the header-value prefix shared by all traffic for ``version``."""
    return preview_name("", version)


def validate_origin_name(name: str) -> str:
    """Return ``name`` unchanged if it may be used as a preview origin.

    Raises
    ------
    PreviewNameError
        If the name is empty or already lies in the preview namespace.

    """
    if not name:
        raise PreviewNameError.empty_origin()
    if is_preview_name(name):
        raise PreviewNameError.reserved_origin(name)
    return name


def preview_resource_name(origin: str, version: str) -> str:
    """Encode a Kubernetes object name, enforcing the DNS label length limit."""
    name = preview_name(origin, version)
    if len(name) > MAX_NAME_LENGTH:
        raise PreviewNameError.too_long(name, MAX_NAME_LENGTH)
    return name


def service_host(name: str, namespace: str, domain: str = "svc.cluster.local") -> str:
    """Return the fully-qualified in-cluster host for a Service."""
    return f"{name}.{namespace}.{domain}"


def route_table_name(origin: str) -> str:
    """Return the name of the shared mesh routing object for ``origin``."""
    return f"{PREVIEW_PREFIX}{origin}-virtual-service"


def gateway_route_name(origin: str, version: str) -> str:
    """Return the name of the edge routing object for one preview."""
    return f"{preview_name(origin, version)}-gateway-virtual-service"


__all__ = [
    "MAX_NAME_LENGTH",
    "PREVIEW_PREFIX",
    "SEPARATOR",
    "gateway_route_name",
    "header_prefix",
    "is_preview_name",
    "preview_name",
    "preview_resource_name",
    "preview_version",
    "route_table_name",
    "service_host",
    "split_preview_name",
    "validate_origin_name",
    "validate_version",
]
