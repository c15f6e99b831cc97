"""Resolve the label selector that binds an origin Service to its pods.

A preview clone keeps the selector *key* of its origin but takes a new value,
``pr<version>-<value>``, so the cloned Service only captures the cloned pods
and never the origin's traffic.
"""

from __future__ import annotations

import typing as typ

import msgspec

from preview_mesh.errors import OriginNotFoundError, SelectorNotFoundError
from preview_mesh.logging import get_logger, log_warning
from preview_mesh.naming import preview_resource_name

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from preview_mesh.registry import Manifest

logger = get_logger(__name__)


class SelectorPair(msgspec.Struct, frozen=True):
    """Label ``key=value`` used by the traffic layer to select pods.

    Attributes
    ----------
    key : str
        Label key, e.g. ``app``.
    value : str
        Label value on the origin workload, e.g. ``checkout``.

    """

    key: str
    value: str

    def preview_value(self, version: str) -> str:
        """Return the label value carried by the preview clone.

        Raises
        ------
        PreviewNameError
            If the value exceeds the 63-character label value limit.

        """
        return preview_resource_name(self.value, version)

    def matches(self, labels: cabc.Mapping[str, str] | None) -> bool:
        """Return True when ``labels`` carries this exact pair."""
        return labels is not None and labels.get(self.key) == self.value


def find_origin(
    services: cabc.Iterable[Manifest], name: str, namespace: str
) -> Manifest:
    """Return the Service called ``name`` from a listing.

    Raises
    ------
    OriginNotFoundError
        If no Service in ``services`` carries that name.

    """
    for service in services:
        if service.get("metadata", {}).get("name") == name:
            return service
    raise OriginNotFoundError(name, namespace)


def resolve_selector(service: Manifest, *, key: str | None = None) -> SelectorPair:
    """Extract the authoritative selector pair from an origin Service.

    Parameters
    ----------
    service : Manifest
        Origin Service manifest as returned by the cluster.
    key : str | None, optional
        Selector key to use. When omitted, a single-entry selector is used as
        is and the first entry of a multi-entry selector is accepted with a
        warning.

    Returns
    -------
    SelectorPair
        The selected ``(key, value)`` pair.

    Raises
    ------
    SelectorNotFoundError
        If the selector is empty, or ``key`` is given and absent.

    """
    name = service.get("metadata", {}).get("name", "")
    selector: dict[str, str] = service.get("spec", {}).get("selector") or {}

    if key is not None:
        if key not in selector:
            raise SelectorNotFoundError(name, key)
        return SelectorPair(key=key, value=selector[key])

    if not selector:
        raise SelectorNotFoundError(name)

    first_key, first_value = next(iter(selector.items()))
    if len(selector) > 1:
        log_warning(
            logger,
            "Service %s declares %d selector labels; using %s=%s "
            "(pass --selector-key to choose explicitly)",
            name,
            len(selector),
            first_key,
            first_value,
        )
    return SelectorPair(key=first_key, value=first_value)


__all__ = ["SelectorPair", "find_origin", "resolve_selector"]
