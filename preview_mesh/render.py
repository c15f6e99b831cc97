"""Render manifests as a YAML stream for dry-run output."""

from __future__ import annotations

import io
import typing as typ

from ruamel.yaml import YAML

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from preview_mesh.registry import Manifest


def _yaml() -> YAML:
    yaml = YAML(typ="safe")
    yaml.default_flow_style = False
    yaml.explicit_start = True
    return yaml


def render_manifests(manifests: cabc.Iterable[Manifest]) -> str:
    """Return ``manifests`` as a multi-document YAML stream.

    Documents are separated by ``---`` markers and emitted in the given
    order, so the output can be piped to ``kubectl apply -f -``.
    """
    buffer = io.StringIO()
    _yaml().dump_all(list(manifests), buffer)
    return buffer.getvalue()


__all__ = ["render_manifests"]
