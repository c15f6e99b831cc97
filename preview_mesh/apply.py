"""Submit manifests with server-side apply.

Server-side apply lets this tool assert ownership of the fields it writes
under a named field manager. With ``force`` set, the tool wins any field-level
conflict against another manager of the same fields while leaving fields owned
by other managers untouched.
"""

from __future__ import annotations

import typing as typ

import msgspec

from preview_mesh.errors import SerializationError

if typ.TYPE_CHECKING:
    from preview_mesh.registry import ClusterRegistry, Manifest


def encode_manifest(manifest: Manifest) -> bytes:
    """Serialize ``manifest`` to JSON.

    Raises
    ------
    SerializationError
        If the manifest holds values JSON cannot represent.

    """
    try:
        return msgspec.json.encode(manifest)
    except (msgspec.EncodeError, TypeError, OverflowError) as exc:
        name = manifest.get("metadata", {}).get("name", "<unnamed>")
        raise SerializationError(name, exc) from exc


def server_side_apply(
    registry: ClusterRegistry,
    manifest: Manifest,
    *,
    field_manager: str,
    force: bool = True,
) -> Manifest:
    """Serialize ``manifest`` and apply it as ``field_manager``.

    Parameters
    ----------
    registry : ClusterRegistry
        Registry accepting the serialized document.
    manifest : Manifest
        Fully-formed object carrying ``apiVersion`` and ``kind``.
    field_manager : str
        Field manager identity asserting ownership.
    force : bool, default True
        Override conflicting ownership held by other managers.

    Returns
    -------
    Manifest
        The object as stored by the cluster.

    """
    payload = encode_manifest(manifest)
    return registry.apply_object(payload, field_manager=field_manager, force=force)


__all__ = ["encode_manifest", "server_side_apply"]
