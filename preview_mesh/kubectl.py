"""Cluster registry backed by kubectl.

This module wraps the kubectl calls the preview engine needs: listing
objects, creating them, server-side applying them, and deleting them when a
failed creation is rolled back. Manifests travel as JSON on stdin so nothing
derived from cluster state appears on the command line.

Examples
--------
List Services in the application namespace:

    registry = KubectlRegistry.from_config(PreviewConfig.from_env())
    services = registry.list_objects(SERVICES, "default")

Validate every mutation on the server without persisting it:

    registry = KubectlRegistry.from_config(config, dry_run=True)

"""

from __future__ import annotations

import os
import subprocess
import typing as typ

import msgspec

from preview_mesh.apply import encode_manifest
from preview_mesh.errors import AlreadyExistsError, RemoteTransportError
from preview_mesh.logging import get_logger, log_debug

if typ.TYPE_CHECKING:
    from preview_mesh.config import PreviewConfig
    from preview_mesh.registry import Manifest

logger = get_logger(__name__)

_ALREADY_EXISTS_MARKERS = ("AlreadyExists", "already exists")


def kubectl_env(config: PreviewConfig) -> dict[str, str]:
    """Return the environment kubectl runs with.

    In-cluster runs drop ``KUBECONFIG`` so kubectl falls back to the pod's
    service account. Otherwise an explicit kubeconfig from the configuration
    takes precedence over the inherited one.
    """
    env = dict(os.environ)
    if config.run_in_cluster:
        env.pop("KUBECONFIG", None)
    elif config.kubeconfig is not None:
        env["KUBECONFIG"] = str(config.kubeconfig)
    return env


def _stderr_of(exc: subprocess.CalledProcessError) -> str:
    stderr = exc.stderr or ""
    if isinstance(stderr, bytes):
        stderr = stderr.decode("utf-8", errors="replace")
    return stderr.strip() or f"exit status {exc.returncode}"


class KubectlRegistry:
    """``ClusterRegistry`` implementation that shells out to kubectl."""

    def __init__(
        self,
        env: dict[str, str],
        *,
        timeout_s: int = 60,
        dry_run: bool = False,
    ) -> None:
        """Initialise with the kubectl environment and call options.

        Parameters
        ----------
        env : dict[str, str]
            Environment passed to every kubectl call.
        timeout_s : int, default 60
            Timeout for each kubectl call in seconds.
        dry_run : bool, default False
            Submit mutations with ``--dry-run=server``.

        """
        self.env = env
        self.timeout_s = timeout_s
        self.dry_run = dry_run

    @classmethod
    def from_config(
        cls, config: PreviewConfig, *, dry_run: bool = False
    ) -> KubectlRegistry:
        """Build a registry using credentials and timeout from ``config``."""
        return cls(
            kubectl_env(config), timeout_s=config.kubectl_timeout_s, dry_run=dry_run
        )

    def _mutation_flags(self) -> list[str]:
        return ["--dry-run=server"] if self.dry_run else []

    def _invoke(
        self, operation: str, args: list[str], *, stdin: str | None = None
    ) -> str:
        """Run kubectl and return stdout; non-zero exits raise CalledProcessError."""
        log_debug(logger, "kubectl %s", " ".join(args))
        try:
            # S603/S607: kubectl via PATH is standard; manifests go via stdin
            result = subprocess.run(  # noqa: S603
                ["kubectl", *args],  # noqa: S607
                input=stdin,
                capture_output=True,
                text=True,
                check=True,
                env=self.env,
                timeout=self.timeout_s,
            )
        except subprocess.TimeoutExpired as exc:
            raise RemoteTransportError.timed_out(operation, self.timeout_s) from exc
        except FileNotFoundError as exc:
            raise RemoteTransportError(
                operation, "kubectl executable not found in PATH"
            ) from exc
        return result.stdout

    def _run(
        self, operation: str, args: list[str], *, stdin: str | None = None
    ) -> str:
        try:
            return self._invoke(operation, args, stdin=stdin)
        except subprocess.CalledProcessError as exc:
            raise RemoteTransportError(operation, _stderr_of(exc)) from exc

    @staticmethod
    def _decode(operation: str, output: str) -> Manifest:
        try:
            document = msgspec.json.decode(output)
        except msgspec.DecodeError as exc:
            raise RemoteTransportError.bad_output(operation, exc) from exc
        if not isinstance(document, dict):
            msg = f"expected a JSON object, got {type(document).__name__}"
            raise RemoteTransportError(operation, msg)
        return document

    def list_objects(self, resource: str, namespace: str | None) -> list[Manifest]:
        """List objects of ``resource`` in ``namespace`` or in all namespaces."""
        scope = (
            "--all-namespaces" if namespace is None else f"--namespace={namespace}"
        )
        output = self._run("get", ["get", resource, scope, "-o", "json"])
        return list(self._decode("get", output).get("items") or [])

    def create_object(self, manifest: Manifest) -> Manifest:
        """Create ``manifest``.

        Raises
        ------
        AlreadyExistsError
            If an object with the same name already exists.
        RemoteTransportError
            If kubectl fails for any other reason.

        """
        args = ["create", "-f", "-", "-o", "json", *self._mutation_flags()]
        stdin = encode_manifest(manifest).decode("utf-8")
        try:
            output = self._invoke("create", args, stdin=stdin)
        except subprocess.CalledProcessError as exc:
            detail = _stderr_of(exc)
            if any(marker in detail for marker in _ALREADY_EXISTS_MARKERS):
                metadata = manifest.get("metadata", {})
                raise AlreadyExistsError(
                    manifest.get("kind", "object"), metadata.get("name", ""), detail
                ) from exc
            raise RemoteTransportError("create", detail) from exc
        return self._decode("create", output)

    def apply_object(
        self, payload: bytes, *, field_manager: str, force: bool
    ) -> Manifest:
        """Server-side apply a serialized manifest as ``field_manager``."""
        args = ["apply", "--server-side", f"--field-manager={field_manager}"]
        if force:
            args.append("--force-conflicts")
        args.extend(["-f", "-", "-o", "json", *self._mutation_flags()])
        output = self._run("apply", args, stdin=payload.decode("utf-8"))
        return self._decode("apply", output)

    def delete_object(self, resource: str, name: str, namespace: str) -> None:
        """Delete an object, ignoring one that is already gone."""
        self._run(
            "delete",
            [
                "delete",
                resource,
                name,
                f"--namespace={namespace}",
                "--ignore-not-found",
                *self._mutation_flags(),
            ],
        )


__all__ = ["KubectlRegistry", "kubectl_env"]
