"""Configuration for preview resource creation."""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path

from preview_mesh.errors import PreviewConfigError
from preview_mesh.naming import service_host

# Default configuration values - single source of truth
_DEFAULT_APP_NAMESPACE = "default"
_DEFAULT_MESH_NAMESPACE = "istio-system"
_DEFAULT_PREVIEW_HEADER = "X-PREVIEW"
_DEFAULT_FIELD_MANAGER = "preview"
_DEFAULT_CLUSTER_DOMAIN = "svc.cluster.local"
_DEFAULT_KUBECTL_TIMEOUT_S = 60

# Timeout bounds for kubectl calls (in seconds).
_MIN_KUBECTL_TIMEOUT_S = 1
_MAX_KUBECTL_TIMEOUT_S = 3600


@dataclasses.dataclass(frozen=True, slots=True)
class PreviewConfig:
    """Cluster coordinates and conventions used when creating previews.

    Attributes
    ----------
    app_namespace
        Namespace holding origin Services and Deployments; clones are
        created here too.
    mesh_namespace
        Namespace where preview VirtualServices are written.
    preview_header
        Request header carrying the preview tag.
    field_manager
        Server-side apply field manager identity for route tables.
    cluster_domain
        DNS suffix for in-cluster Service hosts.
    run_in_cluster
        Use the pod's service account instead of a kubeconfig file.
    kubeconfig
        Explicit kubeconfig path. When None, kubectl's default applies.
    kubectl_timeout_s
        Timeout applied to every kubectl invocation.

    """

    app_namespace: str = _DEFAULT_APP_NAMESPACE
    mesh_namespace: str = _DEFAULT_MESH_NAMESPACE
    preview_header: str = _DEFAULT_PREVIEW_HEADER
    field_manager: str = _DEFAULT_FIELD_MANAGER
    cluster_domain: str = _DEFAULT_CLUSTER_DOMAIN
    run_in_cluster: bool = False
    kubeconfig: Path | None = None
    kubectl_timeout_s: int = _DEFAULT_KUBECTL_TIMEOUT_S

    def host_for(self, service: str) -> str:
        """Return the fully-qualified mesh host of a Service in the app namespace."""
        return service_host(service, self.app_namespace, self.cluster_domain)

    @staticmethod
    def _read_nonempty(env_var: str, default: str) -> str:
        """Read a string setting, rejecting values that are set but blank."""
        raw = os.environ.get(env_var)
        if raw is None:
            return default
        value = raw.strip()
        if not value:
            raise PreviewConfigError.empty_value(env_var)
        return value

    @staticmethod
    def _parse_timeout_from_env() -> int:
        """Parse and validate the kubectl timeout from environment.

        Raises
        ------
        PreviewConfigError
            If the value is not an integer within the allowed bounds.

        """
        raw_timeout = os.environ.get("PREVIEW_KUBECTL_TIMEOUT")
        if raw_timeout is None:
            return _DEFAULT_KUBECTL_TIMEOUT_S

        try:
            timeout = int(raw_timeout)
        except ValueError as exc:
            raise PreviewConfigError.invalid_timeout(raw_timeout) from exc

        if not _MIN_KUBECTL_TIMEOUT_S <= timeout <= _MAX_KUBECTL_TIMEOUT_S:
            raise PreviewConfigError.invalid_timeout(raw_timeout)

        return timeout

    @classmethod
    def from_env(cls) -> PreviewConfig:
        """Build configuration from environment variables.

        Reads the following environment variables:

        - ``PREVIEW_APP_NAMESPACE``: namespace of origin workloads
        - ``PREVIEW_MESH_NAMESPACE``: namespace for VirtualServices
        - ``PREVIEW_HEADER``: preview header name
        - ``PREVIEW_FIELD_MANAGER``: server-side apply field manager
        - ``PREVIEW_CLUSTER_DOMAIN``: in-cluster DNS suffix
        - ``RUN_IN_CLUSTER``: any non-empty value selects in-cluster credentials
        - ``PREVIEW_KUBECONFIG``: kubeconfig file path
        - ``PREVIEW_KUBECTL_TIMEOUT``: kubectl timeout in seconds (1 to 3600)

        Returns
        -------
        PreviewConfig
            Configuration instance with values from environment.

        Raises
        ------
        PreviewConfigError
            If a variable is set to a blank or invalid value.

        """
        raw_kubeconfig = os.environ.get("PREVIEW_KUBECONFIG", "").strip()
        return cls(
            app_namespace=cls._read_nonempty(
                "PREVIEW_APP_NAMESPACE", _DEFAULT_APP_NAMESPACE
            ),
            mesh_namespace=cls._read_nonempty(
                "PREVIEW_MESH_NAMESPACE", _DEFAULT_MESH_NAMESPACE
            ),
            preview_header=cls._read_nonempty(
                "PREVIEW_HEADER", _DEFAULT_PREVIEW_HEADER
            ),
            field_manager=cls._read_nonempty(
                "PREVIEW_FIELD_MANAGER", _DEFAULT_FIELD_MANAGER
            ),
            cluster_domain=cls._read_nonempty(
                "PREVIEW_CLUSTER_DOMAIN", _DEFAULT_CLUSTER_DOMAIN
            ),
            run_in_cluster=bool(os.environ.get("RUN_IN_CLUSTER")),
            kubeconfig=Path(raw_kubeconfig).expanduser() if raw_kubeconfig else None,
            kubectl_timeout_s=cls._parse_timeout_from_env(),
        )
