"""Command-line interface for preview deployments.

Usage:
    preview create -v 42 -s checkout -u https://pr42.example.com
    preview create -v 42 -s checkout -u pr42.example.com/api --dry-run
    preview list -s checkout

Environment variables:
    PREVIEW_APP_NAMESPACE   - Namespace of origin workloads (default: default)
    PREVIEW_MESH_NAMESPACE  - Namespace for VirtualServices (default: istio-system)
    PREVIEW_HEADER          - Preview header name (default: X-PREVIEW)
    PREVIEW_KUBECONFIG      - Kubeconfig path (default: kubectl's own)
    RUN_IN_CLUSTER          - Use the pod service account when non-empty
    PREVIEW_LOG_LEVEL       - Log level (default: INFO)
"""

from __future__ import annotations

import sys
import typing as typ

from cyclopts import App, Parameter

from preview_mesh.config import PreviewConfig
from preview_mesh.errors import PreviewError
from preview_mesh.kubectl import KubectlRegistry
from preview_mesh.logging import configure_logging, get_logger, log_warning
from preview_mesh.orchestration import (
    DEFAULT_GATEWAY,
    PreviewRequest,
    create_preview,
    list_previews,
)
from preview_mesh.render import render_manifests

logger = get_logger(__name__)

# ``--version`` names the preview version, so cyclopts' own flag is disabled.
app = App(
    name="preview",
    help="Create header-routed preview deployments on an Istio mesh",
    version="0.1.0",
    version_flags=[],
)


def _setup_logging(log_level: str) -> None:
    normalized, invalid = configure_logging(log_level, force=True)
    if invalid:
        log_warning(
            logger,
            "Invalid PREVIEW_LOG_LEVEL %r, falling back to %s",
            log_level,
            normalized,
        )


def _report(exc: PreviewError) -> int:
    print(f"preview: {exc}", file=sys.stderr)
    return 1


@app.command
def create(  # noqa: PLR0913
    *,
    version: typ.Annotated[str, Parameter(name=["--version", "-v"])],
    service: typ.Annotated[str, Parameter(name=["--service", "-s"])],
    url: typ.Annotated[str, Parameter(name=["--url", "-u"])],
    gateway: typ.Annotated[
        str, Parameter(name=["--gateway", "-g"])
    ] = DEFAULT_GATEWAY,
    selector_key: str | None = None,
    dry_run: bool = False,
    rollback: bool = False,
    log_level: typ.Annotated[str, Parameter(env_var="PREVIEW_LOG_LEVEL")] = "INFO",
) -> int:
    """Create a preview of a service.

    Clones the origin Service and its Deployment as ``pr<version>-<service>``,
    routes requests whose preview header starts with ``pr<version>-`` to the
    clone, and exposes the preview on ``url`` through the gateway.

    Args:
        version: Preview version tag, e.g. a pull-request number.
        service: Name of the origin Service.
        url: External URL the preview is served on.
        gateway: Istio Gateway the preview URL binds to.
        selector_key: Selector label to clone on when the origin has several.
        dry_run: Validate on the server without persisting, and print the
            manifests.
        rollback: Undo this run's changes if a later step fails.
        log_level: Log level for progress output.

    Returns:
        Exit code (0 for success, 1 for failure).

    """
    _setup_logging(log_level)
    try:
        config = PreviewConfig.from_env()
        registry = KubectlRegistry.from_config(config, dry_run=dry_run)
        result = create_preview(
            PreviewRequest(
                origin=service,
                version=version,
                url=url,
                gateway=gateway,
                selector_key=selector_key,
            ),
            registry,
            config,
            rollback=rollback,
        )
    except PreviewError as exc:
        return _report(exc)

    if dry_run:
        print(render_manifests(result.manifests), end="")
        return 0

    print(f"Preview {result.service['metadata']['name']} created for {url}")
    return 0


@app.command(name="list")
def list_routes(
    *,
    service: typ.Annotated[str, Parameter(name=["--service", "-s"])],
    log_level: typ.Annotated[str, Parameter(env_var="PREVIEW_LOG_LEVEL")] = "INFO",
) -> int:
    """List previews routed for a service.

    Args:
        service: Name of the origin Service.
        log_level: Log level for progress output.

    Returns:
        Exit code (0 for success, 1 for failure).

    """
    _setup_logging(log_level)
    try:
        config = PreviewConfig.from_env()
        previews = list_previews(service, KubectlRegistry.from_config(config), config)
    except PreviewError as exc:
        return _report(exc)

    if not previews:
        print(f"No previews routed for {service}.")
        return 0

    for preview in previews:
        print(f"{preview.version}\t{preview.host}\t{preview.header_prefix}")
    return 0


def main() -> int:
    """Entry point for the CLI."""
    return app()


if __name__ == "__main__":
    sys.exit(main())
