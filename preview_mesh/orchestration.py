"""High-level orchestration for preview commands.

``create_preview`` runs the creation stages in order (validate the request,
resolve the selector, clone the Service, clone the Deployment, merge the mesh
route table, create the gateway route) and stops at the first failure, which
is raised as :class:`~preview_mesh.errors.PreviewStageError` naming the stage.

Every completed mutation records a compensating action in a
:class:`PreviewSaga`. With ``rollback=True`` the compensations run in reverse
order when a later stage fails; by default partial state is left in place
for inspection.
"""

from __future__ import annotations

import collections.abc as cabc
import contextlib
import dataclasses
import enum
import functools
import typing as typ

from preview_mesh.apply import server_side_apply
from preview_mesh.cloner import clone_deployment, clone_service, find_workload
from preview_mesh.errors import PreviewError, PreviewStageError
from preview_mesh.gateway import build_gateway_route, split_preview_url
from preview_mesh.naming import (
    header_prefix,
    preview_name,
    validate_origin_name,
    validate_version,
)
from preview_mesh.observability import PreviewEventLogger
from preview_mesh.registry import (
    DEPLOYMENTS,
    SERVICES,
    VIRTUAL_SERVICES,
    object_ref,
)
from preview_mesh.routes import (
    RouteChange,
    RouteTableTransaction,
    find_route_table,
    preview_route,
    preview_versions,
)
from preview_mesh.selector import SelectorPair, find_origin, resolve_selector

if typ.TYPE_CHECKING:
    from preview_mesh.config import PreviewConfig
    from preview_mesh.registry import ClusterRegistry, Manifest

DEFAULT_GATEWAY = "my-gateway"


class PreviewStage(enum.StrEnum):
    """Stages of preview creation, in execution order."""

    VALIDATE_REQUEST = "validate-request"
    RESOLVE_SELECTOR = "resolve-selector"
    CLONE_SERVICE = "clone-service"
    CLONE_DEPLOYMENT = "clone-deployment"
    COMPOSE_ROUTES = "compose-routes"
    GATEWAY_ROUTE = "gateway-route"


@dataclasses.dataclass(frozen=True, slots=True)
class PreviewRequest:
    """Inputs of one ``create`` invocation.

    Attributes
    ----------
    origin
        Name of the origin Service.
    version
        Preview version tag, e.g. a pull-request number.
    url
        External URL the preview is served on.
    gateway
        Istio Gateway the edge route binds to.
    selector_key
        Selector key to clone on; None picks the origin's only (or first) key.

    """

    origin: str
    version: str
    url: str
    gateway: str = DEFAULT_GATEWAY
    selector_key: str | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class PreviewResult:
    """Manifests submitted while creating one preview."""

    selector: SelectorPair
    service: Manifest
    deployment: Manifest
    route_table: Manifest
    route_changes: tuple[RouteChange, ...]
    gateway_route: Manifest

    @property
    def manifests(self) -> list[Manifest]:
        """Return the submitted manifests in submission order."""
        return [self.service, self.deployment, self.route_table, self.gateway_route]


@dataclasses.dataclass(frozen=True, slots=True)
class PreviewRoute:
    """One preview routed by an origin's route table."""

    version: str
    host: str
    header_prefix: str


@dataclasses.dataclass(frozen=True, slots=True)
class _Compensation:
    description: str
    action: cabc.Callable[[], object]


class PreviewSaga:
    """Compensating actions for the mutations of one creation run."""

    def __init__(self, events: PreviewEventLogger) -> None:
        """Initialise an empty saga reporting through ``events``."""
        self._events = events
        self._compensations: list[_Compensation] = []

    @property
    def pending(self) -> list[str]:
        """Descriptions of recorded compensations, oldest first."""
        return [compensation.description for compensation in self._compensations]

    def record(self, description: str, action: cabc.Callable[[], object]) -> None:
        """Record the action undoing a mutation that just succeeded."""
        self._compensations.append(_Compensation(description, action))

    def compensate(self) -> list[str]:
        """Run recorded compensations newest first.

        A compensation that fails is logged and skipped so the remaining ones
        still run.

        Returns
        -------
        list[str]
            Descriptions of the compensations that failed.

        """
        failed: list[str] = []
        while self._compensations:
            compensation = self._compensations.pop()
            self._events.rollback_step(action=compensation.description)
            try:
                compensation.action()
            except PreviewError as exc:
                self._events.rollback_failed(
                    action=compensation.description, error=exc
                )
                failed.append(compensation.description)
        return failed


@contextlib.contextmanager
def _stage(
    stage: PreviewStage, request: PreviewRequest, events: PreviewEventLogger
) -> typ.Iterator[None]:
    events.stage_started(stage=stage, origin=request.origin, version=request.version)
    try:
        yield
    except PreviewError as exc:
        events.stage_failed(stage=stage, error=exc)
        raise PreviewStageError(stage, exc) from exc


def _create(
    registry: ClusterRegistry, saga: PreviewSaga, manifest: Manifest
) -> Manifest:
    """Create ``manifest`` and record its deletion as compensation."""
    created = registry.create_object(manifest)
    resource, name, namespace = object_ref(manifest)
    saga.record(
        f"delete {resource} {namespace}/{name}",
        functools.partial(registry.delete_object, resource, name, namespace),
    )
    return created


def _run_stages(
    request: PreviewRequest,
    registry: ClusterRegistry,
    config: PreviewConfig,
    saga: PreviewSaga,
    events: PreviewEventLogger,
) -> PreviewResult:
    namespace = config.app_namespace

    with _stage(PreviewStage.VALIDATE_REQUEST, request, events):
        validate_origin_name(request.origin)
        validate_version(request.version)
        split_preview_url(request.url)

    with _stage(PreviewStage.RESOLVE_SELECTOR, request, events):
        services = registry.list_objects(SERVICES, namespace)
        origin = find_origin(services, request.origin, namespace)
        selector = resolve_selector(origin, key=request.selector_key)
        preview_value = selector.preview_value(request.version)
        events.stage_completed(
            stage=PreviewStage.RESOLVE_SELECTOR,
            detail=(
                f"selector={selector.key}={selector.value} "
                f"preview_value={preview_value}"
            ),
        )

    with _stage(PreviewStage.CLONE_SERVICE, request, events):
        service = clone_service(origin, selector, request.version)
        _create(registry, saga, service)
        events.stage_completed(
            stage=PreviewStage.CLONE_SERVICE,
            detail=f"service={service['metadata']['name']}",
        )

    with _stage(PreviewStage.CLONE_DEPLOYMENT, request, events):
        deployments = registry.list_objects(DEPLOYMENTS, namespace)
        workload = find_workload(deployments, selector, namespace)
        deployment = clone_deployment(workload, selector, request.version)
        _create(registry, saga, deployment)
        events.stage_completed(
            stage=PreviewStage.CLONE_DEPLOYMENT,
            detail=f"deployment={deployment['metadata']['name']}",
        )

    with _stage(PreviewStage.COMPOSE_ROUTES, request, events):
        virtual_services = registry.list_objects(VIRTUAL_SERVICES, None)
        txn = RouteTableTransaction.begin(virtual_services, request.origin, config)
        change = txn.upsert(preview_route(request.origin, request.version, config))
        route_table = txn.render()
        server_side_apply(
            registry, route_table, field_manager=config.field_manager, force=True
        )
        _record_route_table_compensation(registry, config, saga, txn)
        events.stage_completed(
            stage=PreviewStage.COMPOSE_ROUTES,
            detail=f"route_table={txn.name} route={change.name} change={change.kind}",
        )

    with _stage(PreviewStage.GATEWAY_ROUTE, request, events):
        gateway_route = build_gateway_route(
            request.origin, request.version, request.url, request.gateway, config
        )
        _create(registry, saga, gateway_route)
        events.stage_completed(
            stage=PreviewStage.GATEWAY_ROUTE,
            detail=f"gateway_route={gateway_route['metadata']['name']}",
        )

    return PreviewResult(
        selector=selector,
        service=service,
        deployment=deployment,
        route_table=route_table,
        route_changes=tuple(txn.changes),
        gateway_route=gateway_route,
    )


def _record_route_table_compensation(
    registry: ClusterRegistry,
    config: PreviewConfig,
    saga: PreviewSaga,
    txn: RouteTableTransaction,
) -> None:
    """Record how to undo the route table merge of ``txn``."""
    if txn.created:
        saga.record(
            f"delete {VIRTUAL_SERVICES} {txn.namespace}/{txn.name}",
            functools.partial(
                registry.delete_object, VIRTUAL_SERVICES, txn.name, txn.namespace
            ),
        )
        return
    saga.record(
        f"restore {VIRTUAL_SERVICES} {txn.namespace}/{txn.name}",
        functools.partial(
            server_side_apply,
            registry,
            txn.rollback_manifest(),
            field_manager=config.field_manager,
            force=True,
        ),
    )


def create_preview(
    request: PreviewRequest,
    registry: ClusterRegistry,
    config: PreviewConfig,
    *,
    rollback: bool = False,
    events: PreviewEventLogger | None = None,
) -> PreviewResult:
    """Create the Service, Deployment, and routes for one preview.

    Parameters
    ----------
    request : PreviewRequest
        Origin, version, URL, and gateway of the preview.
    registry : ClusterRegistry
        Cluster access used for every read and write.
    config : PreviewConfig
        Namespaces, header, and field manager.
    rollback : bool, default False
        Undo this run's mutations, newest first, when a stage fails.
    events : PreviewEventLogger | None, optional
        Structured event sink; a default logger is used when omitted.

    Returns
    -------
    PreviewResult
        The manifests submitted for the preview.

    Raises
    ------
    PreviewStageError
        If any stage fails. The original error is chained as the cause.

    """
    events = events or PreviewEventLogger()
    saga = PreviewSaga(events)
    try:
        result = _run_stages(request, registry, config, saga, events)
    except PreviewStageError:
        if rollback:
            saga.compensate()
        raise
    events.preview_created(
        origin=request.origin, version=request.version, url=request.url
    )
    return result


def list_previews(
    origin: str, registry: ClusterRegistry, config: PreviewConfig
) -> list[PreviewRoute]:
    """Return the previews routed for ``origin``, in evaluation order."""
    origin_host = config.host_for(origin)
    table = find_route_table(registry.list_objects(VIRTUAL_SERVICES, None), origin_host)
    if table is None:
        return []
    return [
        PreviewRoute(
            version=version,
            host=preview_name(origin_host, version),
            header_prefix=header_prefix(version),
        )
        for version in preview_versions(table, origin_host)
    ]


__all__ = [
    "DEFAULT_GATEWAY",
    "PreviewRequest",
    "PreviewResult",
    "PreviewRoute",
    "PreviewSaga",
    "PreviewStage",
    "create_preview",
    "list_previews",
]
