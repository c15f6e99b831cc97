"""Unit tests for the preview command-line interface."""

from __future__ import annotations

import dataclasses

import pytest
from ruamel.yaml import YAML

from preview_mesh import cli
from preview_mesh.registry import VIRTUAL_SERVICES
from tests.helpers.fake_registry import (
    InMemoryRegistry,
    make_deployment,
    make_service,
)
from tests.helpers.log_capture import capture_module_logs


@dataclasses.dataclass(slots=True)
class RegistryFactory:
    """Stand-in for KubectlRegistry returning an in-memory registry."""

    registry: InMemoryRegistry
    dry_runs: list[bool] = dataclasses.field(default_factory=list)

    def from_config(self, config: object, *, dry_run: bool = False) -> InMemoryRegistry:
        """Record the dry-run mode and hand out the shared registry."""
        del config
        self.dry_runs.append(dry_run)
        return self.registry


@pytest.fixture
def factory(monkeypatch: pytest.MonkeyPatch) -> RegistryFactory:
    """Route CLI registry construction to an in-memory checkout cluster."""
    registry = InMemoryRegistry(
        make_service("checkout", {"app": "checkout"}),
        make_deployment("checkout", {"app": "checkout"}),
    )
    factory = RegistryFactory(registry)
    monkeypatch.setattr(cli, "KubectlRegistry", factory)
    monkeypatch.setattr(
        cli, "configure_logging", lambda level, *, force=False: ("INFO", False)
    )
    return factory


def _invoke(tokens: list[str]) -> object:
    """Run the app, normalising cyclopts' exit behaviour to a return code."""
    try:
        return cli.app(tokens)
    except SystemExit as exc:
        return exc.code


class TestCliStructure:
    """Tests for CLI structure and subcommands."""

    def test_app_name(self) -> None:
        """App should be named preview."""
        assert cli.app.name == ("preview",)

    @pytest.mark.parametrize("command", ["create", "list"])
    def test_has_command(self, command: str) -> None:
        """App exposes the create and list subcommands."""
        assert cli.app[command] is not None


class TestCreateCommand:
    """Tests for the create command."""

    def test_creates_preview(
        self, factory: RegistryFactory, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """A successful run reports the preview and exits 0."""
        exit_code = cli.create(
            version="42", service="checkout", url="https://pr42.example.com"
        )

        assert exit_code == 0
        assert capsys.readouterr().out == (
            "Preview pr42-checkout created for https://pr42.example.com\n"
        )
        assert factory.dry_runs == [False]

    def test_short_flags_are_parsed(self, factory: RegistryFactory) -> None:
        """-v, -s, -u, and -g map onto the create options."""
        exit_code = _invoke(
            [
                "create",
                "-v",
                "42",
                "-s",
                "checkout",
                "-u",
                "https://pr42.example.com",
                "-g",
                "edge-gateway",
            ]
        )

        assert exit_code in {0, None}
        edge = factory.registry.get(
            VIRTUAL_SERVICES, "pr42-checkout-gateway-virtual-service", "istio-system"
        )
        assert edge is not None
        assert edge["spec"]["gateways"] == ["edge-gateway"]

    def test_dry_run_prints_manifests(
        self, factory: RegistryFactory, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Dry runs validate on the server and print a YAML stream."""
        exit_code = cli.create(
            version="42",
            service="checkout",
            url="https://pr42.example.com",
            dry_run=True,
        )

        assert exit_code == 0
        assert factory.dry_runs == [True]
        documents = list(YAML(typ="safe").load_all(capsys.readouterr().out))
        assert [doc["metadata"]["name"] for doc in documents] == [
            "pr42-checkout",
            "pr42-checkout",
            "prcheckout-virtual-service",
            "pr42-checkout-gateway-virtual-service",
        ]

    def test_failure_exits_one_with_stage(
        self, factory: RegistryFactory, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Errors are reported on stderr with the failing stage."""
        factory.registry.add(make_service("cart", {}))

        exit_code = cli.create(version="42", service="cart", url="pr42.example.com")

        assert exit_code == 1
        expected = "preview: resolve-selector: not found selector from service cart\n"
        assert expected in capsys.readouterr().err

    def test_invalid_configuration_exits_one(
        self,
        factory: RegistryFactory,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Configuration errors are reported before touching the cluster."""
        monkeypatch.setenv("PREVIEW_KUBECTL_TIMEOUT", "forever")

        exit_code = cli.create(
            version="42", service="checkout", url="https://pr42.example.com"
        )

        assert exit_code == 1
        assert "PREVIEW_KUBECTL_TIMEOUT" in capsys.readouterr().err
        assert factory.dry_runs == []

    def test_invalid_log_level_warns(
        self, factory: RegistryFactory, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """An unknown level falls back to INFO with a warning."""
        del factory
        logs = capture_module_logs(monkeypatch, "preview_mesh.cli")
        monkeypatch.setattr(
            cli, "configure_logging", lambda level, *, force=False: ("INFO", True)
        )

        cli.create(
            version="42",
            service="checkout",
            url="https://pr42.example.com",
            log_level="chatty",
        )

        assert logs.messages("WARNING") == [
            "Invalid PREVIEW_LOG_LEVEL 'chatty', falling back to INFO"
        ]


class TestListCommand:
    """Tests for the list command."""

    def test_lists_routed_versions(
        self, factory: RegistryFactory, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Each routed version is printed as one row."""
        cli.create(version="7", service="checkout", url="pr7.example.com")
        capsys.readouterr()

        exit_code = cli.list_routes(service="checkout")

        assert exit_code == 0
        assert capsys.readouterr().out == (
            "7\tpr7-checkout.default.svc.cluster.local\tpr7-\n"
        )

    def test_reports_no_previews(
        self, factory: RegistryFactory, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """An unrouted origin prints a notice."""
        del factory

        exit_code = cli.list_routes(service="checkout")

        assert exit_code == 0
        assert capsys.readouterr().out == "No previews routed for checkout.\n"
