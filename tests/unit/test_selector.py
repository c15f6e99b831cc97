"""Unit tests for origin selector resolution."""

from __future__ import annotations

import pytest

from preview_mesh.errors import (
    OriginNotFoundError,
    PreviewNameError,
    SelectorNotFoundError,
)
from preview_mesh.selector import SelectorPair, find_origin, resolve_selector
from tests.helpers.fake_registry import make_service
from tests.helpers.log_capture import capture_module_logs


class TestResolveSelector:
    """Tests for resolve_selector."""

    def test_single_entry_selector(self) -> None:
        """A one-entry selector is returned as the pair."""
        service = make_service("checkout", {"app": "checkout"})

        assert resolve_selector(service) == SelectorPair(key="app", value="checkout")

    def test_empty_selector_fails(self) -> None:
        """A Service without a selector cannot be previewed."""
        service = make_service("checkout", {})

        with pytest.raises(
            SelectorNotFoundError, match="not found selector from service checkout"
        ):
            resolve_selector(service)

    def test_missing_selector_field_fails(self) -> None:
        """A Service whose spec has no selector field is rejected too."""
        service = make_service("checkout")
        del service["spec"]["selector"]

        with pytest.raises(SelectorNotFoundError):
            resolve_selector(service)

    def test_multi_entry_selector_uses_first_and_warns(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """The first entry wins and a warning names the choice."""
        logs = capture_module_logs(monkeypatch, "preview_mesh.selector")
        service = make_service("checkout", {"app": "checkout", "tier": "web"})

        pair = resolve_selector(service)

        assert pair == SelectorPair(key="app", value="checkout")
        warnings = logs.messages("WARNING")
        assert len(warnings) == 1
        assert "using app=checkout" in warnings[0]

    def test_explicit_key_overrides_order(self) -> None:
        """An explicit key picks that entry."""
        service = make_service("checkout", {"app": "checkout", "tier": "web"})

        assert resolve_selector(service, key="tier") == SelectorPair("tier", "web")

    def test_explicit_key_missing_fails(self) -> None:
        """An explicit key absent from the selector is an error."""
        service = make_service("checkout", {"app": "checkout"})

        with pytest.raises(SelectorNotFoundError, match="'release'") as excinfo:
            resolve_selector(service, key="release")

        assert excinfo.value.key == "release"


class TestSelectorPair:
    """Tests for SelectorPair helpers."""

    def test_preview_value(self) -> None:
        """The preview value is the encoded origin value."""
        assert SelectorPair("app", "checkout").preview_value("42") == "pr42-checkout"

    def test_overlong_preview_value_is_rejected(self) -> None:
        """Label values share the 63-character limit of object names."""
        with pytest.raises(PreviewNameError, match="exceeds 63 characters"):
            SelectorPair("app", "a" * 60).preview_value("42")

    @pytest.mark.parametrize(
        ("labels", "expected"),
        [
            ({"app": "checkout"}, True),
            ({"app": "checkout", "tier": "web"}, True),
            ({"app": "pr42-checkout"}, False),
            ({}, False),
            (None, False),
        ],
    )
    def test_matches(self, labels: dict[str, str] | None, *, expected: bool) -> None:
        """Only label sets carrying the exact pair match."""
        assert SelectorPair("app", "checkout").matches(labels) is expected


class TestFindOrigin:
    """Tests for find_origin."""

    def test_returns_named_service(self) -> None:
        """The Service with the requested name is returned."""
        services = [make_service("cart"), make_service("checkout")]

        assert find_origin(services, "checkout", "default")["metadata"]["name"] == (
            "checkout"
        )

    def test_missing_service_fails(self) -> None:
        """A missing origin raises with name and namespace."""
        with pytest.raises(OriginNotFoundError, match="'checkout'.*'shop'"):
            find_origin([make_service("cart")], "checkout", "shop")
