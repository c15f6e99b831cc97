"""Shared fixtures for preview unit and feature tests."""

from __future__ import annotations

import pytest

from preview_mesh.config import PreviewConfig
from tests.helpers.fake_registry import (
    InMemoryRegistry,
    make_deployment,
    make_service,
)

_CONFIG_ENV_VARS = (
    "PREVIEW_APP_NAMESPACE",
    "PREVIEW_MESH_NAMESPACE",
    "PREVIEW_HEADER",
    "PREVIEW_FIELD_MANAGER",
    "PREVIEW_CLUSTER_DOMAIN",
    "PREVIEW_KUBECONFIG",
    "PREVIEW_KUBECTL_TIMEOUT",
    "PREVIEW_LOG_LEVEL",
    "RUN_IN_CLUSTER",
)


@pytest.fixture(autouse=True)
def clean_preview_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove preview settings inherited from the developer's shell."""
    for env_var in _CONFIG_ENV_VARS:
        monkeypatch.delenv(env_var, raising=False)


@pytest.fixture
def preview_config() -> PreviewConfig:
    """Return the default preview configuration."""
    return PreviewConfig()


@pytest.fixture
def checkout_registry() -> InMemoryRegistry:
    """Return a registry holding the ``checkout`` Service and Deployment."""
    return InMemoryRegistry(
        make_service("checkout", {"app": "checkout"}),
        make_deployment("checkout", {"app": "checkout"}),
    )
