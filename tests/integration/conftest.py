"""Integration test fixtures and configuration."""

import os
from pathlib import Path

import pytest

from vconnect.utils.kubeconfig import default_kubeconfig_path


@pytest.fixture
def skip_if_no_kubeconfig():
    """Skip test if kubeconfig is not available."""
    if not Path(default_kubeconfig_path()).exists():
        pytest.skip(
            "Kubeconfig not found. Set KUBECONFIG environment variable or "
            "ensure ~/.kube/config exists."
        )


@pytest.fixture
def test_context() -> str | None:
    """Host cluster kube context from environment (optional)."""
    return os.getenv("VCONNECT_TEST_CONTEXT")


@pytest.fixture
def test_vcluster() -> tuple[str, str] | None:
    """Name and namespace of a running virtual cluster (VCONNECT_TEST_VCLUSTER=name/namespace)."""
    value = os.getenv("VCONNECT_TEST_VCLUSTER")
    if not value or "/" not in value:
        return None
    name, namespace = value.split("/", 1)
    return name, namespace


@pytest.fixture
def skip_if_no_vcluster(test_vcluster: tuple[str, str] | None):
    """Skip test if no running virtual cluster is configured."""
    if test_vcluster is None:
        pytest.skip("No virtual cluster configured. Set VCONNECT_TEST_VCLUSTER=name/namespace.")
