"""Tests for CredentialFetcher."""

from unittest.mock import MagicMock

import pytest
from conftest import notices

from vconnect.connect.credential_fetcher import (
    CONTROL_CONTAINER,
    READ_COMMAND,
    CredentialFetcher,
    secret_name,
)
from vconnect.core.exceptions import CredentialDocumentError, StageTimeoutError
from vconnect.interfaces.exceptions import KubernetesProviderError, ResourceNotFoundError
from vconnect.interfaces.kubernetes_provider import WorkloadReference

FALLBACK_NOTICE = "kubeconfig_read_from_control_container"
WAITING_NOTICE = "waiting_for_instance"


@pytest.fixture
def fetcher(mock_provider: MagicMock, mock_log: MagicMock) -> CredentialFetcher:
    """Fetcher with short polling."""
    return CredentialFetcher(mock_provider, interval=0.01, timeout=0.2, log=mock_log)


def test_secret_name():
    """Test the secret holding the kube config."""
    assert secret_name("demo") == "vc-demo"


def test_fetch_from_secret(
    fetcher: CredentialFetcher,
    mock_provider: MagicMock,
    mock_log: MagicMock,
    demo_workload: WorkloadReference,
    sample_kubeconfig: str,
):
    """Test the secret is used when readable."""
    mock_provider.read_secret.return_value = {"config": sample_kubeconfig.encode()}

    document = fetcher.fetch(demo_workload, "demo")

    assert document.clusters["local"].server == "https://localhost:8443"
    mock_provider.read_secret.assert_called_once_with("vc-demo", "vcluster")
    mock_provider.exec_in_workload.assert_not_called()
    assert notices(mock_log, FALLBACK_NOTICE) == []
    assert notices(mock_log, WAITING_NOTICE) == []


def test_fetch_falls_back_to_control_container(
    fetcher: CredentialFetcher,
    mock_provider: MagicMock,
    mock_log: MagicMock,
    demo_workload: WorkloadReference,
    sample_kubeconfig: str,
):
    """Test the syncer container is read when the secret is missing."""
    mock_provider.read_secret.side_effect = ResourceNotFoundError("secret not found")
    mock_provider.exec_in_workload.return_value = sample_kubeconfig

    document = fetcher.fetch(demo_workload, "demo")

    assert list(document.clusters) == ["local"]
    mock_provider.exec_in_workload.assert_called_once_with(
        demo_workload, CONTROL_CONTAINER, READ_COMMAND
    )
    assert len(notices(mock_log, FALLBACK_NOTICE)) == 1


def test_fetch_fallback_succeeds_on_nth_attempt(
    fetcher: CredentialFetcher,
    mock_provider: MagicMock,
    mock_log: MagicMock,
    demo_workload: WorkloadReference,
    sample_kubeconfig: str,
):
    """Test notices are emitted once however many attempts failed before."""
    mock_provider.read_secret.side_effect = ResourceNotFoundError("secret not found")
    mock_provider.exec_in_workload.side_effect = [
        KubernetesProviderError("container not ready"),
        KubernetesProviderError("container not ready"),
        KubernetesProviderError("container not ready"),
        sample_kubeconfig,
    ]

    document = fetcher.fetch(demo_workload, "demo")

    assert document.clusters["local"].server == "https://localhost:8443"
    assert mock_provider.read_secret.call_count == 4
    assert mock_provider.exec_in_workload.call_count == 4
    assert len(notices(mock_log, FALLBACK_NOTICE)) == 1
    assert len(notices(mock_log, WAITING_NOTICE)) == 1


def test_fetch_secret_becomes_available(
    fetcher: CredentialFetcher,
    mock_provider: MagicMock,
    mock_log: MagicMock,
    demo_workload: WorkloadReference,
    sample_kubeconfig: str,
):
    """Test waiting until the secret is provisioned."""
    mock_provider.read_secret.side_effect = [
        ResourceNotFoundError("secret not found"),
        {"config": sample_kubeconfig.encode()},
    ]
    mock_provider.exec_in_workload.side_effect = KubernetesProviderError("no such file")

    document = fetcher.fetch(demo_workload, "demo")

    assert "local" in document.clusters
    assert notices(mock_log, FALLBACK_NOTICE) == []
    assert len(notices(mock_log, WAITING_NOTICE)) == 1


def test_fetch_secret_without_config_key(
    fetcher: CredentialFetcher,
    mock_provider: MagicMock,
    demo_workload: WorkloadReference,
    sample_kubeconfig: str,
):
    """Test a secret lacking the config key counts as unreadable."""
    mock_provider.read_secret.return_value = {"other": b"value"}
    mock_provider.exec_in_workload.return_value = sample_kubeconfig

    document = fetcher.fetch(demo_workload, "demo")

    assert "local" in document.clusters
    mock_provider.exec_in_workload.assert_called_once()


def test_fetch_without_instance_name_skips_secret(
    fetcher: CredentialFetcher,
    mock_provider: MagicMock,
    sample_kubeconfig: str,
):
    """Test only the container is read when just a pod is known."""
    workload = WorkloadReference(name="demo-0", namespace="vcluster")
    mock_provider.exec_in_workload.return_value = sample_kubeconfig

    fetcher.fetch(workload)

    mock_provider.read_secret.assert_not_called()


def test_fetch_fallback_output_is_validated(
    fetcher: CredentialFetcher,
    mock_provider: MagicMock,
    mock_log: MagicMock,
    demo_workload: WorkloadReference,
):
    """Test unparseable command output is retried and reported on timeout."""
    mock_provider.read_secret.side_effect = ResourceNotFoundError("secret not found")
    mock_provider.exec_in_workload.return_value = "clusters: [unclosed"

    with pytest.raises(StageTimeoutError) as exc_info:
        fetcher.fetch(demo_workload, "demo")

    assert isinstance(exc_info.value.last_error, CredentialDocumentError)
    assert notices(mock_log, FALLBACK_NOTICE) == []


def test_fetch_timeout_wraps_last_error(
    fetcher: CredentialFetcher,
    mock_provider: MagicMock,
    demo_workload: WorkloadReference,
):
    """Test the timeout carries the last retrieval error."""
    mock_provider.read_secret.side_effect = ResourceNotFoundError("secret not found")
    mock_provider.exec_in_workload.side_effect = KubernetesProviderError("container not found")

    with pytest.raises(StageTimeoutError) as exc_info:
        fetcher.fetch(demo_workload, "demo")

    assert exc_info.value.stage == "wait for vcluster kube config"
    assert "container not found" in str(exc_info.value.last_error)
