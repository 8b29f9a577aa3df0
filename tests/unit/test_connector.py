"""End-to-end tests for VirtualClusterConnector with mocked collaborators."""

import threading
from unittest.mock import MagicMock, patch

import pytest
from conftest import make_kubeconfig, make_workload

from vconnect.connect.connector import VirtualClusterConnector
from vconnect.core.config import ConnectConfig
from vconnect.core.exceptions import ConfigurationError, OperationCancelledError, StageTimeoutError
from vconnect.core.models import ExposureKind
from vconnect.interfaces.exceptions import ResourceNotFoundError
from vconnect.interfaces.kubernetes_provider import ServiceEndpointInfo
from vconnect.interfaces.tunnel_transport import TunnelTransport


@pytest.fixture
def transport() -> MagicMock:
    """Mock tunnel transport."""
    return MagicMock(spec=TunnelTransport)


@pytest.fixture
def demo_provider(mock_provider: MagicMock) -> MagicMock:
    """Provider for a running demo virtual cluster without a service."""
    mock_provider.list_workloads.return_value = [make_workload("demo-0")]
    mock_provider.read_secret.return_value = {
        "config": make_kubeconfig(("demo", "https://10.0.0.5:443")).encode()
    }
    mock_provider.get_service_endpoint.side_effect = ResourceNotFoundError("not found")
    return mock_provider


def make_connector(provider, transport, config) -> VirtualClusterConnector:
    return VirtualClusterConnector(provider, transport, config, log=MagicMock())


def test_tunnel_mode(demo_provider: MagicMock, transport: MagicMock, demo_config: ConnectConfig):
    """Test the server is pointed at the local port and the tunnel targets the in-pod port."""
    connector = make_connector(demo_provider, transport, demo_config)

    result = connector.connect()

    assert result.document.clusters["demo"].server == "https://10.0.0.5:8443"
    assert result.tunnel_required
    assert result.remote_port == 443
    assert result.workload.name == "demo-0"

    cancel_event = threading.Event()
    with patch.object(connector.supervisor, "run") as mock_run:
        connector.forward(result, cancel_event)

    mock_run.assert_called_once_with(
        result.workload, local_port=8443, remote_port=443, cancel_event=cancel_event
    )


def test_load_balancer_mode(
    demo_provider: MagicMock, transport: MagicMock, demo_config: ConnectConfig
):
    """Test a load balancer address is used directly and no tunnel is started."""
    pending = ServiceEndpointInfo(kind=ExposureKind.LOAD_BALANCED)
    demo_provider.get_service_endpoint.side_effect = [
        pending,
        pending,
        ServiceEndpointInfo(kind=ExposureKind.LOAD_BALANCED, ip="34.1.1.1"),
    ]
    connector = make_connector(demo_provider, transport, demo_config)

    result = connector.connect()
    connector.forward(result, threading.Event())

    assert result.document.clusters["demo"].server == "https://34.1.1.1"
    assert not result.tunnel_required
    assert demo_provider.get_service_endpoint.call_count == 3
    transport.connect.assert_not_called()


def test_missing_service_goes_to_tunnel_mode_immediately(
    demo_provider: MagicMock, transport: MagicMock, demo_config: ConnectConfig
):
    """Test a missing service is looked up once and then the tunnel is used."""
    connector = make_connector(demo_provider, transport, demo_config)

    result = connector.connect()

    demo_provider.get_service_endpoint.assert_called_once_with("demo", "vcluster")
    assert result.tunnel_required


def test_no_workload_times_out_in_resolution(
    demo_provider: MagicMock, transport: MagicMock, demo_config: ConnectConfig
):
    """Test no matching pod fails with a timeout naming the resolution stage."""
    demo_provider.list_workloads.return_value = []
    connector = make_connector(demo_provider, transport, demo_config)

    with pytest.raises(StageTimeoutError) as exc_info:
        connector.connect()

    assert exc_info.value.stage == "finding vcluster pod"
    demo_provider.read_secret.assert_not_called()


def test_two_clusters_rejected_before_discovery(
    demo_provider: MagicMock, transport: MagicMock, demo_config: ConnectConfig
):
    """Test a document with two clusters fails before any service or tunnel work."""
    demo_provider.read_secret.return_value = {
        "config": make_kubeconfig(
            ("a", "https://10.0.0.5:443"), ("b", "https://10.0.0.6:443")
        ).encode()
    }
    connector = make_connector(demo_provider, transport, demo_config)

    with pytest.raises(ConfigurationError):
        connector.connect()

    demo_provider.get_service_endpoint.assert_not_called()
    transport.connect.assert_not_called()


def test_explicit_server_skips_discovery(
    demo_provider: MagicMock, transport: MagicMock, fast_timeouts
):
    """Test an explicit server replaces the cluster server without discovery."""
    config = ConnectConfig(
        name="demo", namespace="vcluster", server="vcluster.example.com", timeouts=fast_timeouts
    )
    connector = make_connector(demo_provider, transport, config)

    result = connector.connect()

    assert result.server == "https://vcluster.example.com"
    demo_provider.get_service_endpoint.assert_not_called()


def test_pod_only_skips_resolution_and_discovery(
    demo_provider: MagicMock, transport: MagicMock, fast_timeouts
):
    """Test connecting by pod uses the syncer container and the tunnel."""
    demo_provider.exec_in_workload.return_value = make_kubeconfig(("local", "https://localhost:8443"))
    config = ConnectConfig(
        pod="demo-0", namespace="vcluster", local_port=9443, timeouts=fast_timeouts
    )
    connector = make_connector(demo_provider, transport, config)

    result = connector.connect()

    assert result.server == "https://localhost:9443"
    assert result.remote_port == 8443
    demo_provider.list_workloads.assert_not_called()
    demo_provider.read_secret.assert_not_called()
    demo_provider.get_service_endpoint.assert_not_called()


def test_cancelled_connect(
    demo_provider: MagicMock, transport: MagicMock, demo_config: ConnectConfig
):
    """Test cancellation aborts the setup stages."""
    cancel_event = threading.Event()
    cancel_event.set()
    connector = make_connector(demo_provider, transport, demo_config)

    with pytest.raises(OperationCancelledError):
        connector.connect(cancel_event)
