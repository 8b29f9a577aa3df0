"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from vconnect.core.config import ConnectConfig, StageTiming, TimeoutsConfig
from vconnect.interfaces.kubernetes_provider import KubernetesProvider, WorkloadReference

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_kubeconfig(*clusters: tuple[str, str]) -> str:
    """Build kube config YAML with one user/context per (name, server) pair."""
    lines = ["apiVersion: v1", "kind: Config", "clusters:"]
    for name, server in clusters:
        lines += [
            f"- name: {name}",
            "  cluster:",
            f"    server: {server}",
            "    certificate-authority-data: Y2EtZGF0YQ==",
        ]
    lines.append("users:")
    for name, _ in clusters:
        lines += [
            f"- name: {name}",
            "  user:",
            "    client-certificate-data: Y2VydA==",
            "    client-key-data: a2V5",
        ]
    lines.append("contexts:")
    for name, _ in clusters:
        lines += [f"- name: {name}", "  context:", f"    cluster: {name}", f"    user: {name}"]
    lines.append(f"current-context: {clusters[0][0] if clusters else ''}")
    return "\n".join(lines) + "\n"


def make_workload(
    name: str, age_seconds: int = 0, terminating: bool = False, namespace: str = "vcluster"
) -> WorkloadReference:
    """Workload created age_seconds before BASE_TIME."""
    return WorkloadReference(
        name=name,
        namespace=namespace,
        creation_time=BASE_TIME - timedelta(seconds=age_seconds),
        terminating=terminating,
    )


@pytest.fixture
def mock_provider() -> MagicMock:
    """Mock KubernetesProvider for testing."""
    return MagicMock(spec=KubernetesProvider)


@pytest.fixture
def mock_log() -> MagicMock:
    """Mock structured logger capturing notices."""
    return MagicMock()


@pytest.fixture
def sample_kubeconfig() -> str:
    """Kube config with a single cluster, as written by a virtual cluster."""
    return make_kubeconfig(("local", "https://localhost:8443"))


@pytest.fixture
def demo_workload() -> WorkloadReference:
    """Workload backing the demo virtual cluster."""
    return make_workload("demo-0")


@pytest.fixture
def fast_timeouts() -> TimeoutsConfig:
    """Stage timings short enough for unit tests."""
    return TimeoutsConfig(
        resolve=StageTiming(interval=0.01, timeout=0.2),
        fetch=StageTiming(interval=0.01, timeout=0.2),
        discover=StageTiming(interval=0.01, timeout=0.2),
    )


@pytest.fixture
def demo_config(fast_timeouts: TimeoutsConfig) -> ConnectConfig:
    """Connect configuration for the demo virtual cluster."""
    return ConnectConfig(name="demo", namespace="vcluster", timeouts=fast_timeouts)


def notices(log: MagicMock, event: str) -> list:
    """Calls of log.info with the given event name."""
    return [c for c in log.info.call_args_list if c.args and c.args[0] == event]
