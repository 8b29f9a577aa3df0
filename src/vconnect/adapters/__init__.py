"""Adapter implementations for the host cluster."""

from vconnect.adapters.k8s_adapter import KubernetesAdapter
from vconnect.adapters.portforward_adapter import KubernetesPortForwardTransport

__all__ = [
    "KubernetesAdapter",
    "KubernetesPortForwardTransport",
]
