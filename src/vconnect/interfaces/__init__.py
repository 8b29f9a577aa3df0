"""Interface definitions for the host cluster collaborators."""

from vconnect.interfaces.kubernetes_provider import (
    KubernetesProvider,
    ServiceEndpointInfo,
    WorkloadReference,
)
from vconnect.interfaces.tunnel_transport import ForwardingSession, TunnelTransport

__all__ = [
    "ForwardingSession",
    "KubernetesProvider",
    "ServiceEndpointInfo",
    "TunnelTransport",
    "WorkloadReference",
]
