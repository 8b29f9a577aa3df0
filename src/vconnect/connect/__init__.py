"""Connection establishment to a virtual cluster."""

from vconnect.connect.connector import ConnectResult, VirtualClusterConnector
from vconnect.connect.credential_fetcher import CredentialFetcher
from vconnect.connect.credential_rewriter import CredentialRewriter, RewriteResult
from vconnect.connect.endpoint_discoverer import EndpointDiscoverer
from vconnect.connect.instance_resolver import InstanceResolver
from vconnect.connect.tunnel_supervisor import TunnelSession, TunnelSupervisor

__all__ = [
    "ConnectResult",
    "CredentialFetcher",
    "CredentialRewriter",
    "EndpointDiscoverer",
    "InstanceResolver",
    "RewriteResult",
    "TunnelSession",
    "TunnelSupervisor",
    "VirtualClusterConnector",
]
