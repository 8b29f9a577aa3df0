"""Connect to a virtual cluster: find its pod, fetch and rewrite its kube config, forward a port."""

import threading
from dataclasses import dataclass

import structlog

from vconnect.connect.credential_fetcher import CredentialFetcher
from vconnect.connect.credential_rewriter import CredentialRewriter
from vconnect.connect.endpoint_discoverer import EndpointDiscoverer
from vconnect.connect.instance_resolver import InstanceResolver
from vconnect.connect.tunnel_supervisor import TunnelSupervisor
from vconnect.core.config import ConnectConfig
from vconnect.core.models import CredentialDocument
from vconnect.interfaces.kubernetes_provider import KubernetesProvider, WorkloadReference
from vconnect.interfaces.tunnel_transport import TunnelTransport
from vconnect.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ConnectResult:
    """Outcome of the setup stages."""

    workload: WorkloadReference
    document: CredentialDocument
    server: str
    remote_port: int | None = None

    @property
    def tunnel_required(self) -> bool:
        """Whether the server is only reachable through a local port forward."""
        return self.remote_port is not None


class VirtualClusterConnector:
    """Chains the connect stages for one virtual cluster.

    Setup (connect) runs the stages one after the other and either returns a
    finished kube config or raises; forward then blocks while the tunnel runs.
    """

    def __init__(
        self,
        provider: KubernetesProvider,
        transport: TunnelTransport,
        config: ConnectConfig,
        log: structlog.BoundLogger | None = None,
    ):
        """Initialize connector.

        Args:
            provider: Host cluster provider
            transport: Tunnel transport used when no public endpoint exists
            config: Connect configuration (namespace must be resolved)
            log: Logger passed to every stage
        """
        self.config = config
        self.log = log or logger
        timeouts = config.timeouts

        self.resolver = InstanceResolver(
            provider,
            interval=timeouts.resolve.interval,
            timeout=timeouts.resolve.timeout,
            log=self.log,
        )
        self.fetcher = CredentialFetcher(
            provider,
            interval=timeouts.fetch.interval,
            timeout=timeouts.fetch.timeout,
            log=self.log,
        )
        self.discoverer = EndpointDiscoverer(
            provider,
            interval=timeouts.discover.interval,
            timeout=timeouts.discover.timeout,
            log=self.log,
        )
        self.rewriter = CredentialRewriter()
        self.supervisor = TunnelSupervisor(
            transport,
            address=config.address,
            restart_delay=config.restart_delay,
            log=self.log,
        )

    def connect(self, cancel_event: threading.Event | None = None) -> ConnectResult:
        """Run the setup stages.

        Raises:
            ConfigurationError: If the kube config is malformed
            StageTimeoutError: If a stage does not finish in time
            OperationCancelledError: If cancel_event is set while waiting
            KubernetesProviderError: On unexpected host cluster API failures
        """
        config = self.config
        namespace = config.namespace or "default"

        workload = self.resolver.resolve(
            namespace,
            instance_name=config.name,
            pod_name=config.pod,
            cancel_event=cancel_event,
        )
        self.log.debug("workload_resolved", pod=workload.name, namespace=namespace)

        document = self.fetcher.fetch(workload, config.name, cancel_event=cancel_event)

        # a document without exactly one cluster fails before discovery
        document.sole_cluster()

        server = config.server
        if config.name and not server:
            server = self.discoverer.discover(config.name, namespace, cancel_event=cancel_event)

        rewritten = self.rewriter.rewrite(document, server=server, local_port=config.local_port)
        return ConnectResult(
            workload=workload,
            document=rewritten.document,
            server=rewritten.server,
            remote_port=rewritten.remote_port,
        )

    def forward(self, result: ConnectResult, cancel_event: threading.Event) -> None:
        """Block forwarding the local port until cancel_event is set.

        Does nothing when the result needs no tunnel.

        Raises:
            BindError: If the local port cannot be bound
            TunnelError: If forwarding cannot be started
        """
        if not result.tunnel_required:
            return

        self.supervisor.run(
            result.workload,
            local_port=self.config.local_port,
            remote_port=result.remote_port,
            cancel_event=cancel_event,
        )
