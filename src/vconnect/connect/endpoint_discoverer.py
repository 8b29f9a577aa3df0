"""Discover an already provisioned public endpoint of a virtual cluster."""

import threading

import structlog

from vconnect.core.models import ExposureKind
from vconnect.interfaces.exceptions import ResourceNotFoundError
from vconnect.interfaces.kubernetes_provider import KubernetesProvider
from vconnect.utils.logging import get_logger
from vconnect.utils.polling import poll_until

logger = get_logger(__name__)

STAGE = "wait for vcluster load balancer"

# Poll result meaning "done, there is no public endpoint"
_NO_ENDPOINT = ""


class EndpointDiscoverer:
    """Looks for a load balancer address in front of a virtual cluster.

    Only load balancer services are waited for; a missing service or any other
    service type means the cluster is reached through a tunnel.
    """

    def __init__(
        self,
        provider: KubernetesProvider,
        interval: float = 2.0,
        timeout: float = 300.0,
        log: structlog.BoundLogger | None = None,
    ):
        self.provider = provider
        self.interval = interval
        self.timeout = timeout
        self.log = log or logger

    def discover(
        self,
        instance_name: str,
        namespace: str,
        cancel_event: threading.Event | None = None,
    ) -> str | None:
        """Return the load balancer hostname or IP, or None if there is no public endpoint.

        Raises:
            KubernetesProviderError: On any service read failure other than not found
            StageTimeoutError: If the load balancer gets no address in time
        """
        printed_waiting = False

        def attempt() -> str | None:
            nonlocal printed_waiting

            try:
                endpoint = self.provider.get_service_endpoint(instance_name, namespace)
            except ResourceNotFoundError:
                return _NO_ENDPOINT

            # not a load balancer? Then don't wait
            if endpoint.kind != ExposureKind.LOAD_BALANCED:
                return _NO_ENDPOINT

            if not endpoint.ready:
                if not printed_waiting:
                    self.log.info(
                        "waiting_for_load_balancer_address",
                        message="Waiting for vcluster LoadBalancer ip...",
                    )
                    printed_waiting = True
                return None

            return endpoint.address

        server = poll_until(
            attempt,
            interval=self.interval,
            timeout=self.timeout,
            stage=STAGE,
            cancel_event=cancel_event,
        )
        if server == _NO_ENDPOINT:
            return None

        self.log.info("using_load_balancer_endpoint", vcluster=instance_name, server=server)
        return server
