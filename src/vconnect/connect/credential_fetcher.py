"""Retrieve the kube config of a virtual cluster.

The kube config is read from the secret the virtual cluster stores it in. Virtual
clusters created by older releases never write that secret, so when it cannot be
read the file is read from the syncer container instead. Both ways are tried on
every attempt.
"""

import threading

import structlog

from vconnect.core.exceptions import CredentialDocumentError
from vconnect.core.models import CredentialDocument
from vconnect.interfaces.exceptions import KubernetesProviderError
from vconnect.interfaces.kubernetes_provider import KubernetesProvider, WorkloadReference
from vconnect.utils.logging import get_logger
from vconnect.utils.polling import ConditionNotMet, poll_until

logger = get_logger(__name__)

STAGE = "wait for vcluster kube config"

SECRET_PREFIX = "vc-"
SECRET_KEY = "config"
CONTROL_CONTAINER = "syncer"
READ_COMMAND = ["cat", "/root/.kube/config"]


def secret_name(instance_name: str) -> str:
    """Name of the secret holding the kube config of a virtual cluster."""
    return f"{SECRET_PREFIX}{instance_name}"


class CredentialFetcher:
    """Fetches the kube config of a virtual cluster, waiting for it to come up."""

    def __init__(
        self,
        provider: KubernetesProvider,
        interval: float = 2.0,
        timeout: float = 600.0,
        log: structlog.BoundLogger | None = None,
    ):
        self.provider = provider
        self.interval = interval
        self.timeout = timeout
        self.log = log or logger

    def fetch(
        self,
        workload: WorkloadReference,
        instance_name: str | None = None,
        cancel_event: threading.Event | None = None,
    ) -> CredentialDocument:
        """Return the parsed kube config.

        Args:
            workload: Pod of the virtual cluster (used by the syncer fallback)
            instance_name: Virtual cluster name (the secret is skipped without one)
            cancel_event: Event that aborts waiting when set

        Raises:
            StageTimeoutError: If no kube config could be read in time
        """
        printed_waiting = False

        def attempt() -> CredentialDocument:
            nonlocal printed_waiting

            try:
                return self._read_from_secret(workload.namespace, instance_name)
            except (KubernetesProviderError, CredentialDocumentError) as e:
                self.log.debug("kubeconfig_secret_unavailable", error=str(e))

            try:
                document = self._read_from_container(workload)
            except (KubernetesProviderError, CredentialDocumentError) as e:
                if not printed_waiting:
                    self.log.info("waiting_for_instance", message="Waiting for vcluster to come up...")
                    printed_waiting = True
                raise ConditionNotMet(e) from e

            self.log.info(
                "kubeconfig_read_from_control_container",
                message="Falling back to reading the kube config from the syncer pod.",
                pod=workload.name,
            )
            return document

        return poll_until(
            attempt,
            interval=self.interval,
            timeout=self.timeout,
            stage=STAGE,
            cancel_event=cancel_event,
        )

    def _read_from_secret(self, namespace: str, instance_name: str | None) -> CredentialDocument:
        if not instance_name:
            raise KubernetesProviderError("no vcluster name given, kube config secret unknown")

        name = secret_name(instance_name)
        data = self.provider.read_secret(name, namespace)
        if SECRET_KEY not in data:
            raise KubernetesProviderError(f"Secret {name} has no {SECRET_KEY} key")
        return CredentialDocument.from_kubeconfig(data[SECRET_KEY])

    def _read_from_container(self, workload: WorkloadReference) -> CredentialDocument:
        stdout = self.provider.exec_in_workload(workload, CONTROL_CONTAINER, READ_COMMAND)
        return CredentialDocument.from_kubeconfig(stdout)
