"""Find the pod backing a virtual cluster."""

import threading

import structlog

from vconnect.core.exceptions import ConfigurationError
from vconnect.interfaces.kubernetes_provider import KubernetesProvider, WorkloadReference
from vconnect.utils.logging import get_logger
from vconnect.utils.polling import poll_until

logger = get_logger(__name__)

STAGE = "finding vcluster pod"


def label_selector(instance_name: str) -> str:
    """Label selector matching the pods of a virtual cluster."""
    return f"app=vcluster,release={instance_name}"


def select_newest_workload(candidates: list[WorkloadReference]) -> WorkloadReference | None:
    """Pick the most recently created candidate.

    Returns None when there is no candidate or the newest one is terminating;
    older candidates are never considered.
    """
    if not candidates:
        return None

    newest = sorted(
        candidates,
        key=lambda w: w.creation_time.timestamp() if w.creation_time else float("-inf"),
        reverse=True,
    )[0]
    if newest.terminating:
        return None
    return newest


class InstanceResolver:
    """Resolves a virtual cluster name to the pod to connect to."""

    def __init__(
        self,
        provider: KubernetesProvider,
        interval: float = 1.0,
        timeout: float = 10.0,
        log: structlog.BoundLogger | None = None,
    ):
        self.provider = provider
        self.interval = interval
        self.timeout = timeout
        self.log = log or logger

    def resolve(
        self,
        namespace: str,
        instance_name: str | None = None,
        pod_name: str | None = None,
        cancel_event: threading.Event | None = None,
    ) -> WorkloadReference:
        """Return the workload to target.

        Args:
            namespace: Namespace of the virtual cluster
            instance_name: Virtual cluster name
            pod_name: Pod given directly; skips the lookup
            cancel_event: Event that aborts waiting when set

        Raises:
            ConfigurationError: If neither instance_name nor pod_name is given
            StageTimeoutError: If no suitable pod shows up in time
        """
        if pod_name:
            return WorkloadReference(name=pod_name, namespace=namespace)
        if not instance_name:
            raise ConfigurationError("please specify either a pod or a name for the vcluster")

        selector = label_selector(instance_name)

        def attempt() -> WorkloadReference | None:
            return select_newest_workload(self.provider.list_workloads(namespace, selector))

        workload = poll_until(
            attempt,
            interval=self.interval,
            timeout=self.timeout,
            stage=STAGE,
            cancel_event=cancel_event,
        )
        self.log.debug("vcluster_pod_found", pod=workload.name, namespace=namespace)
        return workload
