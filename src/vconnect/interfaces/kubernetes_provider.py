"""Kubernetes provider interface for the host cluster operations used by connect."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from vconnect.core.models import ExposureKind


@dataclass(frozen=True)
class WorkloadReference:
    """Snapshot of a workload (pod) backing a virtual cluster."""

    name: str
    namespace: str
    creation_time: datetime | None = None
    terminating: bool = False


@dataclass(frozen=True)
class ServiceEndpointInfo:
    """Normalized exposure information of a service."""

    kind: ExposureKind
    hostname: str | None = None
    ip: str | None = None

    @property
    def ready(self) -> bool:
        """Whether an ingress address has been assigned."""
        return bool(self.hostname or self.ip)

    @property
    def address(self) -> str | None:
        """Preferred ingress address: hostname first, then IP."""
        return self.hostname or self.ip or None


class KubernetesProvider(ABC):
    """Abstract interface for the host cluster capabilities connect relies on.

    All methods return normalized data structures (dataclasses) rather than
    native K8s API objects.
    """

    @abstractmethod
    def list_workloads(self, namespace: str, label_selector: str) -> list[WorkloadReference]:
        """List workloads matching a label selector.

        Args:
            namespace: Namespace to query
            label_selector: Label selector (e.g., "app=vcluster,release=demo")

        Returns:
            List of workload references (unordered)

        Raises:
            KubernetesProviderError: If workloads cannot be listed
        """

    @abstractmethod
    def read_secret(self, name: str, namespace: str) -> dict[str, bytes]:
        """Read a secret and return its decoded data.

        Raises:
            ResourceNotFoundError: If the secret does not exist
            KubernetesProviderError: If the secret cannot be read
        """

    @abstractmethod
    def exec_in_workload(
        self, workload: WorkloadReference, container: str, command: list[str]
    ) -> str:
        """Execute a command inside a container of a workload.

        Returns:
            Captured standard output

        Raises:
            KubernetesProviderError: If execution fails
        """

    @abstractmethod
    def get_service_endpoint(self, name: str, namespace: str) -> ServiceEndpointInfo:
        """Get exposure kind and first ingress address of a service.

        Raises:
            ResourceNotFoundError: If the service does not exist
            KubernetesProviderError: If the service cannot be read
        """
