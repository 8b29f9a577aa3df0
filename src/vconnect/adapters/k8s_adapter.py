"""Kubernetes adapter implementing KubernetesProvider interface."""

import base64

from kubernetes.client.models import V1Pod

from vconnect.clients.kubernetes_client import KubernetesClient, KubernetesNotFoundError
from vconnect.core.models import ExposureKind
from vconnect.interfaces.exceptions import KubernetesProviderError, ResourceNotFoundError
from vconnect.interfaces.kubernetes_provider import (
    KubernetesProvider,
    ServiceEndpointInfo,
    WorkloadReference,
)
from vconnect.utils.logging import get_logger

logger = get_logger(__name__)


class KubernetesAdapter(KubernetesProvider):
    """Adapter wrapping KubernetesClient to implement KubernetesProvider interface.

    This adapter normalizes Kubernetes API responses into clean dataclasses,
    hiding kubernetes Python client implementation details.
    """

    def __init__(
        self,
        kubeconfig_path: str | None = None,
        context: str | None = None,
        client: KubernetesClient | None = None,
    ):
        """Initialize Kubernetes adapter.

        Args:
            kubeconfig_path: Path to kubeconfig file (optional)
            context: Kubernetes context to use (optional)
            client: Already initialized client (optional, takes precedence)
        """
        if client is not None:
            self.client = client
            return
        try:
            self.client = KubernetesClient(kubeconfig_path=kubeconfig_path, context=context)
            logger.debug("k8s_adapter_initialized", context=context)
        except Exception as e:
            raise KubernetesProviderError(f"Failed to initialize K8s adapter: {e}") from e

    def list_workloads(self, namespace: str, label_selector: str) -> list[WorkloadReference]:
        """List workloads matching a label selector.

        Raises:
            KubernetesProviderError: If pods cannot be retrieved
        """
        try:
            pods = self.client.get_pods(namespace=namespace, label_selector=label_selector)
        except Exception as e:
            logger.error("list_workloads_failed", namespace=namespace, error=str(e))
            raise KubernetesProviderError(f"Failed to list workloads: {e}") from e

        return [_to_workload(pod, namespace) for pod in pods]

    def read_secret(self, name: str, namespace: str) -> dict[str, bytes]:
        """Read a secret and return its base64-decoded data.

        Raises:
            ResourceNotFoundError: If the secret does not exist
            KubernetesProviderError: If the secret cannot be read or decoded
        """
        try:
            secret = self.client.get_secret(name=name, namespace=namespace)
        except KubernetesNotFoundError as e:
            raise ResourceNotFoundError(str(e)) from e
        except Exception as e:
            raise KubernetesProviderError(f"Failed to read secret {name}: {e}") from e

        try:
            return {key: base64.b64decode(value) for key, value in (secret.data or {}).items()}
        except (TypeError, ValueError) as e:
            raise KubernetesProviderError(f"Failed to decode secret {name}: {e}") from e

    def exec_in_workload(
        self, workload: WorkloadReference, container: str, command: list[str]
    ) -> str:
        """Execute a command inside a container and return its standard output.

        A non-zero exit code is reported as an error.

        Raises:
            KubernetesProviderError: If execution fails
        """
        try:
            result = self.client.exec_in_pod(
                namespace=workload.namespace,
                pod_name=workload.name,
                command=command,
                container=container,
            )
        except Exception as e:
            raise KubernetesProviderError(f"Failed to exec in {workload.name}: {e}") from e

        if result.get("returncode"):
            raise KubernetesProviderError(
                f"Command {' '.join(command)} exited with {result['returncode']}: "
                f"{result.get('stderr', '').strip()}"
            )
        return result["stdout"]

    def get_service_endpoint(self, name: str, namespace: str) -> ServiceEndpointInfo:
        """Get exposure kind and first ingress address of a service.

        Raises:
            ResourceNotFoundError: If the service does not exist
            KubernetesProviderError: If the service cannot be read
        """
        try:
            service = self.client.get_service(name=name, namespace=namespace)
        except KubernetesNotFoundError as e:
            raise ResourceNotFoundError(str(e)) from e
        except Exception as e:
            raise KubernetesProviderError(f"Failed to get service {name}: {e}") from e

        kind = ExposureKind.from_service_type(service.spec.type if service.spec else None)

        ingress = []
        if service.status and service.status.load_balancer:
            ingress = service.status.load_balancer.ingress or []

        if not ingress:
            return ServiceEndpointInfo(kind=kind)

        return ServiceEndpointInfo(
            kind=kind,
            hostname=ingress[0].hostname or None,
            ip=ingress[0].ip or None,
        )


def _to_workload(pod: V1Pod, namespace: str) -> WorkloadReference:
    return WorkloadReference(
        name=pod.metadata.name,
        namespace=pod.metadata.namespace or namespace,
        creation_time=pod.metadata.creation_timestamp,
        terminating=pod.metadata.deletion_timestamp is not None,
    )
