"""Kubernetes client for host cluster operations."""

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from kubernetes.client.models import V1Pod, V1Secret, V1Service
from kubernetes.stream import portforward, stream

from vconnect.core.exceptions import KubernetesError
from vconnect.utils.logging import get_logger

logger = get_logger(__name__)


class KubernetesNotFoundError(KubernetesError):
    """Kubernetes resource does not exist (HTTP 404)."""


class KubernetesClient:
    """Kubernetes client wrapper."""

    def __init__(self, kubeconfig_path: str | None = None, context: str | None = None):
        """Initialize Kubernetes client.

        Args:
            kubeconfig_path: Path to kubeconfig file (optional)
            context: Kubernetes context to use (optional)
        """
        self.kubeconfig_path = kubeconfig_path
        self.context = context
        self.in_cluster = False
        try:
            if kubeconfig_path:
                config.load_kube_config(config_file=kubeconfig_path, context=context)
            else:
                # Try to load from default location or in-cluster config
                try:
                    config.load_kube_config(context=context)
                except config.ConfigException:
                    config.load_incluster_config()
                    self.in_cluster = True

            self.core_v1 = client.CoreV1Api()

            logger.debug("k8s_client_initialized", context=context)

        except Exception as e:
            logger.error("k8s_client_initialization_failed", error=str(e))
            raise KubernetesError("Failed to initialize Kubernetes client") from e

    def current_namespace(self) -> str:
        """Namespace of the active kube context, "default" if none is set."""
        if self.in_cluster:
            return "default"
        try:
            contexts, active = config.list_kube_config_contexts(config_file=self.kubeconfig_path)
        except config.ConfigException as e:
            logger.debug("kube_context_namespace_unavailable", error=str(e))
            return "default"

        if self.context:
            active = next((c for c in contexts if c.get("name") == self.context), active)

        namespace = (active or {}).get("context", {}).get("namespace")
        return namespace or "default"

    def get_pods(self, namespace: str = "default", label_selector: str | None = None) -> list[V1Pod]:
        """Get pods in a namespace.

        Args:
            namespace: Namespace to query
            label_selector: Label selector (e.g., "app=vcluster,release=demo")

        Returns:
            List of V1Pod objects

        Raises:
            KubernetesError: If pods cannot be retrieved
        """
        try:
            logger.debug("getting_pods", namespace=namespace, selector=label_selector)

            response = self.core_v1.list_namespaced_pod(
                namespace=namespace, label_selector=label_selector
            )
            pods = response.items

            logger.debug("pods_retrieved", namespace=namespace, count=len(pods))
            return pods

        except ApiException as e:
            logger.error(
                "get_pods_failed",
                namespace=namespace,
                status=e.status,
                reason=e.reason,
            )
            raise KubernetesError(f"Failed to get pods in {namespace}: {e.reason}") from e

    def get_pod(self, name: str, namespace: str) -> V1Pod:
        """Get a pod.

        Raises:
            KubernetesNotFoundError: If the pod does not exist
            KubernetesError: If the pod cannot be retrieved
        """
        try:
            return self.core_v1.read_namespaced_pod(name=name, namespace=namespace)
        except ApiException as e:
            if e.status == 404:
                raise KubernetesNotFoundError(f"Pod {name} not found in {namespace}") from e

            logger.error("get_pod_failed", name=name, namespace=namespace, status=e.status)
            raise KubernetesError(f"Failed to get pod {name}: {e.reason}") from e

    def get_secret(self, name: str, namespace: str) -> V1Secret:
        """Get a secret.

        Args:
            name: Secret name
            namespace: Namespace

        Returns:
            V1Secret object

        Raises:
            KubernetesNotFoundError: If the secret does not exist
            KubernetesError: If the secret cannot be retrieved
        """
        try:
            logger.debug("getting_secret", name=name, namespace=namespace)
            return self.core_v1.read_namespaced_secret(name=name, namespace=namespace)

        except ApiException as e:
            if e.status == 404:
                logger.debug("secret_not_found", name=name, namespace=namespace)
                raise KubernetesNotFoundError(f"Secret {name} not found in {namespace}") from e

            logger.error(
                "get_secret_failed",
                name=name,
                namespace=namespace,
                status=e.status,
                reason=e.reason,
            )
            raise KubernetesError(f"Failed to get secret {name}: {e.reason}") from e

    def get_service(self, name: str, namespace: str) -> V1Service:
        """Get a service.

        Args:
            name: Service name
            namespace: Namespace

        Returns:
            V1Service object

        Raises:
            KubernetesNotFoundError: If the service does not exist
            KubernetesError: If the service cannot be retrieved
        """
        try:
            logger.debug("getting_service", name=name, namespace=namespace)
            return self.core_v1.read_namespaced_service(name=name, namespace=namespace)

        except ApiException as e:
            if e.status == 404:
                logger.debug("service_not_found", name=name, namespace=namespace)
                raise KubernetesNotFoundError(f"Service {name} not found in {namespace}") from e

            logger.error(
                "get_service_failed",
                name=name,
                namespace=namespace,
                status=e.status,
                reason=e.reason,
            )
            raise KubernetesError(f"Failed to get service {name}: {e.reason}") from e

    def exec_in_pod(
        self,
        namespace: str,
        pod_name: str,
        command: list[str],
        container: str | None = None,
    ) -> dict[str, str]:
        """Execute a command in a pod.

        Args:
            namespace: Namespace
            pod_name: Pod name
            command: Command to execute as a list (e.g., ["cat", "/root/.kube/config"])
            container: Container name (optional, uses first container if not specified)

        Returns:
            Dictionary with 'stdout', 'stderr' and 'returncode' keys

        Raises:
            KubernetesError: If execution fails
        """
        try:
            logger.debug(
                "exec_in_pod",
                namespace=namespace,
                pod_name=pod_name,
                command=command,
                container=container,
            )

            # Execute command using Kubernetes stream API
            resp = stream(
                self.core_v1.connect_get_namespaced_pod_exec,
                pod_name,
                namespace,
                command=command,
                container=container,
                stderr=True,
                stdin=False,
                stdout=True,
                tty=False,
                _preload_content=False,
            )

            # Read output
            stdout_lines = []
            stderr_lines = []

            while resp.is_open():
                resp.update(timeout=1)
                if resp.peek_stdout():
                    stdout_lines.append(resp.read_stdout())
                if resp.peek_stderr():
                    stderr_lines.append(resp.read_stderr())

            resp.close()

            stdout = "".join(stdout_lines)
            stderr = "".join(stderr_lines)

            logger.debug(
                "exec_in_pod_completed",
                namespace=namespace,
                pod_name=pod_name,
                stdout_len=len(stdout),
                stderr_len=len(stderr),
                returncode=resp.returncode,
            )

            return {"stdout": stdout, "stderr": stderr, "returncode": resp.returncode}

        except ApiException as e:
            logger.debug(
                "exec_in_pod_failed",
                namespace=namespace,
                pod_name=pod_name,
                status=e.status,
                reason=e.reason,
            )
            raise KubernetesError(f"Failed to exec in pod {pod_name}: {e.reason}") from e
        except Exception as e:
            logger.debug(
                "exec_in_pod_unexpected_error",
                namespace=namespace,
                pod_name=pod_name,
                error=str(e),
            )
            raise KubernetesError(f"Unexpected error executing in pod {pod_name}: {e}") from e

    def open_port_forward(self, pod_name: str, namespace: str, port: int):
        """Open a port forward to a pod port.

        Args:
            pod_name: Pod name
            namespace: Namespace
            port: Remote port on the pod

        Returns:
            kubernetes.stream.ws_client.PortForward; its socket(port) carries the traffic

        Raises:
            KubernetesError: If the port forward cannot be opened
        """
        try:
            logger.debug("opening_port_forward", pod_name=pod_name, namespace=namespace, port=port)
            return portforward(
                self.core_v1.connect_get_namespaced_pod_portforward,
                pod_name,
                namespace,
                ports=str(port),
            )
        except ApiException as e:
            raise KubernetesError(
                f"Failed to port forward to pod {pod_name}: {e.reason}"
            ) from e
        except Exception as e:
            raise KubernetesError(
                f"Unexpected error port forwarding to pod {pod_name}: {e}"
            ) from e
