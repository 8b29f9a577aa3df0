"""Tunnel transport over Kubernetes pod port forwarding."""

import select
import socket
import threading

from vconnect.clients.kubernetes_client import KubernetesClient
from vconnect.core.exceptions import KubernetesError
from vconnect.interfaces.exceptions import TunnelTransportError
from vconnect.interfaces.kubernetes_provider import WorkloadReference
from vconnect.interfaces.tunnel_transport import ForwardingSession, TunnelTransport
from vconnect.utils.logging import get_logger

logger = get_logger(__name__)

ACCEPT_TIMEOUT = 0.5
PUMP_POLL_INTERVAL = 0.5
BUFFER_SIZE = 64 * 1024


class PodPortForwardSession(ForwardingSession):
    """Forwards every accepted connection over its own pod port forward.

    The session ends as soon as a port forward cannot be opened or one of the
    forwarded connections reports an error from the remote side.
    """

    def __init__(self, client: KubernetesClient, workload: WorkloadReference, remote_port: int):
        self.client = client
        self.workload = workload
        self.remote_port = remote_port
        self._closed = threading.Event()
        self._lock = threading.Lock()
        self._connections: set[socket.socket] = set()
        self._failure: TunnelTransportError | None = None

    def serve(self, listener: socket.socket, cancel_event: threading.Event) -> None:
        listener.settimeout(ACCEPT_TIMEOUT)

        while not cancel_event.is_set():
            if self._failure is not None:
                raise self._failure

            try:
                conn, peer = listener.accept()
            except TimeoutError:
                continue
            except OSError as e:
                if cancel_event.is_set():
                    return
                raise TunnelTransportError(f"Failed to accept connection: {e}") from e

            conn.setblocking(True)
            logger.debug("connection_accepted", peer=str(peer), pod=self.workload.name)

            try:
                forward = self.client.open_port_forward(
                    pod_name=self.workload.name,
                    namespace=self.workload.namespace,
                    port=self.remote_port,
                )
            except KubernetesError as e:
                conn.close()
                raise TunnelTransportError(str(e)) from e

            with self._lock:
                self._connections.add(conn)
            threading.Thread(
                target=self._pump,
                args=(conn, forward),
                name=f"portforward-{self.workload.name}-{peer}",
                daemon=True,
            ).start()

    def close(self) -> None:
        """Close every forwarded connection.

        A restart after one failed port forward therefore also drops the healthy
        connections still in flight.
        """
        self._closed.set()
        with self._lock:
            connections = list(self._connections)
            self._connections.clear()
        for conn in connections:
            try:
                conn.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            conn.close()

    def _open_remote(self, forward) -> socket.socket:
        try:
            remote = forward.socket(self.remote_port)
            remote.setblocking(True)
        except Exception as e:
            raise TunnelTransportError(
                f"Failed to open port forward to {self.workload.name}:{self.remote_port}: {e}"
            ) from e
        return remote

    def _pump(self, conn: socket.socket, forward) -> None:
        remote = None
        failure = None

        try:
            remote = self._open_remote(forward)
            peers = {conn: remote, remote: conn}
            while not self._closed.is_set():
                readable, _, _ = select.select(list(peers), [], [], PUMP_POLL_INTERVAL)
                for sock in readable:
                    data = sock.recv(BUFFER_SIZE)
                    if not data:
                        return
                    peers[sock].sendall(data)
        except TunnelTransportError as e:
            failure = e
        except (OSError, ValueError) as e:
            # ValueError: select on a socket closed by close()
            if not self._closed.is_set():
                logger.debug("connection_forwarding_failed", error=str(e))
        finally:
            with self._lock:
                self._connections.discard(conn)
            conn.close()
            if remote is not None:
                remote.close()

            error = forward.error(self.remote_port)
            if error:
                failure = TunnelTransportError(
                    f"Port forward to {self.workload.name}:{self.remote_port} failed: {error}"
                )
            if failure is not None and not self._closed.is_set():
                logger.debug("port_forward_remote_error", pod=self.workload.name, error=str(failure))
                self._failure = failure


class KubernetesPortForwardTransport(TunnelTransport):
    """Opens forwarding sessions to pods of the host cluster."""

    def __init__(self, client: KubernetesClient):
        """Initialize transport.

        Args:
            client: Host cluster Kubernetes client
        """
        self.client = client

    def connect(self, workload: WorkloadReference, remote_port: int) -> ForwardingSession:
        """Check the pod can be forwarded to and return a session for it.

        Raises:
            TunnelTransportError: If the pod is missing, terminating or not running
        """
        try:
            pod = self.client.get_pod(name=workload.name, namespace=workload.namespace)
        except KubernetesError as e:
            raise TunnelTransportError(str(e)) from e

        if pod.metadata.deletion_timestamp is not None:
            raise TunnelTransportError(f"Pod {workload.name} is terminating")

        phase = pod.status.phase if pod.status else None
        if phase != "Running":
            raise TunnelTransportError(f"Pod {workload.name} is not running (phase: {phase})")

        return PodPortForwardSession(self.client, workload, remote_port)
