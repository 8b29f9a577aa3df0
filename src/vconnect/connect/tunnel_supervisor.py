"""Keep a local port forwarded to a virtual cluster pod.

The supervisor binds the local listener once and keeps it for its whole
lifetime. Every time the forwarding session ends, a new one is connected right
away (after restart_delay, 0 by default) on the same listener, until the
cancel event is set.
"""

import socket
import threading
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from vconnect.core.exceptions import BindError, TunnelError
from vconnect.core.models import TunnelState
from vconnect.interfaces.exceptions import TunnelTransportError
from vconnect.interfaces.kubernetes_provider import WorkloadReference
from vconnect.interfaces.tunnel_transport import TunnelTransport
from vconnect.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_ADDRESS = "localhost"


@dataclass
class TunnelSession:
    """Local endpoint and remote target of a tunnel."""

    local_address: str
    local_port: int
    remote_port: int
    target_workload: WorkloadReference
    state: TunnelState = TunnelState.IDLE


def bind_listener(address: str, port: int) -> socket.socket:
    """Open the local listening socket.

    Raises:
        BindError: If the address cannot be bound (e.g. port already in use)
    """
    try:
        return socket.create_server((address, port))
    except OSError as e:
        raise BindError(f"Failed to listen on {address}:{port}: {e}") from e


class TunnelSupervisor:
    """Runs and restarts port forwarding to a workload."""

    def __init__(
        self,
        transport: TunnelTransport,
        address: str | None = None,
        restart_delay: float = 0.0,
        log: structlog.BoundLogger | None = None,
        listener_factory: Callable[[str, int], socket.socket] = bind_listener,
        on_state_change: Callable[[TunnelState], None] | None = None,
    ):
        """Initialize tunnel supervisor.

        Args:
            transport: Transport opening forwarding sessions
            address: Local address to listen on (default "localhost")
            restart_delay: Seconds to wait before reconnecting a terminated session
            log: Logger for notices
            listener_factory: Binds the local listener; called exactly once per run
            on_state_change: Called with every new state
        """
        self.transport = transport
        self.address = address or DEFAULT_ADDRESS
        self.restart_delay = restart_delay
        self.log = log or logger
        self.listener_factory = listener_factory
        self.on_state_change = on_state_change
        self.session: TunnelSession | None = None

    @property
    def state(self) -> TunnelState:
        """Current state of the tunnel."""
        return self.session.state if self.session else TunnelState.IDLE

    def run(
        self,
        workload: WorkloadReference,
        local_port: int,
        remote_port: int,
        cancel_event: threading.Event,
    ) -> None:
        """Forward local_port to remote_port of workload until cancel_event is set.

        Raises:
            BindError: If the local port cannot be bound
            TunnelError: If the first forwarding session cannot be established
        """
        self.session = TunnelSession(
            local_address=self.address,
            local_port=local_port,
            remote_port=remote_port,
            target_workload=workload,
        )

        try:
            listener = self.listener_factory(self.address, local_port)
        except BindError:
            self._transition(TunnelState.STOPPED)
            raise

        activated = False
        try:
            while not cancel_event.is_set():
                self._transition(TunnelState.CONNECTING)
                try:
                    forwarding = self.transport.connect(workload, remote_port)
                except TunnelTransportError as e:
                    if not activated:
                        raise TunnelError(f"start port forwarding: {e}") from e
                    self.log.info("port_forwarding_restarting", error=str(e))
                    self._transition(TunnelState.RESTARTING)
                    if cancel_event.wait(self.restart_delay):
                        break
                    continue

                activated = True
                self._transition(TunnelState.ACTIVE)
                self.log.info(
                    "port_forwarding_started",
                    local=f"{self.address}:{local_port}",
                    remote_port=remote_port,
                    pod=workload.name,
                )

                try:
                    forwarding.serve(listener, cancel_event)
                except TunnelTransportError as e:
                    self.log.info("port_forwarding_restarting", error=str(e))
                else:
                    if not cancel_event.is_set():
                        self.log.info("port_forwarding_restarting", reason="session closed")
                finally:
                    forwarding.close()

                if cancel_event.is_set():
                    break
                self._transition(TunnelState.RESTARTING)
                if cancel_event.wait(self.restart_delay):
                    break
        finally:
            listener.close()
            self._transition(TunnelState.STOPPED)
            self.log.info("port_forwarding_stopped", local=f"{self.address}:{local_port}")

    def _transition(self, state: TunnelState) -> None:
        if self.session is None or self.session.state == state:
            return
        self.log.debug("tunnel_state_changed", previous=self.session.state.value, state=state.value)
        self.session.state = state
        if self.on_state_change:
            self.on_state_change(state)
