"""Tunnel transport interface: byte-stream forwarding from a local listener to a workload port."""

import socket
import threading
from abc import ABC, abstractmethod

from vconnect.interfaces.kubernetes_provider import WorkloadReference


class ForwardingSession(ABC):
    """One established forwarding session.

    A session serves connections accepted on a listener it does not own.
    """

    @abstractmethod
    def serve(self, listener: socket.socket, cancel_event: threading.Event) -> None:
        """Forward connections accepted on listener until the session ends.

        Returns when the session ends cleanly or cancel_event is set.

        Raises:
            TunnelTransportError: If the session ends with a transport error
        """

    @abstractmethod
    def close(self) -> None:
        """Release everything held by the session except the listener."""


class TunnelTransport(ABC):
    """Opens forwarding sessions to a workload port."""

    @abstractmethod
    def connect(self, workload: WorkloadReference, remote_port: int) -> ForwardingSession:
        """Establish a forwarding session to remote_port of workload.

        Raises:
            TunnelTransportError: If the session cannot be established
        """
