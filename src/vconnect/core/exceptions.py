"""Custom exceptions for vconnect."""


class VConnectError(Exception):
    """Base exception for all vconnect errors."""


class ConfigurationError(VConnectError):
    """Configuration-related errors."""


class KubernetesError(VConnectError):
    """Kubernetes operation failed."""


class CredentialDocumentError(VConnectError):
    """Kube config document could not be parsed or has an unexpected shape."""


class StageTimeoutError(VConnectError):
    """A polling stage did not succeed before its deadline.

    Attributes:
        stage: Name of the stage that timed out
        timeout: Deadline in seconds
        last_error: Last underlying error observed while polling (if any)
    """

    def __init__(self, stage: str, timeout: float, last_error: BaseException | None = None):
        """Initialize stage timeout error.

        Args:
            stage: Name of the stage that timed out
            timeout: Deadline in seconds
            last_error: Last underlying error observed while polling
        """
        message = f"{stage}: timed out after {timeout:g}s"
        if last_error is not None:
            message = f"{message}: {last_error}"
        super().__init__(message)
        self.stage = stage
        self.timeout = timeout
        self.last_error = last_error


class OperationCancelledError(VConnectError):
    """Operation was cancelled while waiting."""

    def __init__(self, stage: str):
        super().__init__(f"{stage}: cancelled")
        self.stage = stage


class TunnelError(VConnectError):
    """Port forwarding could not be established."""


class BindError(TunnelError):
    """Local listening endpoint could not be opened."""
