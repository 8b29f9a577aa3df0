"""Exceptions for interface implementations."""


class InterfaceError(Exception):
    """Base exception for all interface-related errors."""


class KubernetesProviderError(InterfaceError):
    """Exception for Kubernetes provider operations."""


class ResourceNotFoundError(KubernetesProviderError):
    """Requested Kubernetes resource does not exist."""


class TunnelTransportError(InterfaceError):
    """Exception for tunnel transport operations (forwarding session ended with an error)."""
