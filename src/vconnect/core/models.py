"""Core data models for vconnect."""

from enum import Enum
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from vconnect.core.exceptions import ConfigurationError, CredentialDocumentError


class ExposureKind(str, Enum):
    """How a service resource is reachable."""

    CLUSTER_LOCAL = "ClusterLocal"
    NODE_EXPOSED = "NodeExposed"
    LOAD_BALANCED = "LoadBalanced"

    @classmethod
    def from_service_type(cls, service_type: str | None) -> "ExposureKind":
        """Map a Kubernetes service type (spec.type) to an exposure kind."""
        if service_type == "LoadBalancer":
            return cls.LOAD_BALANCED
        if service_type == "NodePort":
            return cls.NODE_EXPOSED
        return cls.CLUSTER_LOCAL


class TunnelState(str, Enum):
    """Tunnel supervisor state."""

    IDLE = "idle"
    CONNECTING = "connecting"
    ACTIVE = "active"
    RESTARTING = "restarting"
    STOPPED = "stopped"


class ClusterEntry(BaseModel):
    """Cluster entry of a kube config."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    server: str
    certificate_authority_data: str | None = Field(
        default=None, alias="certificate-authority-data"
    )


class ContextEntry(BaseModel):
    """Context entry of a kube config, binding a cluster to a user."""

    model_config = ConfigDict(extra="allow")

    cluster: str
    user: str
    namespace: str | None = None


class CredentialDocument(BaseModel):
    """Administrative access credentials of a virtual cluster (a kube config).

    Named entries are kept as mappings keyed by name; the list-of-named-entries
    layout of the YAML file is only used when reading and writing.
    """

    clusters: dict[str, ClusterEntry] = Field(default_factory=dict)
    users: dict[str, dict[str, Any]] = Field(default_factory=dict)
    contexts: dict[str, ContextEntry] = Field(default_factory=dict)
    current_context: str = ""

    @classmethod
    def from_kubeconfig(cls, raw: bytes | str) -> "CredentialDocument":
        """Parse a kube config document.

        Args:
            raw: Kube config YAML (secret payload or command output)

        Returns:
            CredentialDocument instance

        Raises:
            CredentialDocumentError: If the content is not a valid kube config
        """
        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError as e:
                raise CredentialDocumentError("Kube config is not valid UTF-8") from e

        try:
            data = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise CredentialDocumentError(f"Failed to parse kube config: {e}") from e

        if not isinstance(data, dict):
            raise CredentialDocumentError("Failed to parse kube config: not a mapping")

        try:
            return cls(
                clusters=_named_entries(data, "clusters", "cluster"),
                users=_named_entries(data, "users", "user"),
                contexts=_named_entries(data, "contexts", "context"),
                current_context=data.get("current-context") or "",
            )
        except ValidationError as e:
            raise CredentialDocumentError(f"Invalid kube config: {e}") from e

    def sole_cluster(self) -> tuple[str, ClusterEntry]:
        """Return the only cluster entry.

        Raises:
            ConfigurationError: If the document does not have exactly one cluster
        """
        if len(self.clusters) != 1:
            raise ConfigurationError(
                f"Unexpected kube config: expected exactly one cluster, found {len(self.clusters)}"
            )
        return next(iter(self.clusters.items()))

    def to_kubeconfig(self) -> dict[str, Any]:
        """Convert to the kube config file layout."""
        return {
            "apiVersion": "v1",
            "kind": "Config",
            "clusters": [
                {"name": name, "cluster": entry.model_dump(by_alias=True, exclude_none=True)}
                for name, entry in self.clusters.items()
            ],
            "users": [{"name": name, "user": user} for name, user in self.users.items()],
            "contexts": [
                {"name": name, "context": entry.model_dump(exclude_none=True)}
                for name, entry in self.contexts.items()
            ],
            "current-context": self.current_context,
            "preferences": {},
        }

    def to_yaml(self) -> str:
        """Serialize to kube config YAML."""
        return yaml.safe_dump(self.to_kubeconfig(), default_flow_style=False, sort_keys=False)


def _named_entries(data: dict[str, Any], section: str, key: str) -> dict[str, Any]:
    entries = data.get(section) or []
    if not isinstance(entries, list):
        raise CredentialDocumentError(f"Invalid kube config: {section} must be a list")

    result: dict[str, Any] = {}
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get("name"):
            raise CredentialDocumentError(f"Invalid kube config: unnamed entry in {section}")
        result[entry["name"]] = entry.get(key) or {}
    return result
