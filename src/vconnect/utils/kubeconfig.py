"""Kubeconfig file management."""

import os
from pathlib import Path
from typing import Any

import yaml

from vconnect.core.exceptions import ConfigurationError
from vconnect.core.models import CredentialDocument
from vconnect.utils.logging import get_logger

logger = get_logger(__name__)


def default_kubeconfig_path() -> Path:
    """First entry of $KUBECONFIG, else ~/.kube/config."""
    env = os.environ.get("KUBECONFIG")
    if env:
        first = next((p for p in env.split(os.pathsep) if p), None)
        if first:
            return Path(first).expanduser()
    return Path("~/.kube/config").expanduser()


def write_kubeconfig(document: CredentialDocument, path: str | Path) -> Path:
    """Write a credential document as kube config YAML.

    Returns:
        Path written to
    """
    target = Path(path).expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(document.to_yaml())
    logger.debug("kubeconfig_written", path=str(target))
    return target


class KubeconfigManager:
    """Manages named clusters, users and contexts of a kubeconfig file."""

    def __init__(self, kubeconfig_path: str | Path | None = None):
        """Initialize kubeconfig manager.

        Args:
            kubeconfig_path: Path to kubeconfig file (default: $KUBECONFIG or ~/.kube/config)
        """
        self.kubeconfig_path = (
            Path(kubeconfig_path).expanduser() if kubeconfig_path else default_kubeconfig_path()
        )

        if not self.kubeconfig_path.exists() or self.kubeconfig_path.stat().st_size == 0:
            self._save(self._empty_config())

    @staticmethod
    def _empty_config() -> dict[str, Any]:
        return {
            "apiVersion": "v1",
            "kind": "Config",
            "clusters": [],
            "contexts": [],
            "users": [],
            "current-context": "",
            "preferences": {},
        }

    def _load(self) -> dict[str, Any]:
        try:
            with self.kubeconfig_path.open() as f:
                config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load kubeconfig {self.kubeconfig_path}: {e}") from e

        for section in ("clusters", "contexts", "users"):
            config[section] = config.get(section) or []
        return config

    def _save(self, config: dict[str, Any]) -> None:
        self.kubeconfig_path.parent.mkdir(parents=True, exist_ok=True)
        with self.kubeconfig_path.open("w") as f:
            yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False)

    @staticmethod
    def _upsert(entries: list[dict[str, Any]], name: str, key: str, value: dict[str, Any]) -> None:
        for entry in entries:
            if entry.get("name") == name:
                entry[key] = value
                return
        entries.append({"name": name, key: value})

    def add_cluster_context(
        self,
        context_name: str,
        cluster: dict[str, Any],
        user: dict[str, Any],
        set_current: bool = False,
    ) -> None:
        """Add or replace a cluster, user and context, all named context_name.

        Args:
            context_name: Name used for the cluster, user and context entries
            cluster: Cluster entry (server, certificate-authority-data, ...)
            user: User entry (client certificate/key, token, ...)
            set_current: Also make it the current context
        """
        config = self._load()

        self._upsert(config["clusters"], context_name, "cluster", cluster)
        self._upsert(config["users"], context_name, "user", user)
        self._upsert(
            config["contexts"],
            context_name,
            "context",
            {"cluster": context_name, "user": context_name},
        )
        if set_current:
            config["current-context"] = context_name

        self._save(config)
        logger.info("kubeconfig_context_added", context=context_name, path=str(self.kubeconfig_path))

    def add_document_context(
        self, context_name: str, document: CredentialDocument, set_current: bool = False
    ) -> None:
        """Merge the only cluster of a credential document and its user under context_name.

        Raises:
            ConfigurationError: If the document has not exactly one cluster
        """
        _, cluster = document.sole_cluster()
        user: dict[str, Any] = {}
        if document.users:
            # the user of the current context, else the last one
            current = document.contexts.get(document.current_context)
            if current and current.user in document.users:
                user = document.users[current.user]
            else:
                user = list(document.users.values())[-1]

        self.add_cluster_context(
            context_name,
            cluster=cluster.model_dump(by_alias=True, exclude_none=True),
            user=user,
            set_current=set_current,
        )
