"""Configuration management for vconnect."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator

from vconnect.core.exceptions import ConfigurationError

DEFAULT_LOCAL_PORT = 8443
DEFAULT_ADDRESS = "localhost"
DEFAULT_KUBE_CONFIG = "./kubeconfig.yaml"


class StageTiming(BaseModel):
    """Polling interval and deadline of one setup stage (seconds)."""

    interval: float = Field(gt=0)
    timeout: float = Field(gt=0)


class TimeoutsConfig(BaseModel):
    """Per-stage polling configuration."""

    resolve: StageTiming = Field(default_factory=lambda: StageTiming(interval=1, timeout=10))
    fetch: StageTiming = Field(default_factory=lambda: StageTiming(interval=2, timeout=600))
    discover: StageTiming = Field(default_factory=lambda: StageTiming(interval=2, timeout=300))


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "console"
    output: str = "stderr"


class ConnectConfig(BaseModel):
    """Main connect configuration."""

    name: str | None = Field(None, description="Virtual cluster (instance) name")
    namespace: str | None = Field(None, description="Namespace of the virtual cluster")
    pod: str | None = Field(None, description="Pod to connect to, skips pod lookup")
    server: str | None = Field(None, description="Server to use, skips endpoint discovery")
    local_port: int = Field(DEFAULT_LOCAL_PORT, ge=1, le=65535)
    address: str = DEFAULT_ADDRESS
    kube_config: str = DEFAULT_KUBE_CONFIG
    update_current: bool = False
    print_config: bool = False
    context: str | None = Field(None, description="Host cluster kube context")
    restart_delay: float = Field(0.0, ge=0, description="Delay before restarting the tunnel")
    timeouts: TimeoutsConfig = Field(default_factory=TimeoutsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def _require_target(self) -> "ConnectConfig":
        if not self.name and not self.pod:
            raise ValueError("please specify either a pod or a name for the vcluster")
        return self

    @classmethod
    def from_file(cls, path: str | Path, **overrides: Any) -> "ConnectConfig":
        """Load configuration from YAML file.

        Args:
            path: Path to configuration file
            **overrides: Values taking precedence over the file (None values are ignored)

        Returns:
            ConnectConfig instance

        Raises:
            ConfigurationError: If file cannot be loaded or parsed
        """
        config_path = Path(path).expanduser()

        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with config_path.open() as f:
                data = yaml.safe_load(f) or {}
        except Exception as e:
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Invalid configuration: {config_path} is not a mapping")

        return cls.from_dict(data, **overrides)

    @classmethod
    def from_dict(cls, data: dict[str, Any], **overrides: Any) -> "ConnectConfig":
        """Build configuration from a dictionary plus overrides.

        Raises:
            ConfigurationError: If the resulting configuration is invalid
        """
        merged = {**data, **{k: v for k, v in overrides.items() if v is not None}}
        try:
            return cls(**merged)
        except Exception as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @property
    def context_name(self) -> str:
        """Kube context name used when merging into the current kube config."""
        return f"vcluster_{self.namespace}_{self.name or self.pod}"
