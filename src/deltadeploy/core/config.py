"""Site configuration for deltadeploy.

A site is described by a JSON file naming the local build output, the
directory holding the cached snapshot files, and the deployment target.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from deltadeploy.core.types import DeployProtocol, TransportCapabilities, capabilities_for

DEFAULT_MANIFEST_NAME = "files.deploy.json"
REMOTE_INVENTORY_NAME = "files-remote.json"
REVISION_FILE_NAME = "sync-revision.json"


class ConfigError(Exception):
    """Raised when a site configuration cannot be loaded or is invalid."""


@dataclass
class DeploymentConfig:
    """Deployment target of a site.

    Attributes:
        protocol: Transport protocol selected for the site.
        path: Remote base path all remote paths are joined under.
        options: Transport-specific settings (bucket, target_dir, ...).
    """

    protocol: DeployProtocol
    path: str = ""
    options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Normalize protocol and remote path."""
        if not isinstance(self.protocol, DeployProtocol):
            try:
                self.protocol = DeployProtocol(self.protocol)
            except ValueError as e:
                raise ConfigError(f"Unknown deployment protocol: {self.protocol}") from e
        self.path = (self.path or "").replace("\\", "/").rstrip("/")

    @property
    def capabilities(self) -> TransportCapabilities:
        """Capability profile of the configured protocol."""
        return capabilities_for(self.protocol)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DeploymentConfig:
        """Create a DeploymentConfig from its JSON block."""
        if "protocol" not in data:
            raise ConfigError("Deployment configuration requires a 'protocol'")
        options = data.get("options") or {}
        if not isinstance(options, dict):
            raise ConfigError("Deployment 'options' must be an object")
        return cls(
            protocol=data["protocol"],
            path=data.get("path") or "",
            options=dict(options),
        )


@dataclass
class SiteConfig:
    """Everything a deployment session needs to know about a site.

    Attributes:
        name: Site name, used in log messages and as the session target key.
        input_dir: Local build output to deploy.
        config_dir: Directory holding the cached remote inventory and revision.
        log_dir: Directory receiving the operation audit logs.
        deployment: Deployment target.
        manifest_name: File name of the inventory, locally and remotely.
    """

    name: str
    input_dir: Path
    config_dir: Path
    deployment: DeploymentConfig
    log_dir: Path | None = None
    manifest_name: str = DEFAULT_MANIFEST_NAME

    def __post_init__(self) -> None:
        """Normalize paths."""
        self.input_dir = Path(self.input_dir)
        self.config_dir = Path(self.config_dir)
        self.log_dir = Path(self.log_dir) if self.log_dir is not None else self.config_dir

    @property
    def target_key(self) -> str:
        """Identify the deployment target for the single-writer check."""
        options = self.deployment.options
        where = options.get("bucket") or options.get("target_dir") or options.get("host") or ""
        return f"{self.deployment.protocol.value}:{where}:{self.deployment.path}"


def load_site_config(path: Path | str) -> SiteConfig:
    """Load a site configuration file.

    Relative directories are resolved against the directory containing the
    configuration file.

    Args:
        path: Path to the JSON configuration file.

    Returns:
        The parsed SiteConfig.

    Raises:
        ConfigError: If the file is missing, malformed or incomplete.
    """
    config_path = Path(path).expanduser()
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {config_path}") from e
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read configuration {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration must be a JSON object: {config_path}")
    if not isinstance(data.get("deployment"), dict):
        raise ConfigError("Configuration requires a 'deployment' block")

    base_dir = config_path.resolve().parent

    def resolve(value: str | None, default: str) -> Path:
        candidate = Path(value or default).expanduser()
        return candidate if candidate.is_absolute() else base_dir / candidate

    config_dir = resolve(data.get("config_dir"), ".deploy")
    log_dir = resolve(data["log_dir"], "") if data.get("log_dir") else config_dir

    return SiteConfig(
        name=str(data.get("name") or base_dir.name),
        input_dir=resolve(data.get("input_dir"), "output"),
        config_dir=config_dir,
        log_dir=log_dir,
        deployment=DeploymentConfig.from_dict(data["deployment"]),
        manifest_name=data.get("manifest_name") or DEFAULT_MANIFEST_NAME,
    )
