"""Core module - Shared types and configuration."""

from deltadeploy.core.config import (
    DEFAULT_MANIFEST_NAME,
    REMOTE_INVENTORY_NAME,
    REVISION_FILE_NAME,
    ConfigError,
    DeploymentConfig,
    SiteConfig,
    load_site_config,
)
from deltadeploy.core.types import (
    CAPABILITIES,
    DeployProtocol,
    Entry,
    EntryKind,
    OperationEntry,
    TransportCapabilities,
    capabilities_for,
    normalize_path,
)

__all__ = [
    # Config
    "DEFAULT_MANIFEST_NAME",
    "REMOTE_INVENTORY_NAME",
    "REVISION_FILE_NAME",
    "ConfigError",
    "DeploymentConfig",
    "SiteConfig",
    "load_site_config",
    # Types
    "CAPABILITIES",
    "DeployProtocol",
    "Entry",
    "EntryKind",
    "OperationEntry",
    "TransportCapabilities",
    "capabilities_for",
    "normalize_path",
]
