"""Shared types for deltadeploy.

This module defines the inventory record types and the per-protocol
capability table used by the engine and the transports.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class EntryKind(str, Enum):
    """Kind of an inventory entry."""

    FILE = "file"
    DIRECTORY = "directory"


@dataclass(frozen=True)
class Entry:
    """One file or directory record of an inventory.

    Attributes:
        path: Forward-slash path relative to the inventory root.
        kind: File or directory.
        fingerprint: Hex MD5 digest for files, None for directories.
    """

    path: str
    kind: EntryKind
    fingerprint: str | None = None

    def __post_init__(self) -> None:
        """Enforce the fingerprint invariant."""
        if self.kind == EntryKind.DIRECTORY and self.fingerprint is not None:
            raise ValueError(f"Directory entry cannot carry a fingerprint: {self.path}")
        if self.kind == EntryKind.FILE and not self.fingerprint:
            raise ValueError(f"File entry requires a fingerprint: {self.path}")

    @property
    def is_directory(self) -> bool:
        """Check if this entry is a directory."""
        return self.kind == EntryKind.DIRECTORY

    def reduced(self) -> OperationEntry:
        """Drop the fingerprint, which is not needed past the diff."""
        return OperationEntry(self.path, self.kind)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the on-disk inventory record."""
        return {
            "path": self.path,
            "type": self.kind.value,
            "md5": self.fingerprint if self.fingerprint is not None else False,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Entry:
        """Create an Entry from an on-disk inventory record.

        Paths written by older deployments may start with a slash; it is
        stripped so they join with freshly built inventories.
        """
        kind = EntryKind(data["type"])
        md5 = data.get("md5")
        fingerprint = md5 if isinstance(md5, str) and md5 else None
        return cls(
            path=normalize_path(str(data["path"])),
            kind=kind,
            fingerprint=None if kind == EntryKind.DIRECTORY else fingerprint,
        )


@dataclass(frozen=True)
class OperationEntry:
    """An entry reduced to ``{path, kind}`` once diffed."""

    path: str
    kind: EntryKind

    @property
    def is_directory(self) -> bool:
        """Check if this entry is a directory."""
        return self.kind == EntryKind.DIRECTORY

    def to_dict(self) -> dict[str, str]:
        """Convert to the audit log record."""
        return {"path": self.path, "type": self.kind.value}


def normalize_path(path: str) -> str:
    """Normalize a relative path to forward slashes without leading markers."""
    path = path.replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    if len(path) > 1 and path[1] == ":" and path[0].isalpha():
        path = path[2:]
    return path.strip("/")


class DeployProtocol(str, Enum):
    """Deployment protocols a site can be configured with."""

    FTP = "ftp"
    FTP_TLS = "ftp+tls"
    SFTP = "sftp"
    SFTP_KEY = "sftp+key"
    S3 = "s3"
    GIT = "git"
    GITHUB_PAGES = "github-pages"
    GITLAB_PAGES = "gitlab-pages"
    NETLIFY = "netlify"
    GOOGLE_CLOUD = "google-cloud"
    MANUAL = "manual"


@dataclass(frozen=True)
class TransportCapabilities:
    """What a protocol can represent on the remote side.

    Attributes:
        tracks_directories: Directory entries appear in inventories and diffs.
        creates_directories: Directory operations are real transport calls
            and count towards progress.
        root_special_files: Root-level ``.htaccess`` / ``_redirects`` can be
            deployed.
        delegates_sync: The transport drains the operation stacks itself.
    """

    tracks_directories: bool = True
    creates_directories: bool = True
    root_special_files: bool = True
    delegates_sync: bool = False


_FILESYSTEM = TransportCapabilities()
_STATIC_HOST = TransportCapabilities(root_special_files=False)

CAPABILITIES: dict[DeployProtocol, TransportCapabilities] = {
    DeployProtocol.FTP: _FILESYSTEM,
    DeployProtocol.FTP_TLS: _FILESYSTEM,
    DeployProtocol.SFTP: _FILESYSTEM,
    DeployProtocol.SFTP_KEY: _FILESYSTEM,
    DeployProtocol.GIT: _FILESYSTEM,
    DeployProtocol.MANUAL: _FILESYSTEM,
    DeployProtocol.GITHUB_PAGES: _STATIC_HOST,
    DeployProtocol.NETLIFY: _STATIC_HOST,
    DeployProtocol.S3: TransportCapabilities(
        creates_directories=False,
        root_special_files=False,
        delegates_sync=True,
    ),
    DeployProtocol.GOOGLE_CLOUD: TransportCapabilities(
        tracks_directories=False,
        creates_directories=False,
        root_special_files=False,
    ),
    DeployProtocol.GITLAB_PAGES: TransportCapabilities(
        tracks_directories=False,
        creates_directories=False,
        delegates_sync=True,
    ),
}


def capabilities_for(protocol: DeployProtocol) -> TransportCapabilities:
    """Get the capability profile of a protocol."""
    return CAPABILITIES[protocol]
