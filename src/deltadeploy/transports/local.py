"""Local directory transport.

Exports the site into a directory on the local filesystem. Used by the
``manual`` protocol and by tests.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from deltadeploy.core.types import DeployProtocol
from deltadeploy.deploy.types import ConnectionFailedError, TransferError, TransportError
from deltadeploy.transports.base import Transport

logger = logging.getLogger(__name__)


class LocalTransport(Transport):
    """Deploys into a local directory.

    Remote paths are relative to the target directory.
    """

    protocol = DeployProtocol.MANUAL

    def __init__(self, target_dir: Path | str) -> None:
        """Initialize the transport.

        Args:
            target_dir: Directory receiving the exported site.
        """
        self._root = Path(target_dir).expanduser().resolve()

    @property
    def location(self) -> str:
        """Return the target directory."""
        return f"Local directory: {self._root}"

    def _path(self, remote_path: str, operation: str) -> Path:
        """Resolve a remote path inside the target directory."""
        path = (self._root / remote_path.lstrip("/")).resolve()
        if path != self._root and self._root not in path.parents:
            raise TransferError(
                f"Path escapes target directory: {remote_path}",
                operation=operation,
                path=remote_path,
            )
        return path

    def test_connection(self) -> None:
        """Check that the target directory exists or can be created."""
        self._check_target("test_connection")

    def init_connection(self) -> None:
        """Check the target directory without creating it.

        The directory appears with the first upload, so dry runs and
        aborted sessions leave no trace.
        """
        self._check_target("init_connection")

    def _check_target(self, operation: str) -> None:
        existing = self._root
        while not existing.exists():
            existing = existing.parent
        if not existing.is_dir():
            raise ConnectionFailedError(
                f"Not a directory: {existing}", operation=operation
            )
        if not os.access(existing, os.W_OK):
            raise ConnectionFailedError(
                f"Directory is not writable: {existing}", operation=operation
            )

    def fetch_remote_manifest(self, remote_path: str) -> bytes | None:
        """Read the published manifest, if any."""
        path = self._path(remote_path, "fetch_remote_manifest")
        if not path.is_file():
            return None
        try:
            return path.read_bytes()
        except OSError as e:
            raise TransportError(
                f"Cannot read manifest {remote_path}: {e}",
                operation="fetch_remote_manifest",
                path=remote_path,
            ) from e

    def remove_file(self, remote_path: str) -> None:
        """Delete a file. A missing file is not an error."""
        path = self._path(remote_path, "remove_file")
        try:
            path.unlink()
        except FileNotFoundError:
            logger.debug("File already gone: %s", remote_path)
        except OSError as e:
            raise TransferError(
                f"Cannot remove {remote_path}: {e}", operation="remove_file", path=remote_path
            ) from e

    def remove_directory(self, remote_path: str) -> None:
        """Delete an empty directory. A missing directory is not an error."""
        path = self._path(remote_path, "remove_directory")
        try:
            path.rmdir()
        except FileNotFoundError:
            logger.debug("Directory already gone: %s", remote_path)
        except OSError as e:
            raise TransferError(
                f"Cannot remove directory {remote_path}: {e}",
                operation="remove_directory",
                path=remote_path,
            ) from e

    def upload_file(self, local_path: Path, remote_path: str) -> None:
        """Copy a file into the target directory."""
        path = self._path(remote_path, "upload_file")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(local_path, path)
        except OSError as e:
            raise TransferError(
                f"Cannot upload {local_path} to {remote_path}: {e}",
                operation="upload_file",
                path=remote_path,
            ) from e

    def upload_directory(self, local_path: Path, remote_path: str) -> None:
        """Create a directory in the target directory."""
        path = self._path(remote_path, "upload_directory")
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise TransferError(
                f"Cannot create directory {remote_path}: {e}",
                operation="upload_directory",
                path=remote_path,
            ) from e
