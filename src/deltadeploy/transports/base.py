"""Transport abstraction for remote deployment targets.

A transport performs the actual remote operations of a session. Every call
blocks until the operation is finished and raises a TransportError subclass
on failure, so the pump never has more than one operation in flight.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

from deltadeploy.core.types import DeployProtocol, TransportCapabilities, capabilities_for

if TYPE_CHECKING:
    from deltadeploy.deploy.types import OperationCallback, Session


class Transport(ABC):
    """Abstract interface for a deployment target."""

    #: Protocol this backend implements
    protocol: DeployProtocol

    @property
    def capabilities(self) -> TransportCapabilities:
        """Capability profile of the transport's protocol."""
        return capabilities_for(self.protocol)

    @property
    @abstractmethod
    def location(self) -> str:
        """Return a human-readable description of the deployment target."""

    @abstractmethod
    def test_connection(self) -> None:
        """Check that the target is reachable and writable.

        Raises:
            ConnectionFailedError: If it is not.
        """

    @abstractmethod
    def init_connection(self) -> None:
        """Open the connection used by the session.

        Raises:
            ConnectionFailedError: If the target cannot be reached.
        """

    def close(self) -> None:
        """Release the connection. Safe to call more than once."""

    @abstractmethod
    def fetch_remote_manifest(self, remote_path: str) -> bytes | None:
        """Download the published manifest.

        Args:
            remote_path: Manifest path on the target.

        Returns:
            Raw manifest bytes, or None if there is no manifest.

        Raises:
            TransportError: If the manifest exists but cannot be read.
        """

    @abstractmethod
    def remove_file(self, remote_path: str) -> None:
        """Remove a file from the target."""

    @abstractmethod
    def remove_directory(self, remote_path: str) -> None:
        """Remove an empty directory from the target."""

    @abstractmethod
    def upload_file(self, local_path: Path, remote_path: str) -> None:
        """Upload a local file, replacing any existing one."""

    @abstractmethod
    def upload_directory(self, local_path: Path, remote_path: str) -> None:
        """Create a directory on the target."""

    def upload_new_file_list(self, local_path: Path, remote_path: str) -> None:
        """Publish the new manifest.

        Args:
            local_path: Local descriptor file to publish.
            remote_path: Manifest path on the target.
        """
        self.upload_file(local_path, remote_path)

    def start_sync(self, session: Session, on_operation_complete: OperationCallback) -> None:
        """Drain both operation stacks of ``session`` in one go.

        Only transports whose capabilities delegate the sync implement this.
        Removals must all complete before the first upload starts, and every
        completed entry is reported through ``on_operation_complete``.

        Raises:
            TransportError: On the first failing operation.
        """
        raise NotImplementedError(f"{type(self).__name__} does not delegate the sync")
