"""Shared types and dataclasses for deployment sessions.

This module provides:
- DeployError and subclasses: Exception hierarchy
- DiffResult: Removal and upload sets produced by the diff
- ScheduledOperations: The two LIFO work stacks
- PumpState: Transfer pump state machine states
- Session: Session-scoped mutable state
- DeployProgress, DeployResult: Progress messages and session outcome
- Type aliases for callbacks
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import IntEnum, auto
from pathlib import Path
from typing import TYPE_CHECKING

from deltadeploy.core.types import OperationEntry

if TYPE_CHECKING:
    from deltadeploy.transports.base import Transport


class DeployError(Exception):
    """Base exception for deployment errors."""


class InventoryError(DeployError):
    """The local tree could not be read."""

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        self.path = path
        super().__init__(message)


class SnapshotError(DeployError):
    """A snapshot document is malformed."""


class TransportError(DeployError):
    """A transport call failed.

    Attributes:
        operation: Name of the failing transport operation.
        path: Remote (or local) path the operation was working on.
    """

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        path: str | None = None,
    ) -> None:
        self.operation = operation
        self.path = path
        super().__init__(message)


class ConnectionFailedError(TransportError):
    """The transport could not connect to the target."""


class TransferError(TransportError):
    """A single remove/upload operation failed."""


class DeployCancelledError(DeployError):
    """The session was cancelled between two operations."""


class SessionInProgressError(DeployError):
    """Another session for the same target is still running."""


class InvalidTransitionError(DeployError):
    """Raised when attempting an invalid pump state transition."""


@dataclass
class DiffResult:
    """Operations needed to bring the remote in line with the local tree.

    Attributes:
        to_remove: Entries present remotely but absent locally.
        to_upload: Entries missing remotely or with a different fingerprint.
    """

    to_remove: list[OperationEntry] = field(default_factory=list)
    to_upload: list[OperationEntry] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """Check if there is nothing to do."""
        return not self.to_remove and not self.to_upload


@dataclass
class ScheduledOperations:
    """The two work stacks, consumed last-in-first-out.

    The last element of each list is the next operation to run.
    """

    removals: list[OperationEntry] = field(default_factory=list)
    uploads: list[OperationEntry] = field(default_factory=list)

    def removal_order(self) -> list[OperationEntry]:
        """Removals in execution (pop) order."""
        return list(reversed(self.removals))

    def upload_order(self) -> list[OperationEntry]:
        """Uploads in execution (pop) order."""
        return list(reversed(self.uploads))

    def __len__(self) -> int:
        """Get the number of pending operations."""
        return len(self.removals) + len(self.uploads)


class PumpState(IntEnum):
    """State of the transfer pump."""

    IDLE = auto()
    REMOVING = auto()
    UPLOADING = auto()
    FINALIZING = auto()
    DONE = auto()
    FAILED = auto()
    CANCELLED = auto()


@dataclass
class Session:
    """State scoped to one deployment run.

    Attributes:
        input_dir: Local tree being deployed.
        output_dir: Remote base path.
        transport: Transport selected at session start.
        operations: Pending work stacks.
        revision: Fresh revision token stamped on the published snapshot.
        operation_count: Total operations, including the final publish.
        completed: Operations finished so far.
        removed: Paths removed, in execution order.
        uploaded: Paths uploaded, in execution order.
    """

    input_dir: Path
    output_dir: str
    transport: Transport
    operations: ScheduledOperations = field(default_factory=ScheduledOperations)
    revision: str = field(default_factory=lambda: str(uuid.uuid4()))
    operation_count: int = 1
    completed: int = 0
    removed: list[str] = field(default_factory=list)
    uploaded: list[str] = field(default_factory=list)

    def remote_path(self, relative_path: str) -> str:
        """Join a relative path under the remote base path."""
        if not self.output_dir:
            return relative_path
        return f"{self.output_dir}/{relative_path}"

    def local_path(self, relative_path: str) -> Path:
        """Resolve a relative path inside the local tree."""
        return self.input_dir / relative_path


@dataclass(frozen=True)
class DeployProgress:
    """One progress message for the host.

    Attributes:
        progress: Overall progress, 0-100.
        operations: (completed, total) once draining started, else None.
    """

    progress: int
    operations: tuple[int, int] | None = None


@dataclass
class DeployResult:
    """Outcome of a deployment session."""

    revision: str
    state: PumpState
    removed: list[str]
    uploaded: list[str]
    operation_count: int
    dry_run: bool = False

    @property
    def changed(self) -> bool:
        """Check if the session touched the remote tree."""
        return bool(self.removed or self.uploaded)


# Type alias for the host progress sink
ProgressCallback = Callable[[DeployProgress], None]

# Type alias for per-operation completion reports from delegating transports
OperationCallback = Callable[[OperationEntry], None]
