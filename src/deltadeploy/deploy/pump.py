"""Transfer pump state machine.

States:
    IDLE -> REMOVING -> UPLOADING -> FINALIZING -> DONE
    any non-terminal state -> FAILED | CANCELLED (FINALIZING cannot be cancelled)

The generic pump issues exactly one transport call at a time. Transports
that delegate the sync drain both stacks themselves while the pump sits in
REMOVING, reporting each completed entry back through a callback.
"""

from __future__ import annotations

import logging
import threading

from deltadeploy.core.types import OperationEntry
from deltadeploy.deploy.progress import ProgressTracker
from deltadeploy.deploy.snapshot import SnapshotStore
from deltadeploy.deploy.types import (
    DeployCancelledError,
    InvalidTransitionError,
    PumpState,
    Session,
    TransportError,
)

logger = logging.getLogger(__name__)


# Valid state transitions
VALID_TRANSITIONS: dict[PumpState, set[PumpState]] = {
    PumpState.IDLE: {PumpState.REMOVING, PumpState.CANCELLED, PumpState.FAILED},
    PumpState.REMOVING: {PumpState.UPLOADING, PumpState.CANCELLED, PumpState.FAILED},
    PumpState.UPLOADING: {PumpState.FINALIZING, PumpState.CANCELLED, PumpState.FAILED},
    PumpState.FINALIZING: {PumpState.DONE, PumpState.FAILED},
    PumpState.DONE: set(),  # Terminal
    PumpState.FAILED: set(),  # Terminal
    PumpState.CANCELLED: set(),  # Terminal
}


class TransferPump:
    """Drains a session's operation stacks through its transport.

    Usage:
        pump = TransferPump(session, store, tracker, "files.deploy.json")
        pump.run()
    """

    def __init__(
        self,
        session: Session,
        store: SnapshotStore,
        tracker: ProgressTracker,
        manifest_name: str,
        cancel_event: threading.Event | None = None,
    ) -> None:
        """Initialize the pump.

        Args:
            session: Session whose stacks are drained.
            store: Snapshot files promoted on completion.
            tracker: Progress accounting.
            manifest_name: Remote file name of the published manifest.
            cancel_event: Checked between operations; set it to cancel.
        """
        self._session = session
        self._store = store
        self._tracker = tracker
        self._manifest_name = manifest_name
        self._cancel_event = cancel_event or threading.Event()
        self._capabilities = session.transport.capabilities
        self._state = PumpState.IDLE
        self._lock = threading.Lock()
        self._removal_paths: set[str] = set()

        self.failed_operation: OperationEntry | None = None

    @property
    def state(self) -> PumpState:
        """Get current pump state."""
        return self._state

    def transition_to(self, new_state: PumpState) -> None:
        """Transition to a new state with validation."""
        if new_state not in VALID_TRANSITIONS[self._state]:
            raise InvalidTransitionError(
                f"Cannot transition from {self._state.name} to {new_state.name}"
            )
        logger.debug("Pump %s -> %s", self._state.name, new_state.name)
        self._state = new_state

    def run(self) -> PumpState:
        """Drain both stacks and publish the new snapshot.

        Returns:
            PumpState.DONE.

        Raises:
            DeployCancelledError: If cancelled before the first operation or
                between two operations.
            TransportError: On the first failing transport call.
            OSError: If the snapshot files cannot be promoted.
        """
        try:
            self._check_cancelled()
            if self._capabilities.delegates_sync:
                self._run_delegated()
            else:
                while self.step():
                    pass
            self.transition_to(PumpState.FINALIZING)
            self._finalize()
            self.transition_to(PumpState.DONE)
        except DeployCancelledError:
            self.transition_to(PumpState.CANCELLED)
            logger.warning(
                "Deployment cancelled after %d of %d operations",
                self._session.completed,
                self._session.operation_count,
            )
            raise
        except Exception:
            self.transition_to(PumpState.FAILED)
            raise
        return self._state

    def step(self) -> bool:
        """Issue the next queued operation.

        Returns:
            False once both stacks are drained, True otherwise.
        """
        operations = self._session.operations
        if self._state == PumpState.IDLE:
            self.transition_to(PumpState.REMOVING)

        if self._state == PumpState.REMOVING:
            if operations.removals:
                self._check_cancelled()
                self._execute(operations.removals.pop(), removal=True)
                return True
            logger.info("Removals drained, uploading")
            self.transition_to(PumpState.UPLOADING)

        if self._state == PumpState.UPLOADING:
            if operations.uploads:
                self._check_cancelled()
                self._execute(operations.uploads.pop(), removal=False)
                return True
            return False

        raise InvalidTransitionError(f"Cannot step in state {self._state.name}")

    def _check_cancelled(self) -> None:
        if self._cancel_event.is_set():
            raise DeployCancelledError("Deployment cancelled")

    def _execute(self, entry: OperationEntry, removal: bool) -> None:
        session = self._session
        if entry.is_directory and not self._capabilities.creates_directories:
            logger.debug("Skipping directory %s, transport has no directories", entry.path)
            return

        remote_path = session.remote_path(entry.path)
        transport = session.transport
        try:
            if removal and entry.is_directory:
                transport.remove_directory(remote_path)
            elif removal:
                transport.remove_file(remote_path)
            elif entry.is_directory:
                transport.upload_directory(session.local_path(entry.path), remote_path)
            else:
                transport.upload_file(session.local_path(entry.path), remote_path)
        except TransportError:
            self.failed_operation = entry
            logger.error(
                "%s of %s failed", "Removal" if removal else "Upload", remote_path
            )
            raise

        self._record(entry, removal)

    def _record(self, entry: OperationEntry, removal: bool) -> None:
        session = self._session
        if removal:
            session.removed.append(entry.path)
            logger.debug("Removed %s", entry.path)
        else:
            session.uploaded.append(entry.path)
            logger.debug("Uploaded %s", entry.path)
        session.completed += 1
        self._tracker.operation_done()

    def _run_delegated(self) -> None:
        operations = self._session.operations
        self._removal_paths = {entry.path for entry in operations.removals}
        self.transition_to(PumpState.REMOVING)
        self._check_cancelled()

        logger.info("Delegating sync to %s", self._session.transport.location)
        self._session.transport.start_sync(self._session, self._on_operation_complete)

        operations.removals.clear()
        operations.uploads.clear()
        self.transition_to(PumpState.UPLOADING)

    def _on_operation_complete(self, entry: OperationEntry) -> None:
        """Record a completion reported by a delegating transport."""
        with self._lock:
            if entry.is_directory and not self._capabilities.creates_directories:
                return
            self._record(entry, removal=entry.path in self._removal_paths)
            self._check_cancelled()

    def _finalize(self) -> None:
        session = self._session
        self._tracker.publishing()
        self._store.promote(session.revision)
        session.transport.upload_new_file_list(
            self._store.working_inventory_path,
            session.remote_path(self._manifest_name),
        )
        session.completed = session.operation_count
        self._tracker.finished()
        logger.info(
            "Published revision %s (%d removed, %d uploaded)",
            session.revision,
            len(session.removed),
            len(session.uploaded),
        )
