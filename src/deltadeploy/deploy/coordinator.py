"""Session coordinator for deployments.

This module provides:
- DeployCoordinator: Runs one deployment session end to end

A session goes through these phases:
1. Connect the transport selected by the site configuration
2. Build the local inventory and save it as the working inventory
3. Fetch the remote manifest and resolve whether the cache can be trusted
4. Diff, schedule and drain the operations through the transfer pump
5. Publish the new snapshot

Only one session may run per deployment target at a time.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from deltadeploy.deploy.diff import DiffEngine
from deltadeploy.deploy.inventory import InventoryBuilder
from deltadeploy.deploy.progress import ProgressTracker, count_operations
from deltadeploy.deploy.pump import TransferPump
from deltadeploy.deploy.scheduler import OperationScheduler
from deltadeploy.deploy.snapshot import SnapshotResolver, SnapshotStore
from deltadeploy.deploy.types import (
    DeployResult,
    PumpState,
    Session,
    SessionInProgressError,
    TransportError,
)

if TYPE_CHECKING:
    from deltadeploy.core.config import SiteConfig
    from deltadeploy.deploy.types import ProgressCallback
    from deltadeploy.transports.base import Transport

logger = logging.getLogger(__name__)

# Deployment targets with a session in flight
_active_targets: set[str] = set()
_active_lock = threading.Lock()


class DeployCoordinator:
    """Owns one site's deployment sessions.

    Usage:
        coordinator = DeployCoordinator(load_site_config("site.json"))
        result = coordinator.run()

        # From another thread, stops between two operations
        coordinator.cancel()
    """

    def __init__(
        self,
        config: SiteConfig,
        progress_callback: ProgressCallback | None = None,
        transport: Transport | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            config: Site to deploy.
            progress_callback: Receives DeployProgress messages.
            transport: Transport to use instead of the configured one.
        """
        self._config = config
        self._progress_callback = progress_callback
        self._transport = transport
        self._cancel_event = threading.Event()
        self._pump: TransferPump | None = None

    @property
    def state(self) -> PumpState:
        """Get the state of the current (or last) session's pump."""
        if self._pump is None:
            return PumpState.IDLE
        return self._pump.state

    def cancel(self) -> None:
        """Request cancellation; honored between two operations.

        A request made before run() cancels that next session before its
        first operation. The request is cleared once a session ends.
        """
        logger.info("Cancellation requested for %s", self._config.name)
        self._cancel_event.set()

    def run(self, dry_run: bool = False) -> DeployResult:
        """Run a deployment session.

        Args:
            dry_run: Stop after scheduling. The audit logs are written but
                the remote side is left untouched.

        Returns:
            DeployResult describing the session.

        Raises:
            SessionInProgressError: If the target already has a session running.
            InventoryError: If the local tree cannot be read.
            TransportError: On connection or transfer failure.
            DeployCancelledError: If cancel() was called before or during the
                session.
        """
        key = self._config.target_key
        with _active_lock:
            if key in _active_targets:
                raise SessionInProgressError(f"A deployment to {key} is already running")
            _active_targets.add(key)

        try:
            return self._run_session(dry_run)
        finally:
            self._cancel_event.clear()
            with _active_lock:
                _active_targets.discard(key)

    def plan(self) -> DeployResult:
        """Compute the scheduled operations without deploying."""
        return self.run(dry_run=True)

    def _run_session(self, dry_run: bool) -> DeployResult:
        from deltadeploy.transports.factory import create_transport

        config = self._config
        deployment = config.deployment
        transport = self._transport or create_transport(deployment)
        store = SnapshotStore(config.input_dir, config.config_dir, config.manifest_name)
        tracker = ProgressTracker(self._progress_callback)

        logger.info(
            "Deploying %s from %s to %s%s",
            config.name,
            config.input_dir,
            transport.location,
            " (dry run)" if dry_run else "",
        )
        try:
            self._check_protocol(transport)

            # The local tree must be readable before the target is touched
            builder = InventoryBuilder(deployment.protocol, exclude={config.manifest_name})
            local = builder.build(config.input_dir)
            store.save_working_inventory(local)

            transport.init_connection()
            session = Session(
                input_dir=config.input_dir,
                output_dir=deployment.path,
                transport=transport,
            )

            manifest_path = session.remote_path(config.manifest_name)
            usable = SnapshotResolver(store).resolve(self._fetch_manifest(transport, manifest_path))
            remote = store.read_remote_inventory() if usable else []
            diff = DiffEngine(deployment.capabilities).compute(local, remote, usable)

            session.operations = OperationScheduler(config.input_dir, config.log_dir).schedule(
                diff
            )
            session.operation_count = count_operations(
                session.operations, deployment.capabilities
            )
            tracker.listing_done(session.operation_count)

            if dry_run:
                return DeployResult(
                    revision=session.revision,
                    state=PumpState.IDLE,
                    removed=[entry.path for entry in session.operations.removal_order()],
                    uploaded=[entry.path for entry in session.operations.upload_order()],
                    operation_count=session.operation_count,
                    dry_run=True,
                )

            self._pump = TransferPump(
                session,
                store,
                tracker,
                config.manifest_name,
                cancel_event=self._cancel_event,
            )
            state = self._pump.run()
            return DeployResult(
                revision=session.revision,
                state=state,
                removed=list(session.removed),
                uploaded=list(session.uploaded),
                operation_count=session.operation_count,
            )
        finally:
            transport.close()

    @staticmethod
    def _fetch_manifest(transport: Transport, remote_path: str) -> bytes | None:
        try:
            return transport.fetch_remote_manifest(remote_path)
        except TransportError as e:
            logger.warning("Cannot fetch remote manifest %s: %s", remote_path, e)
            return None

    def _check_protocol(self, transport: Transport) -> None:
        """Reject a transport whose capabilities differ from the configured ones."""
        expected = self._config.deployment.protocol
        if transport.protocol != expected:
            raise TransportError(
                f"{transport.location} implements {transport.protocol.value}, "
                f"site is configured for {expected.value}",
                operation="init_connection",
            )
