"""Deploy module - Differential deployment engine.

This module provides the components of a deployment session:
- InventoryBuilder: Local tree inventory with content fingerprints
- SnapshotStore / SnapshotResolver: Cached remote snapshot and its trust verdict
- DiffEngine: Removal and upload sets
- OperationScheduler: Safe execution order as two LIFO stacks
- TransferPump: Sequential state machine draining the stacks
- DeployCoordinator: Session lifecycle
"""

from deltadeploy.deploy.coordinator import DeployCoordinator
from deltadeploy.deploy.diff import DiffEngine
from deltadeploy.deploy.inventory import (
    InventoryBuilder,
    dump_inventory,
    fingerprint_file,
    is_binary_file,
    load_inventory,
    parse_inventory,
)
from deltadeploy.deploy.progress import ProgressTracker, count_operations
from deltadeploy.deploy.pump import VALID_TRANSITIONS, TransferPump
from deltadeploy.deploy.scheduler import OperationScheduler
from deltadeploy.deploy.snapshot import SnapshotResolver, SnapshotStore
from deltadeploy.deploy.types import (
    ConnectionFailedError,
    DeployCancelledError,
    DeployError,
    DeployProgress,
    DeployResult,
    DiffResult,
    InvalidTransitionError,
    InventoryError,
    OperationCallback,
    ProgressCallback,
    PumpState,
    ScheduledOperations,
    Session,
    SessionInProgressError,
    SnapshotError,
    TransferError,
    TransportError,
)

__all__ = [
    # Coordinator
    "DeployCoordinator",
    # Components
    "DiffEngine",
    "InventoryBuilder",
    "OperationScheduler",
    "ProgressTracker",
    "SnapshotResolver",
    "SnapshotStore",
    "TransferPump",
    "VALID_TRANSITIONS",
    "count_operations",
    # Inventory helpers
    "dump_inventory",
    "fingerprint_file",
    "is_binary_file",
    "load_inventory",
    "parse_inventory",
    # Types
    "DeployProgress",
    "DeployResult",
    "DiffResult",
    "OperationCallback",
    "ProgressCallback",
    "PumpState",
    "ScheduledOperations",
    "Session",
    # Exceptions
    "ConnectionFailedError",
    "DeployCancelledError",
    "DeployError",
    "InvalidTransitionError",
    "InventoryError",
    "SessionInProgressError",
    "SnapshotError",
    "TransferError",
    "TransportError",
]
