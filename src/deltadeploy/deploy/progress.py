"""Progress accounting for deployment sessions.

Progress bands:
    0-8     listing and diffing
    8-98    draining the operation stacks, linear in completed operations
    98-100  publishing the new snapshot

Reported values never decrease.
"""

from __future__ import annotations

import logging

from deltadeploy.core.types import TransportCapabilities
from deltadeploy.deploy.types import DeployProgress, ProgressCallback, ScheduledOperations

logger = logging.getLogger(__name__)

LISTING_DONE = 8
DRAIN_BAND = 90
PUBLISHING = 98
FINISHED = 100


def count_operations(
    operations: ScheduledOperations,
    capabilities: TransportCapabilities,
) -> int:
    """Count the operations a session will report progress for.

    Directory items only count when the transport really creates and removes
    directories. The final snapshot publication always counts as one.
    """
    pending = operations.removals + operations.uploads
    if not capabilities.creates_directories:
        pending = [entry for entry in pending if not entry.is_directory]
    return len(pending) + 1


class ProgressTracker:
    """Maps completed operations onto the 0-100 progress scale."""

    def __init__(self, callback: ProgressCallback | None = None) -> None:
        self._callback = callback
        self._last = 0
        self.total = 1
        self.completed = 0

    @property
    def progress(self) -> int:
        """Get the last reported progress value."""
        return self._last

    def listing_done(self, total: int) -> None:
        """Mark the end of listing and diffing.

        Args:
            total: Operation count, including the final publication.
        """
        self.total = max(total, 1)
        self.completed = 0
        self._emit(LISTING_DONE, None)

    def operation_done(self) -> None:
        """Record one drained operation."""
        self.completed += 1
        value = LISTING_DONE + DRAIN_BAND * self.completed // self.total
        self._emit(min(value, PUBLISHING), (self.completed, self.total))

    def publishing(self) -> None:
        """Mark both stacks as drained."""
        self._emit(PUBLISHING, (self.completed, self.total))

    def finished(self) -> None:
        """Mark the new snapshot as published."""
        self.completed = self.total
        self._emit(FINISHED, (self.completed, self.total))

    def _emit(self, value: int, operations: tuple[int, int] | None) -> None:
        value = max(value, self._last)
        self._last = value
        logger.debug("Progress %d%% (%s)", value, operations)
        if self._callback is not None:
            self._callback(DeployProgress(progress=value, operations=operations))
