"""Tests for progress accounting."""

from __future__ import annotations

import pytest

from deltadeploy.core.types import (
    DeployProtocol,
    EntryKind,
    OperationEntry,
    capabilities_for,
)
from deltadeploy.deploy.progress import ProgressTracker, count_operations
from deltadeploy.deploy.types import DeployProgress, ScheduledOperations

OPERATIONS = ScheduledOperations(
    removals=[OperationEntry("old", EntryKind.DIRECTORY), OperationEntry("old/a", EntryKind.FILE)],
    uploads=[OperationEntry("img", EntryKind.DIRECTORY), OperationEntry("img/b", EntryKind.FILE)],
)


class TestCountOperations:
    """Tests for count_operations()."""

    def test_counts_everything_plus_publish(self) -> None:
        """Directory-capable transports count every entry."""
        assert count_operations(OPERATIONS, capabilities_for(DeployProtocol.SFTP)) == 5

    def test_object_storage_counts_files_only(self) -> None:
        """Transports that never create directories only count files."""
        assert count_operations(OPERATIONS, capabilities_for(DeployProtocol.S3)) == 3

    def test_empty_session_counts_publish(self) -> None:
        """Publishing always counts as one operation."""
        caps = capabilities_for(DeployProtocol.SFTP)
        assert count_operations(ScheduledOperations(), caps) == 1


class TestProgressTracker:
    """Tests for ProgressTracker class."""

    @pytest.mark.parametrize("total", [1, 2, 3, 7, 50, 101, 1000])
    def test_bounds_and_monotonicity(self, total: int) -> None:
        """Draining stays within [8, 98]; 100 only after publishing."""
        messages: list[DeployProgress] = []
        tracker = ProgressTracker(messages.append)

        tracker.listing_done(total)
        for _ in range(total - 1):
            tracker.operation_done()
        draining = [message.progress for message in messages]
        tracker.publishing()
        tracker.finished()

        values = [message.progress for message in messages]
        assert values == sorted(values)
        assert all(8 <= value <= 98 for value in draining)
        assert values[-2] == 98
        assert values[-1] == 100
        assert 100 not in values[:-1]

    def test_listing_message_has_no_operations(self) -> None:
        """The listing milestone carries no operation counts."""
        messages: list[DeployProgress] = []
        ProgressTracker(messages.append).listing_done(4)
        assert messages == [DeployProgress(progress=8, operations=None)]

    def test_operation_counts_reported(self) -> None:
        """Each drained operation reports completed and total."""
        messages: list[DeployProgress] = []
        tracker = ProgressTracker(messages.append)
        tracker.listing_done(4)
        tracker.operation_done()
        tracker.operation_done()

        assert messages[-1] == DeployProgress(progress=53, operations=(2, 4))

    def test_without_callback(self) -> None:
        """Works without a progress sink."""
        tracker = ProgressTracker()
        tracker.listing_done(2)
        tracker.operation_done()
        assert tracker.progress == 53
