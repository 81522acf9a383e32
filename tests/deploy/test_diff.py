"""Tests for the diff engine."""

from __future__ import annotations

from deltadeploy.core.types import (
    DeployProtocol,
    Entry,
    EntryKind,
    OperationEntry,
    TransportCapabilities,
    capabilities_for,
)
from deltadeploy.deploy.diff import DiffEngine

FILE = EntryKind.FILE
DIR = EntryKind.DIRECTORY

LOCAL = [Entry("a.txt", FILE, "h1"), Entry("img", DIR)]
REMOTE = [Entry("a.txt", FILE, "h0"), Entry("old.txt", FILE, "h2")]


def engine(protocol: DeployProtocol = DeployProtocol.SFTP) -> DiffEngine:
    return DiffEngine(capabilities_for(protocol))


class TestDiffEngine:
    """Tests for DiffEngine class."""

    def test_removals_and_uploads(self) -> None:
        """Changed and new entries upload, vanished entries are removed."""
        result = engine().compute(LOCAL, REMOTE)

        assert result.to_remove == [OperationEntry("old.txt", FILE)]
        assert result.to_upload == [OperationEntry("a.txt", FILE), OperationEntry("img", DIR)]

    def test_directory_incapable_transport(self) -> None:
        """Directory entries are dropped for transports without directories."""
        result = DiffEngine(TransportCapabilities(tracks_directories=False)).compute(LOCAL, REMOTE)

        assert result.to_remove == [OperationEntry("old.txt", FILE)]
        assert result.to_upload == [OperationEntry("a.txt", FILE)]

    def test_remote_directory_removal_skipped_without_directories(self) -> None:
        """Stale remote directories are left to the transport's key semantics."""
        remote = [Entry("old", DIR), Entry("old/x.txt", FILE, "h")]
        result = engine(DeployProtocol.GOOGLE_CLOUD).compute([], remote)

        assert result.to_remove == [OperationEntry("old/x.txt", FILE)]

    def test_identical_inventories(self) -> None:
        """Nothing to do when both sides match."""
        result = engine().compute(LOCAL, LOCAL)
        assert result.is_empty

    def test_existing_directory_not_reuploaded(self) -> None:
        """Directories compare by presence only."""
        result = engine().compute([Entry("img", DIR)], [Entry("img", DIR)])
        assert result.to_upload == []

    def test_untrusted_remote_forces_full_upload(self) -> None:
        """An unusable remote snapshot is diffed as empty."""
        result = engine().compute(LOCAL, REMOTE, remote_usable=False)

        assert result.to_remove == []
        assert result.to_upload == [OperationEntry("a.txt", FILE), OperationEntry("img", DIR)]

    def test_rename_is_remove_plus_upload(self) -> None:
        """Renames are not detected."""
        result = engine().compute([Entry("new.txt", FILE, "h")], [Entry("old.txt", FILE, "h")])

        assert result.to_remove == [OperationEntry("old.txt", FILE)]
        assert result.to_upload == [OperationEntry("new.txt", FILE)]

    def test_kind_change_uploads(self) -> None:
        """A path that turned from file to directory is uploaded again."""
        result = engine().compute([Entry("docs", DIR)], [Entry("docs", FILE, "h")])
        assert result.to_upload == [OperationEntry("docs", DIR)]
