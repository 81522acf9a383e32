"""Tests for the snapshot store and resolver."""

from __future__ import annotations

import hashlib
import json
from pathlib import Path

import pytest

from deltadeploy.core.types import Entry, EntryKind
from deltadeploy.deploy.snapshot import SnapshotResolver, SnapshotStore

INVENTORY = [
    {"path": "css", "type": "directory", "md5": False},
    {"path": "css/site.css", "type": "file", "md5": "h1"},
]


@pytest.fixture
def store(tmp_path: Path) -> SnapshotStore:
    """Create a store over a temporary site."""
    (tmp_path / "output").mkdir()
    return SnapshotStore(tmp_path / "output", tmp_path / ".deploy", "files.deploy.json")


@pytest.fixture
def resolver(store: SnapshotStore) -> SnapshotResolver:
    """Create a resolver over the store."""
    return SnapshotResolver(store)


def descriptor(revision: str) -> bytes:
    return json.dumps({"revision": revision}).encode()


class TestSnapshotStore:
    """Tests for SnapshotStore class."""

    def test_paths(self, store: SnapshotStore, tmp_path: Path) -> None:
        """Should place the files where the session expects them."""
        assert store.working_inventory_path == tmp_path / "output" / "files.deploy.json"
        assert store.remote_inventory_path == tmp_path / ".deploy" / "files-remote.json"
        assert store.revision_path == tmp_path / ".deploy" / "sync-revision.json"

    def test_no_cache(self, store: SnapshotStore) -> None:
        """A fresh site has no revision and an empty remote inventory."""
        assert store.read_cached_revision() is None
        assert store.read_remote_inventory() == []
        assert store.remote_inventory_checksum() is None

    def test_malformed_remote_inventory_is_empty(self, store: SnapshotStore) -> None:
        """A corrupt cache is treated as empty."""
        store.write_remote_inventory(b"{corrupt")
        assert store.read_remote_inventory() == []

    def test_malformed_revision_ignored(self, store: SnapshotStore) -> None:
        """A revision file without revision is ignored."""
        store.revision_path.parent.mkdir(parents=True)
        store.revision_path.write_text('{"other": 1}', encoding="utf-8")
        assert store.read_cached_revision() is None

    def test_promote(self, store: SnapshotStore) -> None:
        """Should move the inventory and stamp the revision everywhere."""
        entries = [Entry("css", EntryKind.DIRECTORY), Entry("css/site.css", EntryKind.FILE, "h1")]
        store.save_working_inventory(entries)

        store.promote("R1")

        assert store.read_remote_inventory() == entries
        assert json.loads(store.working_inventory_path.read_text(encoding="utf-8")) == {
            "revision": "R1"
        }
        assert store.read_cached_revision() == "R1"


class TestSnapshotResolver:
    """Tests for SnapshotResolver class."""

    def test_missing_manifest_not_trusted(self, resolver: SnapshotResolver) -> None:
        """No manifest means no trust."""
        assert resolver.resolve(None) is False

    def test_matching_cached_revision(
        self, resolver: SnapshotResolver, store: SnapshotStore
    ) -> None:
        """A published revision matching the cache is trusted."""
        store.save_working_inventory([Entry("a.txt", EntryKind.FILE, "h1")])
        store.promote("R1")

        assert resolver.resolve(descriptor("R1")) is True

    def test_cached_revision_skips_rehash(
        self, resolver: SnapshotResolver, store: SnapshotStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """With a cached revision the remote inventory is never hashed."""
        store.save_working_inventory([Entry("a.txt", EntryKind.FILE, "h1")])
        store.promote("R1")

        def fail() -> str:
            raise AssertionError("remote inventory should not be hashed")

        monkeypatch.setattr(store, "remote_inventory_checksum", fail)
        assert resolver.resolve(descriptor("R1")) is True

    def test_different_revision(self, resolver: SnapshotResolver, store: SnapshotStore) -> None:
        """Someone else published since: not trusted."""
        store.save_working_inventory([])
        store.promote("R1")

        assert resolver.resolve(descriptor("R2")) is False

    def test_checksum_fallback(self, resolver: SnapshotResolver, store: SnapshotStore) -> None:
        """Without a cached revision, the inventory checksum is compared."""
        content = json.dumps(INVENTORY).encode()
        store.write_remote_inventory(content)

        assert resolver.resolve(descriptor(hashlib.md5(content).hexdigest())) is True
        assert resolver.resolve(descriptor("something-else")) is False

    def test_checksum_fallback_without_cache(self, resolver: SnapshotResolver) -> None:
        """No cache at all cannot match a revision."""
        assert resolver.resolve(descriptor("R1")) is False

    def test_legacy_inventory_adopted(
        self, resolver: SnapshotResolver, store: SnapshotStore
    ) -> None:
        """A raw inventory manifest becomes the cached remote inventory."""
        content = json.dumps(INVENTORY).encode()

        assert resolver.resolve(content) is True
        assert store.remote_inventory_path.read_bytes() == content
        assert [entry.path for entry in store.read_remote_inventory()] == ["css", "css/site.css"]

    @pytest.mark.parametrize(
        "content",
        [b"<html>404</html>", b"", b'{"revision": 42}', b'"text"', b'[{"path": 1}]'],
    )
    def test_malformed_manifest_not_trusted(
        self, resolver: SnapshotResolver, store: SnapshotStore, content: bytes
    ) -> None:
        """Anything unparseable degrades to not trusted."""
        assert resolver.resolve(content) is False
        assert not store.remote_inventory_path.exists()
