"""Remote snapshot cache and trust resolution.

This module provides:
- SnapshotStore: The on-disk snapshot files of a site
- SnapshotResolver: Decides whether the cached remote inventory can be trusted

Files handled by the store:
    <input_dir>/<manifest_name>      working inventory, then the published descriptor
    <config_dir>/files-remote.json   inventory of the last published state
    <config_dir>/sync-revision.json  descriptor of the last published state

Trust rules for a fetched remote manifest:
    | Fetched manifest      | Cached revision | Trusted when                          |
    |-----------------------|-----------------|---------------------------------------|
    | {"revision": R}       | present         | cached revision == R                  |
    | {"revision": R}       | absent          | md5(files-remote.json) == R           |
    | [ ...inventory... ]   | any             | always (stored as files-remote.json)  |
    | missing / malformed   | any             | never                                 |
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from pathlib import Path

from deltadeploy.core.config import REMOTE_INVENTORY_NAME, REVISION_FILE_NAME
from deltadeploy.core.types import Entry
from deltadeploy.deploy.inventory import dump_inventory, parse_inventory
from deltadeploy.deploy.types import SnapshotError

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Reads and writes the snapshot files of one site."""

    def __init__(self, input_dir: Path, config_dir: Path, manifest_name: str) -> None:
        """Initialize the store.

        Args:
            input_dir: Local tree being deployed.
            config_dir: Directory holding the cached snapshot files.
            manifest_name: File name of the working inventory.
        """
        self.working_inventory_path = Path(input_dir) / manifest_name
        self.remote_inventory_path = Path(config_dir) / REMOTE_INVENTORY_NAME
        self.revision_path = Path(config_dir) / REVISION_FILE_NAME

    def save_working_inventory(self, entries: list[Entry]) -> None:
        """Write the freshly built local inventory."""
        dump_inventory(entries, self.working_inventory_path)

    def read_cached_revision(self) -> str | None:
        """Get the revision token of the last published snapshot, if any."""
        if not self.revision_path.exists():
            return None
        try:
            data = json.loads(self.revision_path.read_bytes())
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable revision file %s: %s", self.revision_path, e)
            return None
        revision = data.get("revision") if isinstance(data, dict) else None
        if not isinstance(revision, str) or not revision:
            logger.warning("Revision file %s carries no revision", self.revision_path)
            return None
        return revision

    def read_remote_inventory(self) -> list[Entry]:
        """Get the cached remote inventory.

        A missing file is an empty inventory. A malformed one is logged and
        treated as empty, which forces a full upload.
        """
        if not self.remote_inventory_path.exists():
            return []
        try:
            return parse_inventory(self.remote_inventory_path.read_bytes())
        except (OSError, SnapshotError) as e:
            logger.warning(
                "Ignoring malformed remote inventory %s: %s", self.remote_inventory_path, e
            )
            return []

    def write_remote_inventory(self, content: bytes) -> None:
        """Replace the cached remote inventory with raw manifest bytes."""
        self.remote_inventory_path.parent.mkdir(parents=True, exist_ok=True)
        self.remote_inventory_path.write_bytes(content)

    def remote_inventory_checksum(self) -> str | None:
        """MD5 of the cached remote inventory file, or None if there is none."""
        if not self.remote_inventory_path.exists():
            return None
        return hashlib.md5(self.remote_inventory_path.read_bytes()).hexdigest()

    def promote(self, revision: str) -> None:
        """Make the working inventory the new published snapshot.

        The working inventory becomes the cached remote inventory, and a
        descriptor bearing ``revision`` replaces both the working inventory
        and the cached revision file.

        Raises:
            OSError: If any of the files cannot be written.
        """
        self.remote_inventory_path.parent.mkdir(parents=True, exist_ok=True)
        if self.working_inventory_path.exists():
            os.replace(self.working_inventory_path, self.remote_inventory_path)

        descriptor = json.dumps({"revision": revision}, indent=4, ensure_ascii=False)
        self.working_inventory_path.write_text(descriptor, encoding="utf-8")
        self.revision_path.parent.mkdir(parents=True, exist_ok=True)
        self.revision_path.write_text(descriptor, encoding="utf-8")
        logger.debug("Promoted working inventory under revision %s", revision)


class SnapshotResolver:
    """Decides whether the remote side still matches the cached inventory.

    Usage:
        resolver = SnapshotResolver(store)
        usable = resolver.resolve(transport.fetch_remote_manifest(path))
    """

    def __init__(self, store: SnapshotStore) -> None:
        self._store = store

    def resolve(self, content: bytes | None) -> bool:
        """Resolve the trust verdict for a fetched remote manifest.

        Never raises: any failure means the remote snapshot is not trusted.

        Args:
            content: Raw manifest bytes, or None if the fetch failed or the
                manifest does not exist.

        Returns:
            True if the cached remote inventory can be diffed against.
        """
        if content is None:
            logger.info("No remote manifest, remote snapshot not trusted")
            return False

        try:
            data = json.loads(content)
            if isinstance(data, list):
                return self._adopt_legacy_inventory(content)
            revision = data.get("revision") if isinstance(data, dict) else None
            if not isinstance(revision, str) or not revision:
                logger.warning("Remote manifest is neither a descriptor nor an inventory")
                return False
            return self._check_revision(revision)
        except (OSError, ValueError, SnapshotError) as e:
            logger.warning("Cannot resolve remote snapshot, forcing full upload: %s", e)
            return False

    def _check_revision(self, revision: str) -> bool:
        cached = self._store.read_cached_revision()
        if cached is not None:
            trusted = cached == revision
            logger.info(
                "Remote revision %s %s cached revision",
                revision,
                "matches" if trusted else "differs from",
            )
            return trusted

        # Sites published before revision files existed
        checksum = self._store.remote_inventory_checksum()
        trusted = checksum == revision
        logger.info(
            "No cached revision, remote inventory checksum %s",
            "matches" if trusted else "does not match",
        )
        return trusted

    def _adopt_legacy_inventory(self, content: bytes) -> bool:
        parse_inventory(content)
        self._store.write_remote_inventory(content)
        logger.info("Remote manifest is a legacy inventory, adopted as remote snapshot")
        return True
