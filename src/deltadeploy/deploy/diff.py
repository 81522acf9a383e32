"""Diff engine.

Compares the local inventory with the cached remote inventory. The join is
on path and fingerprint only: a renamed file is one removal plus one upload.
"""

from __future__ import annotations

import logging

from deltadeploy.core.types import Entry, TransportCapabilities
from deltadeploy.deploy.types import DiffResult

logger = logging.getLogger(__name__)


class DiffEngine:
    """Computes the removal and upload sets for one transport."""

    def __init__(self, capabilities: TransportCapabilities) -> None:
        self._capabilities = capabilities

    def compute(
        self,
        local: list[Entry],
        remote: list[Entry],
        remote_usable: bool = True,
    ) -> DiffResult:
        """Diff two inventories.

        Args:
            local: Inventory of the local tree.
            remote: Cached inventory of the remote side.
            remote_usable: Trust verdict for ``remote``. An untrusted remote
                is diffed as if it were empty.

        Returns:
            DiffResult with entries in the order they appear in their inventory.
        """
        if not remote_usable:
            remote = []

        local_by_path = {entry.path: entry for entry in local}
        remote_by_path = {entry.path: entry for entry in remote}

        result = DiffResult()
        for entry in remote:
            if not self._tracked(entry):
                continue
            if entry.path not in local_by_path:
                result.to_remove.append(entry.reduced())

        for entry in local:
            if not self._tracked(entry):
                continue
            if self._needs_upload(entry, remote_by_path.get(entry.path)):
                result.to_upload.append(entry.reduced())

        logger.info(
            "Diff: %d to remove, %d to upload (remote %s)",
            len(result.to_remove),
            len(result.to_upload),
            "trusted" if remote_usable else "not trusted",
        )
        return result

    def _tracked(self, entry: Entry) -> bool:
        return self._capabilities.tracks_directories or not entry.is_directory

    @staticmethod
    def _needs_upload(local: Entry, remote: Entry | None) -> bool:
        if remote is None or remote.kind != local.kind:
            return True
        # Directories match on presence alone
        if local.is_directory:
            return False
        return local.fingerprint != remote.fingerprint
