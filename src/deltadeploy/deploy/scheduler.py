"""Operation scheduler.

Orders the diff into two stacks that are safe to drain one item at a time:

Removals:
    1. Files, in discovery order
    2. Directories, deepest first (so each is empty when it is removed)

Uploads:
    1. Directories, shortest path first (parents before children)
    2. Text files, in discovery order
    3. Binary files, in discovery order

The execution order is also written to two audit logs for operators.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from deltadeploy.core.types import OperationEntry
from deltadeploy.deploy.inventory import is_binary_file
from deltadeploy.deploy.types import DiffResult, InventoryError, ScheduledOperations

logger = logging.getLogger(__name__)

UPLOAD_LOG_NAME = "connection-files-log-to-upload.txt"
REMOVAL_LOG_NAME = "connection-files-log-to-delete.txt"


class OperationScheduler:
    """Turns a DiffResult into ScheduledOperations.

    Usage:
        scheduler = OperationScheduler(input_dir, log_dir)
        operations = scheduler.schedule(diff)
        next_upload = operations.uploads.pop()
    """

    def __init__(self, input_dir: Path, log_dir: Path | None = None) -> None:
        """Initialize the scheduler.

        Args:
            input_dir: Local tree, used to sniff binary files.
            log_dir: Where to write the audit logs. None disables them.
        """
        self._input_dir = Path(input_dir)
        self._log_dir = Path(log_dir) if log_dir is not None else None

    def schedule(self, diff: DiffResult) -> ScheduledOperations:
        """Order the diff into LIFO stacks.

        Raises:
            InventoryError: If an upload candidate can no longer be read.
        """
        removals = self.removal_order(diff.to_remove)
        uploads = self.upload_order(diff.to_upload)

        if self._log_dir is not None:
            _write_log(self._log_dir / UPLOAD_LOG_NAME, uploads)
            _write_log(self._log_dir / REMOVAL_LOG_NAME, removals)

        logger.debug("Scheduled %d removals, %d uploads", len(removals), len(uploads))
        return ScheduledOperations(
            removals=list(reversed(removals)),
            uploads=list(reversed(uploads)),
        )

    @staticmethod
    def removal_order(entries: list[OperationEntry]) -> list[OperationEntry]:
        """Execution order of removals."""
        files = [entry for entry in entries if not entry.is_directory]
        directories = [entry for entry in entries if entry.is_directory]
        directories.sort(key=lambda entry: entry.path.count("/"), reverse=True)
        return files + directories

    def upload_order(self, entries: list[OperationEntry]) -> list[OperationEntry]:
        """Execution order of uploads."""
        directories = [entry for entry in entries if entry.is_directory]
        directories.sort(key=lambda entry: len(entry.path))

        text_files: list[OperationEntry] = []
        binary_files: list[OperationEntry] = []
        for entry in entries:
            if entry.is_directory:
                continue
            if self._is_binary(entry):
                binary_files.append(entry)
            else:
                text_files.append(entry)
        return directories + text_files + binary_files

    def _is_binary(self, entry: OperationEntry) -> bool:
        path = self._input_dir / entry.path
        try:
            return is_binary_file(path)
        except OSError as e:
            raise InventoryError(f"Cannot read {path}: {e}", path=path) from e


def _write_log(path: Path, entries: list[OperationEntry]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    data = [entry.to_dict() for entry in entries]
    path.write_text(json.dumps(data, indent=4, ensure_ascii=False), encoding="utf-8")
