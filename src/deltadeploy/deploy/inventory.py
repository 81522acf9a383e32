"""Local inventory builder.

This module provides:
- InventoryBuilder: Walks the local output tree into an ordered inventory
- fingerprint_file: Content fingerprint with the legacy binary surrogate
- is_binary_file / is_binary_content: Content sniffing used for fingerprints and scheduling
- load_inventory / dump_inventory: On-disk JSON format

Inventory file format (JSON array, 4-space indent):
    [{"path": "css/site.css", "type": "file", "md5": "<hex>"},
     {"path": "css", "type": "directory", "md5": false}]
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from pathlib import Path

from deltadeploy.core.types import (
    DeployProtocol,
    Entry,
    EntryKind,
    capabilities_for,
)
from deltadeploy.deploy.types import InventoryError, SnapshotError

logger = logging.getLogger(__name__)

# Version-control metadata is never deployed
VCS_DIRECTORIES = frozenset({".git"})

# Server-side routing/auth files allowed despite being hidden
SPECIAL_FILES = frozenset({".htaccess", "_redirects"})

# Bytes inspected when sniffing for binary content, plus room to finish a
# UTF-8 sequence straddling the limit
SNIFF_SIZE = 512
UTF8_BOUNDARY_RESERVE = 3

# Byte order marks of encodings whose text contains NUL or high bytes
TEXT_BOMS = (
    b"\xef\xbb\xbf",  # UTF-8
    b"\x00\x00\xfe\xff",  # UTF-32 BE
    b"\xff\xfe\x00\x00",  # UTF-32 LE
    b"\x84\x31\x95\x33",  # GB18030
    b"\xfe\xff",  # UTF-16 BE
    b"\xff\xfe",  # UTF-16 LE
)

_READ_CHUNK = 1024 * 1024


def _is_continuation(byte: int) -> bool:
    return 0x80 <= byte <= 0xBF


def is_binary_content(head: bytes) -> bool:
    """Classify the first bytes of a file as binary or text.

    Same decision as the ``isbinaryfile`` package used by earlier
    deployments:

    - empty content and content starting with a known byte order mark are
      text, a ``%PDF-`` header is binary, a NUL byte is binary;
    - otherwise every control byte (except 7-14) and every byte above 127
      that does not start a valid UTF-8 sequence is suspicious, and more
      than 10% suspicious bytes means binary. The early exit only kicks in
      after the first 32 bytes.

    Args:
        head: Leading bytes of the file, at most SNIFF_SIZE + 3 of them.
    """
    total = min(len(head), SNIFF_SIZE + UTF8_BOUNDARY_RESERVE)
    if total == 0:
        return False
    if head.startswith(TEXT_BOMS):
        return False
    if head.startswith(b"%PDF-"):
        return True

    suspicious = 0
    i = 0
    while i < total:
        byte = head[i]
        if byte == 0:
            return True
        if (byte < 7 or byte > 14) and (byte < 32 or byte > 127):
            if 0xC0 <= byte <= 0xDF and i + 1 < total:
                i += 1
                if _is_continuation(head[i]):
                    i += 1
                    continue
            elif 0xE0 <= byte <= 0xEF and i + 2 < total:
                i += 1
                if _is_continuation(head[i]) and _is_continuation(head[i + 1]):
                    i += 2
                    continue
            elif 0xF0 <= byte <= 0xF7 and i + 3 < total:
                i += 1
                if all(_is_continuation(b) for b in head[i : i + 3]):
                    i += 3
                    continue
            # The byte after a broken lead byte is consumed unchecked
            suspicious += 1
            if i >= 32 and suspicious * 100 / total > 10:
                return True
        i += 1

    return suspicious * 100 / total > 10


def is_binary_file(path: Path) -> bool:
    """Sniff whether a file holds binary content.

    Args:
        path: File to inspect.

    Returns:
        True if the file should be treated as binary.

    Raises:
        OSError: If the file cannot be read.
    """
    with open(path, "rb") as f:
        head = f.read(SNIFF_SIZE + UTF8_BOUNDARY_RESERVE)
    return is_binary_content(head)


def size_fingerprint(size: int) -> str:
    """Fingerprint a binary file from its size.

    Older deployments hashed the numeric values of the size's decimal
    digits (size 123 -> bytes 01 02 03) instead of the content. Published
    snapshots depend on it, so the value must stay bit-for-bit identical.
    Same-sized binaries therefore collide.
    """
    digits = bytes(int(digit) for digit in str(size))
    return hashlib.md5(digits).hexdigest()


def content_fingerprint(path: Path) -> str:
    """MD5 of a file's raw bytes."""
    digest = hashlib.md5()
    with open(path, "rb") as f:
        while chunk := f.read(_READ_CHUNK):
            digest.update(chunk)
    return digest.hexdigest()


def fingerprint_file(path: Path) -> str:
    """Compute the inventory fingerprint of a file.

    Args:
        path: File to fingerprint.

    Returns:
        Hex digest: content MD5 for text files, size surrogate for binaries.
    """
    if is_binary_file(path):
        return size_fingerprint(path.stat().st_size)
    return content_fingerprint(path)


class InventoryBuilder:
    """Builds the inventory of a local output tree for one protocol.

    Usage:
        builder = InventoryBuilder(DeployProtocol.SFTP)
        entries = builder.build(Path("site/output"))
        builder.save(entries, Path("site/output/files.deploy.json"))
    """

    def __init__(
        self,
        protocol: DeployProtocol,
        exclude: set[str] | frozenset[str] | None = None,
    ) -> None:
        """Initialize the builder.

        Args:
            protocol: Active deployment protocol.
            exclude: Root-relative paths to leave out (e.g. the inventory file).
        """
        self._protocol = protocol
        self._capabilities = capabilities_for(protocol)
        self._exclude = frozenset(exclude or ())

    def build(self, root: Path) -> list[Entry]:
        """Walk ``root`` and return its inventory.

        Entries are listed depth-first, sorted by name, each directory before
        its children.

        Raises:
            InventoryError: If any file or directory cannot be read.
        """
        root = Path(root)
        if not root.is_dir():
            raise InventoryError(f"Input directory does not exist: {root}", path=root)

        entries: list[Entry] = []
        self._walk(root, "", entries)
        logger.info(
            "Built inventory of %d entries from %s (%s)",
            len(entries),
            root,
            self._protocol.value,
        )
        return entries

    def _walk(self, directory: Path, prefix: str, entries: list[Entry]) -> None:
        try:
            with os.scandir(directory) as it:
                items = sorted(it, key=lambda e: e.name)
        except OSError as e:
            raise InventoryError(f"Cannot list directory {directory}: {e}", path=directory) from e

        for item in items:
            relative = f"{prefix}{item.name}"
            if relative in self._exclude:
                continue

            try:
                is_dir = item.is_dir()
            except OSError as e:
                raise InventoryError(f"Cannot stat {item.path}: {e}", path=item.path) from e

            if is_dir:
                if item.name in VCS_DIRECTORIES:
                    continue
                if self._capabilities.tracks_directories:
                    entries.append(Entry(relative, EntryKind.DIRECTORY))
                self._walk(Path(item.path), f"{relative}/", entries)
                continue

            if not self._include_file(item.name, at_root=not prefix):
                logger.debug("Skipping %s", relative)
                continue

            try:
                fingerprint = fingerprint_file(Path(item.path))
            except OSError as e:
                raise InventoryError(f"Cannot read {item.path}: {e}", path=item.path) from e
            entries.append(Entry(relative, EntryKind.FILE, fingerprint))

    def _include_file(self, name: str, at_root: bool) -> bool:
        if name in SPECIAL_FILES:
            return not at_root or self._capabilities.root_special_files
        return not name.startswith(".")

    @staticmethod
    def save(entries: list[Entry], path: Path) -> None:
        """Write an inventory file."""
        dump_inventory(entries, path)


def dump_inventory(entries: list[Entry], path: Path) -> None:
    """Serialize an inventory to ``path``."""
    data = [entry.to_dict() for entry in entries]
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=4, ensure_ascii=False), encoding="utf-8")


def parse_inventory(content: bytes | str) -> list[Entry]:
    """Parse an inventory document.

    Duplicate paths keep their first occurrence.

    Raises:
        SnapshotError: If the document is not a valid inventory.
    """
    try:
        data = json.loads(content)
    except (ValueError, UnicodeDecodeError) as e:
        raise SnapshotError(f"Inventory is not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise SnapshotError("Inventory must be a JSON array")

    entries: list[Entry] = []
    seen: set[str] = set()
    for record in data:
        try:
            entry = Entry.from_dict(record)
        except (KeyError, TypeError, ValueError) as e:
            raise SnapshotError(f"Invalid inventory record {record!r}: {e}") from e
        if entry.path in seen:
            continue
        seen.add(entry.path)
        entries.append(entry)
    return entries


def load_inventory(path: Path) -> list[Entry]:
    """Read an inventory file.

    Raises:
        OSError: If the file cannot be read.
        SnapshotError: If its content is malformed.
    """
    return parse_inventory(path.read_bytes())
