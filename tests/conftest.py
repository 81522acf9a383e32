"""Shared pytest fixtures.

This module provides an in-memory transport and a throwaway site layout so
engine tests can run whole sessions without a real deployment target.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from deltadeploy.core.config import DeploymentConfig, SiteConfig
from deltadeploy.core.types import DeployProtocol
from deltadeploy.deploy.types import OperationCallback, Session, TransferError
from deltadeploy.transports.base import Transport


class FakeTransport(Transport):
    """In-memory transport recording every call."""

    def __init__(
        self,
        protocol: DeployProtocol = DeployProtocol.SFTP,
        fail_on: str | None = None,
    ) -> None:
        self.protocol = protocol
        self.fail_on = fail_on
        self.files: dict[str, bytes] = {}
        self.directories: set[str] = set()
        self.calls: list[tuple[str, str]] = []
        self.connected = False
        self.closed = False
        self.on_call: Callable[[str, str], None] | None = None

    @property
    def location(self) -> str:
        return f"Fake: {self.protocol.value}"

    def _record(self, operation: str, remote_path: str) -> None:
        self.calls.append((operation, remote_path))
        if self.on_call:
            self.on_call(operation, remote_path)
        if remote_path == self.fail_on:
            raise TransferError(
                f"Simulated failure on {remote_path}", operation=operation, path=remote_path
            )

    def test_connection(self) -> None:
        pass

    def init_connection(self) -> None:
        self.connected = True

    def close(self) -> None:
        self.closed = True

    def fetch_remote_manifest(self, remote_path: str) -> bytes | None:
        return self.files.get(remote_path)

    def remove_file(self, remote_path: str) -> None:
        self._record("remove_file", remote_path)
        self.files.pop(remote_path, None)

    def remove_directory(self, remote_path: str) -> None:
        self._record("remove_directory", remote_path)
        self.directories.discard(remote_path)

    def upload_file(self, local_path: Path, remote_path: str) -> None:
        self._record("upload_file", remote_path)
        self.files[remote_path] = Path(local_path).read_bytes()

    def upload_directory(self, local_path: Path, remote_path: str) -> None:
        self._record("upload_directory", remote_path)
        self.directories.add(remote_path)

    def start_sync(self, session: Session, on_operation_complete: OperationCallback) -> None:
        self.calls.append(("start_sync", session.output_dir))
        for entry in session.operations.removal_order():
            if not entry.is_directory:
                self.remove_file(session.remote_path(entry.path))
                on_operation_complete(entry)
        for entry in session.operations.upload_order():
            if not entry.is_directory:
                self.upload_file(session.local_path(entry.path), session.remote_path(entry.path))
                on_operation_complete(entry)

    def operations(self) -> list[tuple[str, str]]:
        """Calls that changed the remote side, manifest publication excluded."""
        return [call for call in self.calls if not call[1].endswith("files.deploy.json")]


def write_tree(root: Path, files: dict[str, str | bytes]) -> None:
    """Create files (and their parent directories) under ``root``."""
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")


@pytest.fixture
def fake_transport() -> FakeTransport:
    """Create an in-memory SFTP-like transport."""
    return FakeTransport()


@pytest.fixture
def transport_factory() -> Callable[..., FakeTransport]:
    """Build in-memory transports for a given protocol."""
    return FakeTransport


@pytest.fixture
def tree_writer() -> Callable[[Path, dict[str, str | bytes]], None]:
    """Expose write_tree to tests."""
    return write_tree


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    """Create a site directory with an empty output tree."""
    site = tmp_path / "site"
    (site / "output").mkdir(parents=True)
    return site


@pytest.fixture
def make_site(site_dir: Path) -> Callable[..., SiteConfig]:
    """Build a SiteConfig for the temporary site."""

    def _make(protocol: str = "sftp", path: str = "www", **options: str) -> SiteConfig:
        return SiteConfig(
            name="blog",
            input_dir=site_dir / "output",
            config_dir=site_dir / ".deploy",
            deployment=DeploymentConfig(protocol=protocol, path=path, options=dict(options)),
        )

    return _make
