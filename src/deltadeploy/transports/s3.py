"""S3-compatible object storage transport (AWS, OVH, MinIO, etc.).

Object storage has no directories: directory operations are no-ops and the
sync is delegated to the transport, which runs removals and then uploads on
a bounded thread pool.
"""

from __future__ import annotations

import logging
import mimetypes
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import TYPE_CHECKING

from deltadeploy.core.types import DeployProtocol, OperationEntry
from deltadeploy.deploy.types import ConnectionFailedError, TransferError, TransportError
from deltadeploy.transports.base import Transport

if TYPE_CHECKING:
    from typing import Any

    from deltadeploy.deploy.types import OperationCallback, Session

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class S3Transport(Transport):
    """Deploys into an S3 bucket."""

    protocol = DeployProtocol.S3

    def __init__(
        self,
        bucket: str,
        endpoint_url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        region: str = "us-east-1",
        max_workers: int = 4,
    ) -> None:
        """Initialize the S3 transport.

        Args:
            bucket: S3 bucket name.
            endpoint_url: Custom endpoint URL (for OVH, MinIO, etc.).
            access_key: AWS access key ID.
            secret_key: AWS secret access key.
            region: AWS region (default: us-east-1).
            max_workers: Parallel object operations during a sync.
        """
        import boto3

        self._bucket = bucket
        self._endpoint_url = endpoint_url
        self._max_workers = max(1, max_workers)
        self._client: Any = boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
        )

    @property
    def location(self) -> str:
        """Return the S3 bucket location."""
        if self._endpoint_url:
            return f"S3: {self._endpoint_url}/{self._bucket}"
        return f"S3: s3://{self._bucket}"

    @staticmethod
    def _key(remote_path: str) -> str:
        """Get the object key for a remote path."""
        return remote_path.lstrip("/")

    def test_connection(self) -> None:
        """Check that the bucket exists and is reachable."""
        self._head_bucket("test_connection")

    def init_connection(self) -> None:
        """Check the bucket before the session starts."""
        self._head_bucket("init_connection")

    def _head_bucket(self, operation: str) -> None:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            self._client.head_bucket(Bucket=self._bucket)
        except (ClientError, BotoCoreError) as e:
            raise ConnectionFailedError(
                f"Cannot access bucket {self._bucket}: {e}", operation=operation
            ) from e

    def fetch_remote_manifest(self, remote_path: str) -> bytes | None:
        """Download the manifest object, or None if it does not exist."""
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            response = self._client.get_object(Bucket=self._bucket, Key=self._key(remote_path))
            body: bytes = response["Body"].read()
            return body
        except ClientError as e:
            if e.response["Error"]["Code"] in ("NoSuchKey", "404"):
                return None
            raise TransportError(
                f"Cannot fetch manifest {remote_path}: {e}",
                operation="fetch_remote_manifest",
                path=remote_path,
            ) from e
        except BotoCoreError as e:
            raise TransportError(
                f"Cannot fetch manifest {remote_path}: {e}",
                operation="fetch_remote_manifest",
                path=remote_path,
            ) from e

    def remove_file(self, remote_path: str) -> None:
        """Delete an object. Deleting a missing key succeeds."""
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            self._client.delete_object(Bucket=self._bucket, Key=self._key(remote_path))
        except (ClientError, BotoCoreError) as e:
            raise TransferError(
                f"Cannot remove {remote_path}: {e}", operation="remove_file", path=remote_path
            ) from e

    def remove_directory(self, remote_path: str) -> None:
        """No-op: prefixes disappear with their last object."""
        logger.debug("Ignoring directory removal on object storage: %s", remote_path)

    def upload_file(self, local_path: Path, remote_path: str) -> None:
        """Upload a file as an object with a guessed content type."""
        from botocore.exceptions import BotoCoreError, ClientError

        content_type = mimetypes.guess_type(local_path.name)[0] or DEFAULT_CONTENT_TYPE
        try:
            with open(local_path, "rb") as f:
                self._client.put_object(
                    Bucket=self._bucket,
                    Key=self._key(remote_path),
                    Body=f,
                    ContentType=content_type,
                )
        except (OSError, ClientError, BotoCoreError) as e:
            raise TransferError(
                f"Cannot upload {local_path} to {remote_path}: {e}",
                operation="upload_file",
                path=remote_path,
            ) from e

    def upload_directory(self, local_path: Path, remote_path: str) -> None:
        """No-op: object storage has no directories."""
        logger.debug("Ignoring directory creation on object storage: %s", remote_path)

    def start_sync(self, session: Session, on_operation_complete: OperationCallback) -> None:
        """Run all removals, then all uploads, in parallel batches."""
        operations = session.operations
        removals = [entry for entry in operations.removal_order() if not entry.is_directory]
        uploads = [entry for entry in operations.upload_order() if not entry.is_directory]
        logger.info(
            "Syncing %d removals and %d uploads to %s",
            len(removals),
            len(uploads),
            self.location,
        )

        self._run_batch(
            removals,
            lambda entry: self.remove_file(session.remote_path(entry.path)),
            on_operation_complete,
        )
        self._run_batch(
            uploads,
            lambda entry: self.upload_file(
                session.local_path(entry.path), session.remote_path(entry.path)
            ),
            on_operation_complete,
        )

    def _run_batch(
        self,
        entries: list[OperationEntry],
        action: Callable[[OperationEntry], None],
        on_complete: OperationCallback,
    ) -> None:
        """Run ``action`` for every entry, stopping at the first failure."""
        if not entries:
            return

        executor = ThreadPoolExecutor(max_workers=self._max_workers)
        try:
            futures = {executor.submit(action, entry): entry for entry in entries}
            for future in as_completed(futures):
                future.result()
                on_complete(futures[future])
        finally:
            executor.shutdown(wait=True, cancel_futures=True)
