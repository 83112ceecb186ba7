"""
Artifact Store: Primary (Hot) Tier

Harvested artifacts live under ``{uuid}{extension}`` keys in one bucket per
artifact kind. This module defines the store interface and two backends:

- R2ArtifactStore: any S3-compatible object store (Cloudflare R2 in production)
- DiskArtifactStore: local filesystem (development, tests)

Stores declare whether they offer a cheap metadata probe (``supports_head``).
Callers that only need existence fall back to a full ``get`` when it is False.
Store methods are blocking; async callers run them in a worker thread.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterator, Optional, Protocol
import logging

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


@dataclass(frozen=True)
class ObjectInfo:
    """Metadata of a stored object."""
    key: str
    size: Optional[int] = None
    content_type: Optional[str] = None
    etag: Optional[str] = None


@dataclass
class StoredObject:
    """
    An open object body.

    Attributes:
        info: Object metadata
        body: Iterator over the object's bytes
        close: Releases the underlying stream/file; safe to call twice
    """
    info: ObjectInfo
    body: Iterator[bytes]
    close: Callable[[], None] = field(default=lambda: None)


class ArtifactStore(Protocol):
    """
    Primary tier interface.

    Implement this protocol to serve artifacts from:
    - R2 / S3-compatible buckets
    - Local disk
    """

    supports_head: bool

    def head(self, bucket: str, key: str) -> Optional[ObjectInfo]:
        """Return object metadata, or None if absent. Only used when supports_head."""
        ...

    def get(self, bucket: str, key: str) -> Optional[StoredObject]:
        """Open the object for streaming, or None if absent."""
        ...


class R2ArtifactStore:
    """
    S3-compatible primary store.

    Any error other than "not found" is logged and reported as absent: the
    caller moves on to the backup tier.
    """

    supports_head = True

    def __init__(
        self,
        *,
        endpoint_url: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        client: Any = None,
    ):
        self.endpoint_url = endpoint_url
        self._client = client or boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name="auto",
            config=Config(signature_version="s3v4"),
        )
        logger.info(f"[R2] Initialized R2ArtifactStore (endpoint={endpoint_url or 'default'})")

    def head(self, bucket: str, key: str) -> Optional[ObjectInfo]:
        try:
            resp = self._client.head_object(Bucket=bucket, Key=key)
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code not in NOT_FOUND_CODES:
                logger.warning(f"[R2] HEAD {bucket}/{key} failed ({code}): {e}")
            return None
        except BotoCoreError as e:
            logger.warning(f"[R2] HEAD {bucket}/{key} failed: {e}")
            return None

        return ObjectInfo(
            key=key,
            size=resp.get("ContentLength"),
            content_type=resp.get("ContentType"),
            etag=resp.get("ETag"),
        )

    def get(self, bucket: str, key: str) -> Optional[StoredObject]:
        try:
            resp = self._client.get_object(Bucket=bucket, Key=key)
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code not in NOT_FOUND_CODES:
                logger.warning(f"[R2] GET {bucket}/{key} failed ({code}): {e}")
            return None
        except BotoCoreError as e:
            logger.warning(f"[R2] GET {bucket}/{key} failed: {e}")
            return None

        body = resp["Body"]
        return StoredObject(
            info=ObjectInfo(
                key=key,
                size=resp.get("ContentLength"),
                content_type=resp.get("ContentType"),
                etag=resp.get("ETag"),
            ),
            body=body.iter_chunks(CHUNK_SIZE),
            close=body.close,
        )


class DiskArtifactStore:
    """
    Filesystem-based primary store.

    Directory structure:
    root_dir/
        {bucket}/
            {uuid}{extension}
    """

    supports_head = True

    def __init__(self, root_dir: str):
        self.root = Path(root_dir)
        self.root.mkdir(parents=True, exist_ok=True)
        logger.info(f"[STORE] Initialized DiskArtifactStore at {self.root}")

    def _path(self, bucket: str, key: str) -> Path:
        # Keys are flat "{uuid}{ext}" names; refuse anything that walks directories
        if "/" in key or "\\" in key or key in ("", ".", ".."):
            raise ValueError(f"Invalid object key: {key!r}")
        return self.root / bucket / key

    def _readable_path(self, bucket: str, key: str) -> Optional[Path]:
        """Path for a lookup; refused keys are reported as absent."""
        try:
            return self._path(bucket, key)
        except ValueError as e:
            logger.warning(f"[STORE] {bucket}/{key} refused: {e}")
            return None

    def put(self, bucket: str, key: str, data: bytes) -> ObjectInfo:
        """Store an object (used to seed a development store)."""
        path = self._path(bucket, key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info(f"[STORE] Stored {bucket}/{key} ({len(data)} bytes)")
        return ObjectInfo(key=key, size=len(data))

    def head(self, bucket: str, key: str) -> Optional[ObjectInfo]:
        path = self._readable_path(bucket, key)
        if path is None or not path.is_file():
            return None
        return ObjectInfo(key=key, size=path.stat().st_size)

    def get(self, bucket: str, key: str) -> Optional[StoredObject]:
        path = self._readable_path(bucket, key)
        if path is None or not path.is_file():
            return None

        f = path.open("rb")

        def chunks() -> Iterator[bytes]:
            try:
                while True:
                    chunk = f.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    yield chunk
            finally:
                f.close()

        return StoredObject(
            info=ObjectInfo(key=key, size=path.stat().st_size),
            body=chunks(),
            close=f.close,
        )
