"""
Tiered Retrieval: Primary Store First, S3 Backup Second

Both tiers hold the same artifact under the same ``{uuid}{extension}`` key.

1. PRIMARY (hot)
   - R2 / disk bucket for the artifact kind
   - Existence: HEAD probe when the store supports it, else a full GET

2. BACKUP (cold)
   - SigV4-signed request to the S3 backup bucket
   - Only reached for a download when the primary tier misses

A tier miss and a tier fault look the same here. No tier is retried.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union
import asyncio
import logging

from ..config import GatewayConfig
from ..schemas import ArtifactKind
from .artifact_store import ArtifactStore, StoredObject
from .backup_store import BackupObject, S3BackupStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArtifactDescriptor:
    """An artifact addressed by UUID and kind; the storage key is derived."""
    uuid: str
    kind: ArtifactKind

    @property
    def key(self) -> str:
        return f"{self.uuid}{self.kind.extension}"

    @property
    def content_type(self) -> str:
        return self.kind.content_type


@dataclass(frozen=True)
class TierAvailability:
    """Independent per-tier existence flags."""
    in_primary: bool
    in_backup: bool

    @property
    def available(self) -> bool:
        return self.in_primary or self.in_backup


@dataclass
class RetrievedArtifact:
    """
    Outcome of a successful fetch.

    Attributes:
        tier: "primary" or "backup"
        source: Open primary object or backup response
    """
    descriptor: ArtifactDescriptor
    tier: str
    source: Union[StoredObject, BackupObject]

    @property
    def content_type(self) -> str:
        if isinstance(self.source, BackupObject):
            return self.source.content_type or self.descriptor.content_type
        return self.descriptor.content_type

    @property
    def content_length(self) -> Optional[str]:
        if isinstance(self.source, BackupObject):
            return self.source.content_length
        size = self.source.info.size
        return str(size) if size is not None else None

    async def aclose(self) -> None:
        if isinstance(self.source, BackupObject):
            await self.source.aclose()
        else:
            self.source.close()


class TieredArtifactRetriever:
    """
    Locates and opens artifacts across the two storage tiers.

    Usage:
        retriever = TieredArtifactRetriever(config=cfg, primary=R2ArtifactStore(...), backup=S3BackupStore(...))
        descriptor = ArtifactDescriptor(uuid="...", kind=ArtifactKind.PDF)

        availability = await retriever.availability(descriptor)
        artifact = await retriever.fetch(descriptor)   # None if both tiers miss
    """

    def __init__(self, *, config: GatewayConfig, primary: ArtifactStore, backup: S3BackupStore):
        self.config = config
        self.primary = primary
        self.backup = backup

    async def in_primary(self, descriptor: ArtifactDescriptor) -> bool:
        bucket = self.config.primary_bucket_for(descriptor.kind)
        if self.primary.supports_head:
            info = await asyncio.to_thread(self.primary.head, bucket, descriptor.key)
            return info is not None

        # No metadata probe: fetch the object and drop the body
        obj = await asyncio.to_thread(self.primary.get, bucket, descriptor.key)
        if obj is None:
            return False
        obj.close()
        return True

    async def in_backup(self, descriptor: ArtifactDescriptor) -> bool:
        return await self.backup.head(self.config.backup_bucket_for(descriptor.kind), descriptor.key)

    async def availability(self, descriptor: ArtifactDescriptor) -> TierAvailability:
        """Probe both tiers; the backup is checked even when the primary has it."""
        in_primary, in_backup = await asyncio.gather(
            self.in_primary(descriptor),
            self.in_backup(descriptor),
        )
        logger.debug(f"[TIERS] {descriptor.key}: primary={in_primary} backup={in_backup}")
        return TierAvailability(in_primary=in_primary, in_backup=in_backup)

    async def fetch(self, descriptor: ArtifactDescriptor) -> Optional[RetrievedArtifact]:
        """Open the artifact from the primary tier, else the backup tier."""
        bucket = self.config.primary_bucket_for(descriptor.kind)
        obj = await asyncio.to_thread(self.primary.get, bucket, descriptor.key)
        if obj is not None:
            logger.info(f"[TIERS] Serving {descriptor.key} from primary ({bucket})")
            return RetrievedArtifact(descriptor=descriptor, tier="primary", source=obj)

        backup_bucket = self.config.backup_bucket_for(descriptor.kind)
        backup_obj = await self.backup.get(backup_bucket, descriptor.key)
        if backup_obj is not None:
            logger.info(f"[TIERS] Serving {descriptor.key} from backup ({backup_bucket})")
            return RetrievedArtifact(descriptor=descriptor, tier="backup", source=backup_obj)

        logger.info(f"[TIERS] {descriptor.key} not found in {bucket} or {backup_bucket}")
        return None
