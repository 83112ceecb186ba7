"""
Files Module: Tiered Artifact Storage

Components:
- ArtifactStore: Primary (hot) tier interface, with R2 and disk backends
- S3BackupStore: Cold backup tier reached through SigV4-signed requests
- TieredArtifactRetriever: Primary-then-backup lookup and streaming

Both tiers store an artifact under the same "{uuid}{extension}" key.
"""

from .artifact_store import ArtifactStore, DiskArtifactStore, ObjectInfo, R2ArtifactStore, StoredObject
from .backup_store import BackupObject, S3BackupStore
from .tiered_retrieval import (
    ArtifactDescriptor,
    RetrievedArtifact,
    TierAvailability,
    TieredArtifactRetriever,
)

__all__ = [
    "ArtifactStore",
    "DiskArtifactStore",
    "ObjectInfo",
    "R2ArtifactStore",
    "StoredObject",
    "BackupObject",
    "S3BackupStore",
    "ArtifactDescriptor",
    "RetrievedArtifact",
    "TierAvailability",
    "TieredArtifactRetriever",
]
