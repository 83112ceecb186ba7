"""
Resolution Pipeline

work id -> (authorization) -> best_oa_location.id -> (scheme, native_id)
        -> artifact UUID -> storage key

Native work ids go through the OpenAlex catalog; DOIs already are the native
id of a "doi:" reference and skip it. Every stage either returns its result
or raises a GatewayError that ends the request.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import logging

from .auth import check_api_key
from .clients.index_client import DynamoIndexClient, IndexLookup
from .clients.key_store import SqliteKeyStore
from .clients.openalex_client import OpenAlexClient
from .config import GatewayConfig
from .errors import PaymentIneligible, Unauthenticated
from .files.artifact_store import DiskArtifactStore, R2ArtifactStore
from .files.backup_store import S3BackupStore
from .files.tiered_retrieval import ArtifactDescriptor, TieredArtifactRetriever
from .identifiers import LocationReference, WorkIdentifier, parse_location_reference
from .schemas import ArtifactKind

logger = logging.getLogger(__name__)

DEFAULT_AUTH_MESSAGE = "Provide a valid API key in 'api_key' query parameter or 'Authorization' header"


@dataclass
class GatewayServices:
    """Long-lived collaborators shared by all requests."""
    config: GatewayConfig
    key_store: SqliteKeyStore
    catalog: OpenAlexClient
    index: DynamoIndexClient
    retriever: TieredArtifactRetriever

    @classmethod
    def from_config(cls, config: GatewayConfig) -> "GatewayServices":
        if config.primary_store == "disk":
            primary = DiskArtifactStore(config.disk_store_root)
        else:
            primary = R2ArtifactStore(
                endpoint_url=config.r2_endpoint_url,
                access_key_id=config.r2_access_key_id,
                secret_access_key=config.r2_secret_access_key,
            )
        backup = S3BackupStore(
            access_key_id=config.aws_access_key_id,
            secret_access_key=config.aws_secret_access_key,
            region=config.aws_region,
            timeout=config.http_timeout_s,
        )
        key_store = SqliteKeyStore(config.api_keys_db)
        key_store.initialize()
        return cls(
            config=config,
            key_store=key_store,
            catalog=OpenAlexClient(
                config.openalex_api_url,
                cache_ttl=config.catalog_cache_ttl,
                timeout=config.http_timeout_s,
            ),
            index=DynamoIndexClient(config),
            retriever=TieredArtifactRetriever(config=config, primary=primary, backup=backup),
        )

    async def aclose(self) -> None:
        await self.catalog.aclose()
        await self.retriever.backup.aclose()


@dataclass(frozen=True)
class Resolution:
    """Everything learned about a work before touching the storage tiers."""
    work: WorkIdentifier
    kind: ArtifactKind
    location_id: str
    reference: LocationReference
    lookup: IndexLookup
    work_api: Optional[str] = None

    @property
    def descriptor(self) -> Optional[ArtifactDescriptor]:
        if not self.lookup.uuid:
            return None
        return ArtifactDescriptor(uuid=self.lookup.uuid, kind=self.kind)


async def authorize(services: GatewayServices, api_key: Optional[str]) -> None:
    """
    Run the API key check.

    Raises:
        Unauthenticated: missing, unknown, expired key or key store fault
        PaymentIneligible: valid key without a credit card on file
    """
    auth = await check_api_key(api_key, services.key_store)
    if not auth.valid:
        raise Unauthenticated(auth.error or DEFAULT_AUTH_MESSAGE)
    if not auth.has_payment_eligibility:
        raise PaymentIneligible("A credit card on file is required to download files")


async def resolve(services: GatewayServices, work: WorkIdentifier, kind: ArtifactKind) -> Resolution:
    """Resolve a work to its location reference and index entry."""
    if work.is_foreign:
        location_id = f"{work.scheme}:{work.value}"
        work_api = None
    else:
        location_id = await services.catalog.fetch_best_oa_location_id(work.value)
        work_api = services.catalog.work_api_url(work.value)

    reference = parse_location_reference(location_id, work_id=work.value)
    lookup = await services.index.lookup(reference, kind, work_id=work.value)

    logger.info(
        f"[PIPELINE] {work.value} -> {location_id} -> "
        f"{lookup.uuid or 'no mapping'} ({lookup.table_name})"
    )
    return Resolution(
        work=work,
        kind=kind,
        location_id=location_id,
        reference=reference,
        lookup=lookup,
        work_api=work_api,
    )
