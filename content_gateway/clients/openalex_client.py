"""
=============================================================================
OPENALEX CATALOG CLIENT
=============================================================================

PURPOSE:
    Look up a work's best open-access location in the OpenAlex API.
    Only ``id`` and ``best_oa_location`` are requested.

CACHING:
    Responses are kept in an in-memory hishel cache for ``catalog_cache_ttl``
    seconds. ``force_cache`` stores every cacheable response regardless of the
    upstream Cache-Control headers.

FAILURES:
    Any reason the location cannot be read (non-2xx, bad JSON, no
    best_oa_location, transport error) raises UpstreamLocationAbsent.
    Nothing is retried.
=============================================================================
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote
import logging

import hishel
import httpx
from pydantic import ValidationError

from ..errors import UpstreamLocationAbsent
from ..schemas import CatalogWork

logger = logging.getLogger(__name__)

DATA_VERSION = "2"
SELECT_FIELDS = "id,best_oa_location"


def build_cached_transport(
    ttl_seconds: int,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> hishel.AsyncCacheTransport:
    """Wrap a transport (default: real network) in a TTL-bounded response cache."""
    return hishel.AsyncCacheTransport(
        transport=transport or httpx.AsyncHTTPTransport(),
        storage=hishel.AsyncInMemoryStorage(ttl=ttl_seconds),
        controller=hishel.Controller(force_cache=True),
    )


class OpenAlexClient:
    """
    Async client for the OpenAlex works endpoint.

    Usage:
        client = OpenAlexClient("https://api.openalex.org", cache_ttl=300)
        location_id = await client.fetch_best_oa_location_id("W2741809807")
        await client.aclose()
    """

    def __init__(
        self,
        base_url: str = "https://api.openalex.org",
        *,
        cache_ttl: int = 300,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            transport=build_cached_transport(cache_ttl, transport),
            timeout=timeout,
        )
        logger.info(f"[CATALOG] OpenAlexClient initialized: {self.base_url} (cache_ttl={cache_ttl}s)")

    def work_api_url(self, work_id: str) -> str:
        """Public URL of the full work record."""
        return f"{self.base_url}/works/{work_id}?data-version={DATA_VERSION}"

    async def fetch_work(self, work_id: str) -> CatalogWork:
        """
        Fetch the narrow work record.

        Raises:
            UpstreamLocationAbsent: the record could not be fetched or decoded
        """
        url = f"{self.base_url}/works/{quote(work_id, safe='')}"
        try:
            response = await self._client.get(
                url,
                params={"data-version": DATA_VERSION, "select": SELECT_FIELDS},
            )
        except httpx.HTTPError as e:
            logger.warning(f"[CATALOG] Request failed for {work_id}: {e}")
            raise UpstreamLocationAbsent(work_id=work_id)

        if not response.is_success:
            logger.info(f"[CATALOG] {work_id}: HTTP {response.status_code}")
            raise UpstreamLocationAbsent(work_id=work_id)

        try:
            return CatalogWork.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.warning(f"[CATALOG] Unusable response for {work_id}: {e}")
            raise UpstreamLocationAbsent(work_id=work_id)

    async def fetch_best_oa_location_id(self, work_id: str) -> str:
        """Return best_oa_location.id for a canonical work id."""
        work = await self.fetch_work(work_id)
        if work.best_oa_location is None:
            raise UpstreamLocationAbsent(work_id=work_id)
        return work.best_oa_location.id

    async def aclose(self) -> None:
        await self._client.aclose()
