"""
S3 Backup Store: Cold Tier via SigV4-Signed HTTP

The backup buckets are reached with plain HTTPS requests signed with AWS
Signature Version 4, using virtual-hosted addressing:

    us-east-1:   https://{bucket}.s3.amazonaws.com/{key}
    elsewhere:   https://{bucket}.s3.{region}.amazonaws.com/{key}

Status handling (HEAD and GET alike):
    200         -> present
    403 / 404   -> absent (S3 answers 403 for missing keys without ListBucket)
    other       -> logged as unexpected, absent
Nothing here raises on a miss and nothing is retried.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional
from urllib.parse import quote
import logging

import httpx
from botocore.auth import S3SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials
from botocore.exceptions import BotoCoreError

logger = logging.getLogger(__name__)

ABSENT_STATUSES = {403, 404}


def s3_host(bucket: str, region: str) -> str:
    """Virtual-hosted style host name for a bucket."""
    if region == "us-east-1":
        return f"{bucket}.s3.amazonaws.com"
    return f"{bucket}.s3.{region}.amazonaws.com"


def s3_object_url(bucket: str, key: str, region: str) -> str:
    return f"https://{s3_host(bucket, region)}/{quote(key, safe='')}"


@dataclass
class BackupObject:
    """
    A streaming GET response from the backup tier.

    The response stays open until ``aclose`` is called.
    """
    response: httpx.Response

    @property
    def content_type(self) -> Optional[str]:
        return self.response.headers.get("content-type")

    @property
    def content_length(self) -> Optional[str]:
        return self.response.headers.get("content-length")

    def aiter_bytes(self):
        return self.response.aiter_bytes()

    async def aclose(self) -> None:
        await self.response.aclose()


class S3BackupStore:
    """
    Signed HEAD/GET access to the backup buckets.

    Usage:
        store = S3BackupStore(access_key_id="...", secret_access_key="...", region="us-east-1")
        if await store.head("openalex-harvested-pdfs", "uuid.pdf"):
            obj = await store.get("openalex-harvested-pdfs", "uuid.pdf")
    """

    def __init__(
        self,
        *,
        access_key_id: Optional[str],
        secret_access_key: Optional[str],
        region: str = "us-east-1",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.region = region
        self._credentials = Credentials(access_key_id or "", secret_access_key or "")
        self._client = httpx.AsyncClient(transport=transport, timeout=timeout)
        logger.info(f"[S3] Initialized S3BackupStore (region={region})")

    def _signed_headers(self, method: str, url: str) -> Dict[str, str]:
        request = AWSRequest(method=method, url=url)
        S3SigV4Auth(self._credentials, "s3", self.region).add_auth(request)
        return dict(request.headers.items())

    async def _send(self, method: str, bucket: str, key: str) -> Optional[httpx.Response]:
        url = s3_object_url(bucket, key, self.region)
        try:
            request = self._client.build_request(method, url, headers=self._signed_headers(method, url))
            return await self._client.send(request, stream=True)
        except (httpx.HTTPError, httpx.InvalidURL, BotoCoreError) as e:
            logger.warning(f"[S3] {method} {bucket}/{key} failed: {e}")
            return None

    async def _accept(self, method: str, bucket: str, key: str, response: httpx.Response) -> bool:
        """True if the response is a hit; closes it otherwise."""
        if response.status_code == 200:
            return True

        if response.status_code in ABSENT_STATUSES:
            logger.debug(f"[S3] {method} {bucket}/{key}: {response.status_code} (treated as absent)")
        else:
            try:
                body = (await response.aread()).decode("utf-8", errors="replace")[:500]
            except httpx.HTTPError as e:
                body = f"<unreadable body: {e}>"
            logger.warning(f"[S3] {method} unexpected {response.status_code} for {bucket}/{key}: {body}")
        await response.aclose()
        return False

    async def head(self, bucket: str, key: str) -> bool:
        """Existence check with a signed HEAD."""
        response = await self._send("HEAD", bucket, key)
        if response is None:
            return False
        found = await self._accept("HEAD", bucket, key, response)
        if found:
            await response.aclose()
        return found

    async def get(self, bucket: str, key: str) -> Optional[BackupObject]:
        """Signed streaming GET; None when the object is absent."""
        response = await self._send("GET", bucket, key)
        if response is None:
            return None
        if not await self._accept("GET", bucket, key, response):
            return None
        return BackupObject(response=response)

    async def aclose(self) -> None:
        await self._client.aclose()
