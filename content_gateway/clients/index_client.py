"""
Harvest Index Client: native_id -> artifact UUID via DynamoDB.

Each artifact kind has its own table; both carry a ``by_native_id`` global
secondary index. At most one item is read, and the first returned item wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional
import asyncio
import logging

import boto3
from boto3.dynamodb.types import TypeDeserializer
from botocore.exceptions import BotoCoreError, ClientError

from ..config import GatewayConfig
from ..errors import IndexStoreFault
from ..identifiers import LocationReference
from ..schemas import ArtifactKind

logger = logging.getLogger(__name__)

_DESERIALIZER = TypeDeserializer()


@dataclass(frozen=True)
class IndexLookup:
    """
    Result of an index query.

    A missing mapping is a normal state (not yet archived), not an error.
    """
    mapping_found: bool
    uuid: Optional[str]
    table_name: str


class DynamoIndexClient:
    """Queries the harvested-pdf / grobid-xml tables by native_id."""

    def __init__(self, config: GatewayConfig, client: Any = None):
        self.config = config
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = boto3.client(
                "dynamodb",
                region_name=self.config.aws_region,
                aws_access_key_id=self.config.aws_access_key_id,
                aws_secret_access_key=self.config.aws_secret_access_key,
            )
        return self._client

    def _query(self, table_name: str, native_id: str) -> Optional[str]:
        result = self.client.query(
            TableName=table_name,
            IndexName=self.config.index_name,
            KeyConditionExpression="native_id = :nid",
            ExpressionAttributeValues={":nid": {"S": native_id}},
            Limit=1,
        )
        items = result.get("Items") or []
        if not items:
            return None
        item = {k: _DESERIALIZER.deserialize(v) for k, v in items[0].items()}
        uuid = item.get("id")
        return str(uuid) if uuid else None

    async def lookup(
        self,
        reference: LocationReference,
        kind: ArtifactKind,
        *,
        work_id: str,
    ) -> IndexLookup:
        """
        Find the artifact UUID for a location reference.

        Raises:
            IndexStoreFault: DynamoDB could not be queried (not retried)
        """
        table_name = self.config.table_for(kind)
        try:
            uuid = await asyncio.to_thread(self._query, table_name, reference.native_id)
        except (BotoCoreError, ClientError) as e:
            logger.error(
                f"[INDEX] DynamoDB error: work_id={work_id} reference={reference} "
                f"table={table_name} index={self.config.index_name}: {e}"
            )
            raise IndexStoreFault(
                work_id=work_id,
                best_oa_location_id=str(reference),
                scheme=reference.scheme,
                native_id=reference.native_id,
                table_name=table_name,
            ) from e

        logger.debug(f"[INDEX] {table_name}: {reference.native_id} -> {uuid}")
        return IndexLookup(mapping_found=uuid is not None, uuid=uuid, table_name=table_name)
