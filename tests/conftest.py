"""Shared fixtures: a gateway wired to in-process fakes for every collaborator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import httpx
import pytest
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient

from content_gateway.clients.index_client import DynamoIndexClient
from content_gateway.clients.key_store import SqliteKeyStore
from content_gateway.clients.openalex_client import OpenAlexClient
from content_gateway.config import GatewayConfig
from content_gateway.files.artifact_store import DiskArtifactStore
from content_gateway.files.backup_store import S3BackupStore
from content_gateway.files.tiered_retrieval import TieredArtifactRetriever
from content_gateway.main import create_app
from content_gateway.pipeline import GatewayServices

CATALOG_URL = "https://api.openalex.test"

PAID_KEY = "paid-key"
UNPAID_KEY = "unpaid-key"
EXPIRED_KEY = "expired-key"
EXPIRED_AT = "2020-01-01 00:00:00"


class FakeDynamoClient:
    """Stands in for boto3's DynamoDB client; only ``query`` is used."""

    def __init__(self):
        self.items: Dict[Tuple[str, str], str] = {}
        self.queries: List[dict] = []
        self.error: Optional[Exception] = None

    def add(self, table: str, native_id: str, uuid: str) -> None:
        self.items[(table, native_id)] = uuid

    def fail_with(self, code: str = "ProvisionedThroughputExceededException") -> None:
        self.error = ClientError({"Error": {"Code": code, "Message": "slow down"}}, "Query")

    def query(self, **kwargs):
        self.queries.append(kwargs)
        if self.error is not None:
            raise self.error
        native_id = kwargs["ExpressionAttributeValues"][":nid"]["S"]
        uuid = self.items.get((kwargs["TableName"], native_id))
        if uuid is None:
            return {"Items": [], "Count": 0}
        return {"Items": [{"id": {"S": uuid}, "native_id": {"S": native_id}}], "Count": 1}


@dataclass
class FakeCatalog:
    """OpenAlex works keyed by W-id; values are the JSON bodies returned."""
    works: Dict[str, dict] = field(default_factory=dict)
    requests: List[httpx.Request] = field(default_factory=list)

    def add(self, work_id: str, location_id: Optional[str]) -> None:
        location = {"id": location_id, "is_oa": True} if location_id is not None else None
        self.works[work_id] = {"id": f"https://openalex.org/{work_id}", "best_oa_location": location}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        work_id = request.url.path.rsplit("/", 1)[-1]
        if work_id not in self.works:
            return httpx.Response(404, json={"error": "not found"}, request=request)
        return httpx.Response(200, json=self.works[work_id], request=request)


@dataclass
class FakeS3:
    """Backup buckets as {(host, key): bytes}; 403 for anything missing."""
    objects: Dict[Tuple[str, str], bytes] = field(default_factory=dict)
    requests: List[httpx.Request] = field(default_factory=list)
    status_override: Optional[int] = None

    def add(self, bucket: str, key: str, data: bytes) -> None:
        self.objects[(f"{bucket}.s3.amazonaws.com", key)] = data

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_override is not None:
            return httpx.Response(self.status_override, text="<Error/>", request=request)
        key = request.url.path.lstrip("/")
        data = self.objects.get((request.url.host, key))
        if data is None:
            return httpx.Response(403, text="<Error><Code>AccessDenied</Code></Error>", request=request)
        headers = {"content-type": "binary/octet-stream", "content-length": str(len(data))}
        if request.method == "HEAD":
            return httpx.Response(200, headers=headers, request=request)
        return httpx.Response(200, headers=headers, content=data, request=request)


@dataclass
class Gateway:
    config: GatewayConfig
    services: GatewayServices
    client: TestClient
    key_store: SqliteKeyStore
    catalog: FakeCatalog
    dynamo: FakeDynamoClient
    primary: DiskArtifactStore
    s3: FakeS3


@pytest.fixture
def config(tmp_path) -> GatewayConfig:
    return GatewayConfig(
        openalex_api_url=CATALOG_URL,
        aws_region="us-east-1",
        aws_access_key_id="AKIDEXAMPLE",
        aws_secret_access_key="wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY",
        primary_store="disk",
        disk_store_root=str(tmp_path / "artifacts"),
        api_keys_db=str(tmp_path / "api_keys.db"),
    )


@pytest.fixture
def key_store(config) -> SqliteKeyStore:
    store = SqliteKeyStore(config.api_keys_db)
    store.initialize()
    store.add(PAID_KEY, credit_card_on_file=True, email="reader@example.edu", is_academic=True)
    store.add(UNPAID_KEY, credit_card_on_file=False)
    store.add(EXPIRED_KEY, credit_card_on_file=True, expires_at=EXPIRED_AT)
    return store


@pytest.fixture
def gateway(config, key_store):
    catalog = FakeCatalog()
    dynamo = FakeDynamoClient()
    s3 = FakeS3()
    primary = DiskArtifactStore(config.disk_store_root)

    services = GatewayServices(
        config=config,
        key_store=key_store,
        catalog=OpenAlexClient(CATALOG_URL, transport=httpx.MockTransport(catalog.handler)),
        index=DynamoIndexClient(config, client=dynamo),
        retriever=TieredArtifactRetriever(
            config=config,
            primary=primary,
            backup=S3BackupStore(
                access_key_id=config.aws_access_key_id,
                secret_access_key=config.aws_secret_access_key,
                region=config.aws_region,
                transport=httpx.MockTransport(s3.handler),
            ),
        ),
    )

    with TestClient(create_app(services)) as client:
        yield Gateway(
            config=config,
            services=services,
            client=client,
            key_store=key_store,
            catalog=catalog,
            dynamo=dynamo,
            primary=primary,
            s3=s3,
        )
