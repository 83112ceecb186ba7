"""
Gateway Configuration

All bucket, table and endpoint names live here so the pipeline can be built
against substitute stores in tests. Values come from the environment, which
is populated from the project ``.env`` before anything reads it.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import os

from dotenv import load_dotenv

from .schemas import ArtifactKind

# Project root (parent of content_gateway/)
ENV_PATH = Path(__file__).parent.parent / ".env"


@dataclass(frozen=True)
class GatewayConfig:
    """
    Explicit configuration passed to every component that talks to storage.

    Attributes:
        openalex_api_url: Base URL of the OpenAlex catalog API
        catalog_cache_ttl: Seconds a catalog response stays cached
        http_timeout_s: Timeout for catalog and backup-tier requests
        aws_region: Region for DynamoDB and the S3 backup buckets
        index_name: Secondary index keyed by native_id
        pdf_table / grobid_table: Index tables per artifact kind
        pdf_bucket / grobid_bucket: Primary (hot) buckets per artifact kind
        pdf_backup_bucket / grobid_backup_bucket: S3 backup buckets
        primary_store: "r2" (S3-compatible API) or "disk"
    """
    openalex_api_url: str = "https://api.openalex.org"
    catalog_cache_ttl: int = 300
    http_timeout_s: float = 30.0

    aws_region: str = "us-east-1"
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None

    index_name: str = "by_native_id"
    pdf_table: str = "harvested-pdf"
    grobid_table: str = "grobid-xml"

    pdf_bucket: str = "openalex-pdfs"
    grobid_bucket: str = "openalex-grobid-xml"
    pdf_backup_bucket: str = "openalex-harvested-pdfs"
    grobid_backup_bucket: str = "openalex-harvested-grobid-xml"

    primary_store: str = "r2"
    r2_endpoint_url: Optional[str] = None
    r2_access_key_id: Optional[str] = None
    r2_secret_access_key: Optional[str] = None
    disk_store_root: str = "data/artifacts"

    api_keys_db: str = "data/api_keys.db"

    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls, env_path: Optional[Path] = ENV_PATH) -> "GatewayConfig":
        """Load .env (if present) and build a config from the environment."""
        if env_path is not None:
            load_dotenv(env_path, override=False)

        return cls(
            openalex_api_url=os.getenv("OPENALEX_API_URL", cls.openalex_api_url).rstrip("/"),
            catalog_cache_ttl=int(os.getenv("CATALOG_CACHE_TTL", str(cls.catalog_cache_ttl))),
            http_timeout_s=float(os.getenv("HTTP_TIMEOUT_SECONDS", str(cls.http_timeout_s))),
            aws_region=os.getenv("AWS_REGION", cls.aws_region),
            aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
            aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
            index_name=os.getenv("INDEX_NAME", cls.index_name),
            pdf_table=os.getenv("PDF_TABLE", cls.pdf_table),
            grobid_table=os.getenv("GROBID_TABLE", cls.grobid_table),
            pdf_bucket=os.getenv("PDF_BUCKET", cls.pdf_bucket),
            grobid_bucket=os.getenv("GROBID_BUCKET", cls.grobid_bucket),
            pdf_backup_bucket=os.getenv("PDF_BACKUP_BUCKET", cls.pdf_backup_bucket),
            grobid_backup_bucket=os.getenv("GROBID_BACKUP_BUCKET", cls.grobid_backup_bucket),
            primary_store=os.getenv("PRIMARY_STORE", cls.primary_store).lower(),
            r2_endpoint_url=os.getenv("R2_ENDPOINT_URL"),
            r2_access_key_id=os.getenv("R2_ACCESS_KEY_ID"),
            r2_secret_access_key=os.getenv("R2_SECRET_ACCESS_KEY"),
            disk_store_root=os.getenv("DISK_STORE_ROOT", cls.disk_store_root),
            api_keys_db=os.getenv("API_KEYS_DB", cls.api_keys_db),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
            log_file=os.getenv("LOG_FILE") or None,
        )

    def table_for(self, kind: ArtifactKind) -> str:
        return self.grobid_table if kind is ArtifactKind.PARSED_PDF else self.pdf_table

    def primary_bucket_for(self, kind: ArtifactKind) -> str:
        return self.grobid_bucket if kind is ArtifactKind.PARSED_PDF else self.pdf_bucket

    def backup_bucket_for(self, kind: ArtifactKind) -> str:
        return self.grobid_backup_bucket if kind is ArtifactKind.PARSED_PDF else self.pdf_backup_bucket
