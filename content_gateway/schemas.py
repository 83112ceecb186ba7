"""
Pydantic schemas for data validation.
Defines the narrow view of the OpenAlex work record and the metadata-mode
response document.
"""

from pydantic import BaseModel, ConfigDict
from typing import Optional
from enum import Enum


class ArtifactKind(str, Enum):
    """Artifact requested by the final path segment."""
    PDF = "pdf"
    PARSED_PDF = "parsed-pdf"

    @property
    def extension(self) -> str:
        return ".xml.gz" if self is ArtifactKind.PARSED_PDF else ".pdf"

    @property
    def content_type(self) -> str:
        return "application/gzip" if self is ArtifactKind.PARSED_PDF else "application/pdf"

    @property
    def label(self) -> str:
        return "Grobid XML" if self is ArtifactKind.PARSED_PDF else "PDF"


class BestOaLocation(BaseModel):
    """Only the composite location id is used; everything else is ignored."""
    model_config = ConfigDict(extra="ignore")

    id: str


class CatalogWork(BaseModel):
    """OpenAlex work restricted to ?select=id,best_oa_location."""
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    best_oa_location: Optional[BestOaLocation] = None


class ArtifactMetadata(BaseModel):
    """Response body for ?json=true."""
    work_id: str
    canonical_id: str
    work_api: Optional[str] = None
    best_oa_location_id: str
    native_id: str
    native_id_namespace: str
    mapping_found_in_dynamodb: bool
    file_uuid: Optional[str] = None
    file_key: Optional[str] = None
    in_r2: bool = False
    in_s3: bool = False
    download_url: Optional[str] = None
