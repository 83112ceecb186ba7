"""
Response Assembly

Two modes per request:
- metadata (?json=true): JSON document describing every resolved value
- stream: the artifact bytes as an attachment

Errors are JSON objects in metadata mode and bare messages otherwise.
"""

from __future__ import annotations

from typing import Any, Dict, Optional
from urllib.parse import quote
import re

from starlette.background import BackgroundTask
from starlette.datastructures import URL
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from starlette.concurrency import iterate_in_threadpool

from .errors import GatewayError
from .files.backup_store import BackupObject
from .files.tiered_retrieval import RetrievedArtifact, TierAvailability
from .pipeline import Resolution
from .schemas import ArtifactMetadata

UNSAFE_FILENAME_CHARS = re.compile(r'[/\\:*?"<>|]')
NO_STORE = "no-store"
PRIVATE_NO_STORE = "private, no-store"


def sanitize_filename(name: str) -> str:
    """Replace each of / \\ : * ? " < > | with an underscore."""
    return UNSAFE_FILENAME_CHARS.sub("_", name)


def content_disposition(filename: str) -> str:
    """attachment header with both a quoted and an RFC 5987 filename."""
    # plain filename= must stay ASCII; the extended parameter carries the real name
    fallback = "".join(c if ord(c) < 128 else "_" for c in filename)
    encoded = quote(filename, safe="!'()*")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{encoded}"


def json_response(status_code: int, data: Dict[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=data, headers={"Cache-Control": NO_STORE})


def error_response(want_json: bool, error: GatewayError):
    """Render a GatewayError for the request mode."""
    if want_json:
        return json_response(error.status_code, error.to_dict())
    return PlainTextResponse(error.message, status_code=error.status_code, headers={"Cache-Control": NO_STORE})


def download_url(request_url: URL) -> str:
    """The same endpoint without the metadata flag."""
    return str(request_url.remove_query_params("json"))


def metadata_document(
    resolution: Resolution,
    availability: Optional[TierAvailability],
    request_url: URL,
) -> ArtifactMetadata:
    descriptor = resolution.descriptor
    available = availability is not None and availability.available
    return ArtifactMetadata(
        work_id=resolution.work.raw,
        canonical_id=resolution.work.value,
        work_api=resolution.work_api,
        best_oa_location_id=resolution.location_id,
        native_id=resolution.reference.native_id,
        native_id_namespace=resolution.reference.scheme,
        mapping_found_in_dynamodb=resolution.lookup.mapping_found,
        file_uuid=resolution.lookup.uuid,
        file_key=descriptor.key if descriptor else None,
        in_r2=bool(availability and availability.in_primary),
        in_s3=bool(availability and availability.in_backup),
        download_url=download_url(request_url) if descriptor and available else None,
    )


def metadata_response(
    resolution: Resolution,
    availability: Optional[TierAvailability],
    request_url: URL,
) -> JSONResponse:
    document = metadata_document(resolution, availability, request_url)
    return json_response(200, document.model_dump())


def stream_response(artifact: RetrievedArtifact, work_id: str) -> StreamingResponse:
    """Stream the artifact; the source is closed once the body is sent."""
    filename = sanitize_filename(work_id) + artifact.descriptor.kind.extension
    headers = {
        "Content-Disposition": content_disposition(filename),
        "Cache-Control": PRIVATE_NO_STORE,
    }
    if artifact.content_length:
        headers["Content-Length"] = artifact.content_length

    if isinstance(artifact.source, BackupObject):
        body = artifact.source.aiter_bytes()
    else:
        body = iterate_in_threadpool(artifact.source.body)

    return StreamingResponse(
        body,
        status_code=200,
        media_type=artifact.content_type,
        headers=headers,
        background=BackgroundTask(artifact.aclose),
    )
