"""
Works API Routes

GET /works/{id}/best_oa_location/pdf
GET /works/{id}/best_oa_location/parsed-pdf

{id} is an OpenAlex work id (W123, or an openalex.org URL) or a DOI. DOIs
contain slashes, so the path is split on the raw, still percent-encoded
path: send them as /works/10.1234%2Fabc/best_oa_location/pdf.
"""

import asyncio
import logging
from typing import Optional, Tuple
from urllib.parse import unquote

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from .auth import extract_api_key
from .errors import ArtifactAbsent
from .identifiers import normalize_work_id
from .pipeline import GatewayServices, authorize, resolve
from .responses import metadata_response, stream_response
from .schemas import ArtifactKind

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Works"])

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def raw_request_path(request: Request) -> str:
    """Request path before percent-decoding."""
    raw = request.scope.get("raw_path")
    if not raw:
        return request.url.path
    return raw.split(b"?", 1)[0].decode("latin-1")


def parse_works_path(raw_path: str) -> Optional[Tuple[str, ArtifactKind]]:
    """
    Match /works/{id}/best_oa_location/{kind}.

    Returns:
        (decoded id segment, kind), or None for any other path shape
    """
    parts = raw_path.lstrip("/").split("/")
    if len(parts) != 4 or parts[0] != "works" or parts[2] != "best_oa_location":
        return None
    try:
        kind = ArtifactKind(parts[3])
    except ValueError:
        return None
    return unquote(parts[1]), kind


def wants_json(request: Request) -> bool:
    return (request.query_params.get("json") or "").lower() == "true"


async def _record_usage(services: GatewayServices, api_key: str) -> None:
    try:
        await asyncio.to_thread(services.key_store.record_content_usage, api_key)
    except Exception as e:
        logger.error(f"[USAGE] Could not record download usage: {e}")


@router.api_route("/{path:path}", methods=ALL_METHODS, include_in_schema=False)
async def serve_artifact(request: Request, path: str):
    """
    Resolve a work to its harvested artifact.

    ?json=true returns the resolution metadata instead of the file.
    """
    if request.method != "GET":
        return PlainTextResponse("Method Not Allowed", status_code=405)

    raw_path = raw_request_path(request)
    parsed = parse_works_path(raw_path)
    if parsed is None:
        return PlainTextResponse("Not Found", status_code=404)
    raw_id, kind = parsed

    services: GatewayServices = request.app.state.services
    work = normalize_work_id(raw_id)

    api_key = extract_api_key(request.query_params, request.headers)
    await authorize(services, api_key)

    resolution = await resolve(services, work, kind)
    descriptor = resolution.descriptor

    if wants_json(request):
        availability = None
        if descriptor is not None:
            availability = await services.retriever.availability(descriptor)
        return metadata_response(resolution, availability, request.url.replace(path=raw_path))

    if descriptor is None:
        raise ArtifactAbsent(
            f"{kind.label} mapping not found (native_id not in DB)",
            work_id=work.value,
            native_id=resolution.reference.native_id,
        )

    artifact = await services.retriever.fetch(descriptor)
    if artifact is None:
        raise ArtifactAbsent(
            f"{kind.label} not found in R2 or S3 ({descriptor.key})",
            work_id=work.value,
            file_key=descriptor.key,
        )

    await _record_usage(services, api_key)
    return stream_response(artifact, work.value)
