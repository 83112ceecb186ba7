"""
Identifier handling: work id normalization and location reference parsing.

A work is addressed either by its OpenAlex short id (W123...) or directly by a
DOI. DOIs skip the catalog: they already are the native id of a ``doi:``
location reference.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse
import re

from .errors import InvalidIdentifier, MalformedUpstreamReference

WORK_ID_RE = re.compile(r"^W\d+$", re.IGNORECASE)
WORK_URL_PATH_RE = re.compile(r"/(W\d+)$", re.IGNORECASE)

# prefix -> location reference scheme
FOREIGN_PREFIXES = {
    "10.": "doi",
}
DOI_URL_HOSTS = {"doi.org", "dx.doi.org", "www.doi.org"}


@dataclass(frozen=True)
class WorkIdentifier:
    """
    A normalized work identifier.

    Attributes:
        raw: The path segment as received
        value: Canonical W-id (uppercased) or the bare foreign identifier
        scheme: Location scheme for foreign identifiers ("doi"), else None
    """
    raw: str
    value: str
    scheme: Optional[str] = None

    @property
    def is_foreign(self) -> bool:
        return self.scheme is not None


@dataclass(frozen=True)
class LocationReference:
    """A best_oa_location id split into its scheme and native id."""
    scheme: str
    native_id: str

    def __str__(self) -> str:
        return f"{self.scheme}:{self.native_id}"


def _strip_doi_wrapper(value: str) -> str:
    """Reduce doi:10.x and https://doi.org/10.x forms to the bare 10.x DOI."""
    if value.lower().startswith("doi:"):
        return value[4:]
    parsed = urlparse(value)
    if parsed.scheme in ("http", "https") and parsed.netloc.lower() in DOI_URL_HOSTS:
        return parsed.path.lstrip("/")
    return value


def normalize_work_id(raw: str) -> WorkIdentifier:
    """
    Normalize a raw path segment into a WorkIdentifier.

    Rules, in order:
        1. Already a short id (w123 / W123) -> uppercased
        2. A URL whose last path segment is a short id -> that segment, uppercased
        3. A foreign identifier (DOI) -> passed through with its scheme
        4. Anything else -> InvalidIdentifier

    Normalizing an already-normalized value returns it unchanged.
    """
    trimmed = (raw or "").strip()
    if not trimmed:
        raise InvalidIdentifier(work_id_input=raw)

    if WORK_ID_RE.match(trimmed):
        return WorkIdentifier(raw=raw, value=trimmed.upper())

    parsed = urlparse(trimmed)
    if parsed.scheme and parsed.netloc:
        match = WORK_URL_PATH_RE.search(parsed.path)
        if match:
            return WorkIdentifier(raw=raw, value=match.group(1).upper())

    candidate = _strip_doi_wrapper(trimmed)
    for prefix, scheme in FOREIGN_PREFIXES.items():
        if candidate.startswith(prefix):
            return WorkIdentifier(raw=raw, value=candidate, scheme=scheme)

    raise InvalidIdentifier(work_id_input=raw)


def parse_location_reference(location_id: str, **context) -> LocationReference:
    """
    Split "scheme:native_id" on its first colon.

    The colon must exist and be neither the first nor the last character;
    e.g. "doi:10.1063/1.5" -> ("doi", "10.1063/1.5"),
    "pmh:oai:arXiv.org:1" -> ("pmh", "oai:arXiv.org:1").

    Raises:
        MalformedUpstreamReference: the reference does not have that shape
    """
    colon = location_id.find(":")
    if colon <= 0 or colon == len(location_id) - 1:
        raise MalformedUpstreamReference(best_oa_location_id=location_id, **context)
    return LocationReference(scheme=location_id[:colon], native_id=location_id[colon + 1:])
