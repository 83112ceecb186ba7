"""
API Key Authorization

Downloads require a valid, unexpired API key whose account has a credit card
on file. The key comes from the ``api_key`` query parameter or a
``Authorization: Bearer <key>`` header; the query parameter wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Mapping, Optional, Union
import asyncio
import logging

from .clients.key_store import SqliteKeyStore

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class AuthContext:
    """Outcome of the authorization check for one request."""
    valid: bool
    has_payment_eligibility: bool = False
    error: Optional[str] = None


def extract_api_key(query_params: Mapping[str, str], headers: Mapping[str, str]) -> Optional[str]:
    """Return the presented API key, or None if there is none."""
    api_key = query_params.get("api_key")
    if api_key:
        return api_key

    auth_header = headers.get("authorization")
    if auth_header and auth_header.startswith(BEARER_PREFIX):
        return auth_header[len(BEARER_PREFIX):] or None
    return None


def _parse_expiry(expires_at: Union[str, int, float]) -> datetime:
    # DATETIME has NUMERIC affinity: all-digit values come back as epoch seconds
    if isinstance(expires_at, (int, float)):
        return datetime.fromtimestamp(expires_at, timezone.utc)
    # SQLite DATETIME text ("2025-01-01 00:00:00") or ISO 8601; naive means UTC
    parsed = datetime.fromisoformat(expires_at.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


async def check_api_key(
    api_key: Optional[str],
    store: SqliteKeyStore,
    now: Optional[datetime] = None,
) -> AuthContext:
    """
    Validate an API key against the key store.

    Never raises: storage faults come back as a distinct "Database error".
    """
    if not api_key:
        return AuthContext(valid=False)

    try:
        record = await asyncio.to_thread(store.get, api_key)
    except Exception as e:
        logger.error(f"[AUTH] Error checking API key: {e}")
        return AuthContext(valid=False, error="Database error")

    if record is None:
        return AuthContext(valid=False, error="API key not found")

    if record.expires_at:
        try:
            expires_at = _parse_expiry(record.expires_at)
        except (ValueError, OverflowError, OSError):
            logger.warning(f"[AUTH] Unparseable expires_at value: {record.expires_at!r}")
            return AuthContext(valid=False, error=f"API key has an invalid expiry ({record.expires_at})")

        if expires_at <= (now or datetime.now(timezone.utc)):
            return AuthContext(valid=False, error=f"API key expired on {record.expires_at}")

    return AuthContext(valid=True, has_payment_eligibility=record.credit_card_on_file)
