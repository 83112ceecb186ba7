"""
API Key Store: SQLite-backed credential and usage records.

The api_keys table carries quota, expiry, account and payment columns; only
expiry and the payment flag are consulted when authorizing a download.
api_usage holds one counter row per (api_key, day).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union
import logging
import sqlite3

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS api_keys (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  api_key TEXT,

  max_per_second INTEGER DEFAULT 10,
  max_per_day INTEGER DEFAULT 10000,

  email TEXT,
  name TEXT,
  organization TEXT,

  is_academic BOOLEAN DEFAULT FALSE,
  premium_domain TEXT,

  created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
  expires_at DATETIME,

  notes TEXT,

  credit_card_on_file BOOLEAN DEFAULT FALSE
);
CREATE INDEX IF NOT EXISTS idx_api_key ON api_keys(api_key);

CREATE TABLE IF NOT EXISTS api_usage (
  api_key TEXT NOT NULL,
  day DATE NOT NULL,
  api_usage_content INTEGER DEFAULT 0,
  PRIMARY KEY (api_key, day)
);
CREATE INDEX IF NOT EXISTS idx_api_usage_day ON api_usage(day);
"""


@dataclass(frozen=True)
class KeyRecord:
    """The columns of an api_keys row needed for authorization."""
    api_key: str
    credit_card_on_file: bool
    expires_at: Optional[Union[str, int, float]] = None


class SqliteKeyStore:
    """
    Keyed lookups against the api_keys / api_usage tables.

    A fresh connection is opened per call; callers run these methods in a
    worker thread.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def initialize(self) -> None:
        """Create tables and indexes if they do not exist yet."""
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.executescript(SCHEMA)
        conn.close()
        logger.info(f"[KEYS] Schema ready at {self.db_path}")

    def get(self, api_key: str) -> Optional[KeyRecord]:
        """
        Fetch the record for an API key.

        Returns:
            KeyRecord, or None if the key is unknown

        Raises:
            sqlite3.Error: on any storage fault
        """
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT credit_card_on_file, expires_at FROM api_keys WHERE api_key = ?",
                (api_key,),
            ).fetchone()
        finally:
            conn.close()

        if row is None:
            return None
        return KeyRecord(
            api_key=api_key,
            credit_card_on_file=bool(row["credit_card_on_file"]),
            expires_at=row["expires_at"],
        )

    def add(
        self,
        api_key: str,
        *,
        credit_card_on_file: bool = False,
        expires_at: Optional[str] = None,
        **columns: Any,
    ) -> None:
        """Insert an api_keys row (admin tooling and tests)."""
        values: Dict[str, Any] = {
            "api_key": api_key,
            "credit_card_on_file": credit_card_on_file,
            "expires_at": expires_at,
            **columns,
        }
        names = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        with self._connect() as conn:
            conn.execute(f"INSERT INTO api_keys ({names}) VALUES ({placeholders})", tuple(values.values()))
        conn.close()

    def record_content_usage(self, api_key: str, day: Optional[date] = None) -> None:
        """Increment today's content-download counter for a key."""
        day = day or datetime.now(timezone.utc).date()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO api_usage (api_key, day, api_usage_content) VALUES (?, ?, 1)
                ON CONFLICT (api_key, day) DO UPDATE SET api_usage_content = api_usage_content + 1
                """,
                (api_key, day.isoformat()),
            )
        conn.close()

    def get_content_usage(self, api_key: str, day: Optional[date] = None) -> int:
        """Return the content-download counter for a key and day (0 if none)."""
        day = day or datetime.now(timezone.utc).date()
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT api_usage_content FROM api_usage WHERE api_key = ? AND day = ?",
                (api_key, day.isoformat()),
            ).fetchone()
        finally:
            conn.close()
        return int(row["api_usage_content"]) if row else 0
