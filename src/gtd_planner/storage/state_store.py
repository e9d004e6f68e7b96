# src/gtd_planner/storage/state_store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import time
from pathlib import Path

from ..core.models import StoreSnapshot
from .codec import snapshot_from_document, snapshot_to_document

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "gtd-storage"


class StateStore:
    """
    SQLite key-value slot holding the whole GTD store as one JSON document.

    - load(): read once at startup; missing or corrupt slot (or file) -> empty default
    - save(): upsert after every commit (the caller decides how to handle errors)

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "state.sqlite3", *, key: str = DEFAULT_STORAGE_KEY) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._key = key
        try:
            self._ensure_schema()
        except sqlite3.Error:
            # load() falls back to the empty default; saves keep failing loudly
            logger.exception("State database %s is unusable", self._db_path)
        else:
            logger.info("StateStore ready db=%s key=%s", self._db_path, self._key)

    @property
    def key(self) -> str:
        return self._key

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_slots (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    # ---- raw slot access ----

    def read_raw(self) -> str | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT value FROM kv_slots WHERE key = ?", (self._key,)).fetchone()
            return None if row is None else str(row["value"])
        finally:
            conn.close()

    def write_raw(self, value: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO kv_slots(key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (self._key, value, time.time()),
            )
            conn.commit()
        finally:
            conn.close()

    def clear(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM kv_slots WHERE key = ?", (self._key,))
            conn.commit()
        finally:
            conn.close()

    # ---- public API ----

    def load(self) -> StoreSnapshot:
        try:
            raw = self.read_raw()
        except sqlite3.Error:
            logger.exception("Failed to read state slot %s; starting empty", self._key)
            return StoreSnapshot()

        if raw is None:
            logger.info("No persisted state under key=%s; starting empty", self._key)
            return StoreSnapshot()

        try:
            doc = json.loads(raw)
        except ValueError:
            logger.warning("Persisted state under key=%s is not valid JSON; starting empty", self._key)
            return StoreSnapshot()

        snapshot = snapshot_from_document(doc)
        logger.info(
            "Loaded state key=%s tasks=%d projects=%d areas=%d tags=%d",
            self._key,
            len(snapshot.tasks),
            len(snapshot.projects),
            len(snapshot.areas),
            len(snapshot.tags),
        )
        return snapshot

    def save(self, snapshot: StoreSnapshot) -> None:
        payload = json.dumps(snapshot_to_document(snapshot), ensure_ascii=False)
        self.write_raw(payload)
        logger.debug("Saved state key=%s tasks=%d bytes=%d", self._key, len(snapshot.tasks), len(payload))
