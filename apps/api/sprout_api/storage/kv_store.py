"""Durable key-value storage for growth timer overrides and the completion log."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Optional, Union
import json
import logging
import os
import sqlite3

from packages.sprout_core.growth.persistence import KeyValueStore


logger = logging.getLogger("sprout_api.storage.kv_store")
WORKSPACE_ROOT = Path(__file__).resolve().parents[4]


class SQLiteKeyValueStore(KeyValueStore):
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def ping(self) -> None:
        with self._connect() as conn:
            conn.execute("SELECT 1").fetchone()

    def init_db(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_entries (
                  key TEXT PRIMARY KEY,
                  value_json TEXT NOT NULL,
                  updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
                )
                """
            )

    def get(self, key: str, default: Any = None) -> Any:
        self.init_db()
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value_json FROM kv_entries WHERE key = ?",
                (key,),
            ).fetchone()
        if not row:
            return default
        return json.loads(row["value_json"])

    def set(self, key: str, value: Any) -> None:
        self.init_db()
        payload = json.dumps(value, separators=(",", ":"), ensure_ascii=True)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO kv_entries (key, value_json, updated_at)
                VALUES (?, ?, (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')))
                ON CONFLICT(key) DO UPDATE SET
                  value_json = excluded.value_json,
                  updated_at = (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
                """,
                (key, payload),
            )


class PostgresKeyValueStore(KeyValueStore):
    def __init__(self, database_url: str) -> None:
        self.database_url = database_url
        self._ensure_driver()

    @staticmethod
    def _ensure_driver() -> None:
        try:
            import psycopg  # noqa: F401
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(
                "Postgres backend requires `psycopg`. Install it with: pip install psycopg[binary]"
            ) from exc

    def _connect(self):
        import psycopg
        from psycopg.rows import dict_row

        return psycopg.connect(self.database_url, row_factory=dict_row)

    def ping(self) -> None:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1")

    def init_db(self) -> None:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    CREATE TABLE IF NOT EXISTS kv_entries (
                      key TEXT PRIMARY KEY,
                      value_json JSONB NOT NULL,
                      updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                    )
                    """
                )

    def get(self, key: str, default: Any = None) -> Any:
        self.init_db()
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT value_json::text AS value_json FROM kv_entries WHERE key = %s", (key,))
                row = cur.fetchone()
        if not row:
            return default
        return json.loads(row["value_json"])

    def set(self, key: str, value: Any) -> None:
        self.init_db()
        payload = json.dumps(value, separators=(",", ":"), ensure_ascii=True)
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO kv_entries (key, value_json)
                    VALUES (%s, %s::jsonb)
                    ON CONFLICT(key) DO UPDATE SET
                      value_json = EXCLUDED.value_json,
                      updated_at = NOW()
                    """,
                    (key, payload),
                )


def _resolve_sqlite_path(database_url: Optional[str]) -> Path:
    if database_url and database_url.startswith("sqlite:///"):
        raw = database_url[len("sqlite:///") :]
        p = Path(raw)
        if not p.is_absolute():
            p = (WORKSPACE_ROOT / p).resolve()
        return p

    raw = os.environ.get("SPROUT_DB_PATH", str(WORKSPACE_ROOT / "data" / "sprout.db"))
    p = Path(raw)
    if not p.is_absolute():
        p = (WORKSPACE_ROOT / p).resolve()
    return p


def _database_url() -> Optional[str]:
    return os.environ.get("DATABASE_URL")


@lru_cache(maxsize=1)
def _backend() -> Union[SQLiteKeyValueStore, PostgresKeyValueStore]:
    database_url = _database_url()
    if database_url and database_url.startswith(("postgres://", "postgresql://")):
        logger.info("[STORAGE] Using Postgres key-value backend")
        return PostgresKeyValueStore(database_url)
    path = _resolve_sqlite_path(database_url)
    logger.info("[STORAGE] Using SQLite key-value backend: path=%s", path)
    return SQLiteKeyValueStore(path)


def reset_backend_cache_for_tests() -> None:
    _backend.cache_clear()


def init_db() -> None:
    _backend().init_db()


def ping() -> None:
    _backend().ping()


def get_store() -> KeyValueStore:
    return _backend()
