"""
storage/sql.py -- SQLAlchemy Core implementation of the key-value backend.

One table, one row per key. The stores above write whole JSON collections
as single values, so there is nothing relational here: this is the durable
stand-in for a browser profile's local storage.

SQLAlchemy keeps the backend database-agnostic: swapping the default SQLite
file for PostgreSQL is a connection string change. All queries use bound
parameters.

Errors: every SQLAlchemyError is re-raised as storage.backend.StorageError so
callers depend on one exception type, not on the driver.

Usage:
    backend = SQLBackend()                               # SQLite file default
    backend = SQLBackend("sqlite:///:memory:")           # throwaway
    backend.set("audits_data", "[...]")
    backend.close()
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, delete, event, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from storage.backend import StorageError

logger = logging.getLogger("auditdesk.storage")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'auditdesk.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_kv_store = Table(
    "kv_store",
    _metadata,
    Column("key", String(255), primary_key=True),
    Column("value", Text, nullable=False),
    Column("updated_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers never block behind a writer.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Backend
# ---------------------------------------------------------------------------


class SQLBackend:
    """Key-value backend over a single SQL table."""

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        try:
            self.engine: Engine = create_engine(db_url, connect_args=connect_args)
            if db_url.startswith("sqlite") and ":memory:" not in db_url:
                event.listen(self.engine, "connect", _set_wal_mode)
            _metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StorageError(f"cannot open storage at {db_url}: {exc}") from exc

    def get(self, key: str) -> Optional[str]:
        try:
            with self.engine.connect() as conn:
                return conn.execute(select(_kv_store.c.value).where(_kv_store.c.key == key)).scalar()
        except SQLAlchemyError as exc:
            raise StorageError(f"read of {key!r} failed: {exc}") from exc

    def set(self, key: str, value: str) -> None:
        """Insert or replace the value stored under key.

        UPDATE first, INSERT when no row matched: portable across SQLite and
        PostgreSQL without dialect-specific upsert syntax.
        """
        stamp = _now_iso()
        try:
            with self.engine.begin() as conn:
                result = conn.execute(
                    update(_kv_store).where(_kv_store.c.key == key).values(value=value, updated_at=stamp)
                )
                if result.rowcount == 0:
                    conn.execute(_kv_store.insert().values(key=key, value=value, updated_at=stamp))
        except SQLAlchemyError as exc:
            raise StorageError(f"write of {key!r} failed: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            with self.engine.begin() as conn:
                conn.execute(delete(_kv_store).where(_kv_store.c.key == key))
        except SQLAlchemyError as exc:
            raise StorageError(f"delete of {key!r} failed: {exc}") from exc

    def keys(self) -> list[str]:
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(select(_kv_store.c.key).order_by(_kv_store.c.key)).fetchall()
        except SQLAlchemyError as exc:
            raise StorageError(f"key listing failed: {exc}") from exc
        return [row[0] for row in rows]

    def close(self) -> None:
        self.engine.dispose()
        logger.debug("SQL backend closed")
