from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable, Optional, Sequence
from uuid import UUID

import psycopg
from psycopg_pool import ConnectionPool, PoolTimeout

from access_codes.domain.entities import CodeRecord
from access_codes.domain.errors import StoreFault, UninitializedStore
from access_codes.domain.ports.code_store import CodeStorePort
from access_codes.domain.services import normalize_code, utc_now
from access_codes.infrastructure.db.sqlite_store import (
    from_epoch_millis,
    row_to_record,
    to_epoch_millis,
)

logger = logging.getLogger(__name__)

CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS access_codes (
    actor_id     text PRIMARY KEY,
    code         text NOT NULL UNIQUE,
    created_at   bigint NOT NULL,
    validated_at bigint
);
"""

UPSERT_SQL = """
INSERT INTO access_codes (actor_id, code, created_at, validated_at)
VALUES (%s, %s, %s, NULL)
ON CONFLICT (actor_id) DO UPDATE
    SET code = EXCLUDED.code,
        created_at = EXCLUDED.created_at,
        validated_at = NULL
"""

SELECT_COLUMNS = "SELECT actor_id, code, created_at, validated_at FROM access_codes"


class PgCodeStore(CodeStorePort):
    """
    Postgres implementation of CodeStorePort.

    NOTE:
    - Each operation borrows a pooled connection and runs in its own transaction.
    - Codes are stored normalized, so plain equality is case-insensitive for callers.
    - The instance lock keeps the same serialization contract as the SQLite store.
    """

    def __init__(
        self,
        pool: ConnectionPool,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._pool = pool
        self._clock = clock
        self._lock = threading.Lock()
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        with self._lock:
            if self._initialized:
                return
            try:
                self._pool.open(wait=True)
                with self._pool.connection() as conn:
                    conn.execute(CREATE_TABLE_SQL)
            except (psycopg.Error, PoolTimeout) as exc:
                self._pool.close()
                raise StoreFault("initialize", "unable to open code store", exc) from exc
            self._initialized = True
        logger.info("code store ready", extra={"backend": "postgres"})

    def upsert(self, actor_id: UUID, code: str) -> CodeRecord:
        record = CodeRecord(
            actor_id=actor_id,
            code=normalize_code(code),
            created_at=from_epoch_millis(to_epoch_millis(self._clock())),
        )
        self._execute(
            "upsert",
            UPSERT_SQL,
            (str(actor_id), record.code, to_epoch_millis(record.created_at)),
        )
        return record

    def find_by_actor(self, actor_id: UUID) -> Optional[CodeRecord]:
        rows = self._query(
            "find_by_actor", f"{SELECT_COLUMNS} WHERE actor_id = %s", (str(actor_id),)
        )
        return row_to_record("find_by_actor", rows[0]) if rows else None

    def find_by_code(self, code: str) -> Optional[CodeRecord]:
        rows = self._query(
            "find_by_code", f"{SELECT_COLUMNS} WHERE code = %s", (normalize_code(code),)
        )
        return row_to_record("find_by_code", rows[0]) if rows else None

    def list_active(self) -> Sequence[CodeRecord]:
        rows = self._query(
            "list_active",
            f"{SELECT_COLUMNS} WHERE validated_at IS NULL ORDER BY created_at ASC",
            (),
        )
        return tuple(row_to_record("list_active", r) for r in rows)

    def mark_validated(
        self, actor_id: UUID, when: datetime, *, code: Optional[str] = None
    ) -> bool:
        sql = """
        UPDATE access_codes
        SET validated_at = %s
        WHERE actor_id = %s AND validated_at IS NULL
        """
        params: tuple = (to_epoch_millis(when), str(actor_id))
        if code is not None:
            sql += " AND code = %s"
            params += (normalize_code(code),)
        return self._execute("mark_validated", sql, params) > 0

    def delete(self, actor_id: UUID) -> bool:
        return (
            self._execute(
                "delete", "DELETE FROM access_codes WHERE actor_id = %s", (str(actor_id),)
            )
            > 0
        )

    def close(self) -> None:
        with self._lock:
            if not self._initialized:
                return
            self._initialized = False
            self._pool.close()
        logger.info("code store closed", extra={"backend": "postgres"})

    def _execute(self, operation: str, sql: str, params: tuple) -> int:
        with self._lock:
            self._ensure_initialized(operation)
            try:
                with self._pool.connection() as conn:
                    with conn.transaction():
                        cur = conn.execute(sql, params)
                        return cur.rowcount
            except (psycopg.Error, PoolTimeout) as exc:
                raise StoreFault(operation, str(exc), exc) from exc

    def _query(self, operation: str, sql: str, params: tuple) -> list[tuple]:
        with self._lock:
            self._ensure_initialized(operation)
            try:
                with self._pool.connection() as conn:
                    with conn.cursor() as cur:
                        cur.execute(sql, params)
                        return list(cur.fetchall())
            except (psycopg.Error, PoolTimeout) as exc:
                raise StoreFault(operation, str(exc), exc) from exc

    def _ensure_initialized(self, operation: str) -> None:
        if not self._initialized:
            raise UninitializedStore(operation)
