from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional, Sequence
from uuid import UUID

from access_codes.domain.entities import CodeRecord
from access_codes.domain.errors import StoreFault, UninitializedStore
from access_codes.domain.ports.code_store import CodeStorePort
from access_codes.domain.services import normalize_code, utc_now

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_NAME = "access_codes.db"

CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS access_codes (
    actor_id     TEXT PRIMARY KEY,
    code         TEXT NOT NULL UNIQUE COLLATE NOCASE,
    created_at   INTEGER NOT NULL,
    validated_at INTEGER
)
"""

UPSERT_SQL = """
INSERT INTO access_codes (actor_id, code, created_at, validated_at)
VALUES (?, ?, ?, NULL)
ON CONFLICT(actor_id) DO UPDATE SET
    code = excluded.code,
    created_at = excluded.created_at,
    validated_at = NULL
"""

SELECT_COLUMNS = "SELECT actor_id, code, created_at, validated_at FROM access_codes"

MARK_VALIDATED_SQL = """
UPDATE access_codes
SET validated_at = ?
WHERE actor_id = ? AND validated_at IS NULL
"""

MARK_VALIDATED_FOR_CODE_SQL = """
UPDATE access_codes
SET validated_at = ?
WHERE actor_id = ? AND code = ? AND validated_at IS NULL
"""


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_epoch_millis(value: datetime) -> int:
    return (value - EPOCH) // timedelta(milliseconds=1)


def from_epoch_millis(value: int) -> datetime:
    seconds, millis = divmod(value, 1000)
    return datetime.fromtimestamp(seconds, tz=timezone.utc) + timedelta(milliseconds=millis)


def row_to_record(operation: str, row: Sequence) -> CodeRecord:
    """Map a stored row; a row that does not decode is a StoreFault."""
    try:
        actor_id, code, created_at, validated_at = row
        return CodeRecord(
            actor_id=UUID(str(actor_id)),
            code=str(code),
            created_at=from_epoch_millis(int(created_at)),
            validated_at=(
                from_epoch_millis(int(validated_at)) if validated_at is not None else None
            ),
        )
    except (ValueError, TypeError, OverflowError, OSError) as exc:
        raise StoreFault(operation, "corrupt row", exc) from exc


class SqliteCodeStore(CodeStorePort):
    """
    SQLite implementation of CodeStorePort.

    One connection per instance, shared across threads. Every public method
    runs under the instance lock, so find/upsert/mark_validated never interleave.
    """

    def __init__(
        self,
        data_dir: Path | str,
        database_name: str | None = None,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        name = database_name if database_name and database_name.strip() else None
        self._path = Path(data_dir) / (name or DEFAULT_DATABASE_NAME)
        self._clock = clock
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None

    @classmethod
    def from_path(
        cls, path: Path | str, *, clock: Callable[[], datetime] = utc_now
    ) -> "SqliteCodeStore":
        p = Path(path)
        return cls(p.parent, p.name, clock=clock)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def initialized(self) -> bool:
        return self._conn is not None

    def initialize(self) -> None:
        with self._lock:
            if self._conn is not None:
                return
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(
                    str(self._path), check_same_thread=False, isolation_level=None
                )
                try:
                    conn.execute("PRAGMA journal_mode=WAL")
                    conn.execute("PRAGMA foreign_keys=ON")
                    conn.execute(CREATE_TABLE_SQL)
                except sqlite3.Error:
                    conn.close()
                    raise
            except (sqlite3.Error, OSError) as exc:
                raise StoreFault("initialize", "unable to open code store", exc) from exc
            self._conn = conn
        logger.info("code store ready", extra={"path": str(self._path.absolute())})

    def upsert(self, actor_id: UUID, code: str) -> CodeRecord:
        record = CodeRecord(
            actor_id=actor_id,
            code=normalize_code(code),
            created_at=from_epoch_millis(to_epoch_millis(self._clock())),
        )
        with self._lock:
            conn = self._connection("upsert")
            try:
                conn.execute(
                    UPSERT_SQL,
                    (
                        str(actor_id),
                        record.code,
                        to_epoch_millis(record.created_at),
                    ),
                )
            except sqlite3.Error as exc:
                raise StoreFault("upsert", f"unable to store code for {actor_id}", exc) from exc
        return record

    def find_by_actor(self, actor_id: UUID) -> Optional[CodeRecord]:
        with self._lock:
            conn = self._connection("find_by_actor")
            try:
                row = conn.execute(
                    f"{SELECT_COLUMNS} WHERE actor_id = ?", (str(actor_id),)
                ).fetchone()
            except sqlite3.Error as exc:
                raise StoreFault("find_by_actor", f"lookup failed for {actor_id}", exc) from exc
        return row_to_record("find_by_actor", row) if row else None

    def find_by_code(self, code: str) -> Optional[CodeRecord]:
        with self._lock:
            conn = self._connection("find_by_code")
            try:
                row = conn.execute(
                    f"{SELECT_COLUMNS} WHERE code = ?", (normalize_code(code),)
                ).fetchone()
            except sqlite3.Error as exc:
                raise StoreFault("find_by_code", "lookup by code failed", exc) from exc
        return row_to_record("find_by_code", row) if row else None

    def list_active(self) -> Sequence[CodeRecord]:
        with self._lock:
            conn = self._connection("list_active")
            try:
                rows = conn.execute(
                    f"{SELECT_COLUMNS} WHERE validated_at IS NULL "
                    "ORDER BY created_at ASC, rowid ASC"
                ).fetchall()
            except sqlite3.Error as exc:
                raise StoreFault("list_active", "unable to list active codes", exc) from exc
        return tuple(row_to_record("list_active", r) for r in rows)

    def mark_validated(
        self, actor_id: UUID, when: datetime, *, code: Optional[str] = None
    ) -> bool:
        if code is None:
            sql, params = MARK_VALIDATED_SQL, (to_epoch_millis(when), str(actor_id))
        else:
            sql = MARK_VALIDATED_FOR_CODE_SQL
            params = (to_epoch_millis(when), str(actor_id), normalize_code(code))
        with self._lock:
            conn = self._connection("mark_validated")
            try:
                cur = conn.execute(sql, params)
            except sqlite3.Error as exc:
                raise StoreFault(
                    "mark_validated", f"unable to mark code validated for {actor_id}", exc
                ) from exc
            return cur.rowcount > 0

    def delete(self, actor_id: UUID) -> bool:
        with self._lock:
            conn = self._connection("delete")
            try:
                cur = conn.execute(
                    "DELETE FROM access_codes WHERE actor_id = ?", (str(actor_id),)
                )
            except sqlite3.Error as exc:
                raise StoreFault("delete", f"unable to delete code for {actor_id}", exc) from exc
            return cur.rowcount > 0

    def close(self) -> None:
        with self._lock:
            conn, self._conn = self._conn, None
            if conn is None:
                return
            try:
                conn.close()
            except sqlite3.Error as exc:
                raise StoreFault("close", "unable to close code store", exc) from exc
        logger.info("code store closed", extra={"path": str(self._path.absolute())})

    def _connection(self, operation: str) -> sqlite3.Connection:
        # caller holds self._lock
        if self._conn is None:
            raise UninitializedStore(operation)
        return self._conn
