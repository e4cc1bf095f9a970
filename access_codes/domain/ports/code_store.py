from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence
from uuid import UUID

from access_codes.domain.entities import CodeRecord


class CodeStorePort(Protocol):
    def initialize(self) -> None:
        """
        Open/create the backing store and its schema.
        A second call while initialized is a no-op.
        """

    def upsert(self, actor_id: UUID, code: str) -> CodeRecord:
        """
        Insert or replace the record for actor_id with a fresh code,
        created_at=now and validated_at cleared. The previous code stops resolving.
        """

    def find_by_actor(self, actor_id: UUID) -> Optional[CodeRecord]:
        """Return the record for actor_id, or None."""

    def find_by_code(self, code: str) -> Optional[CodeRecord]:
        """Return the record holding code (case-insensitive), or None."""

    def list_active(self) -> Sequence[CodeRecord]:
        """Records with validated_at unset, oldest first."""

    def mark_validated(
        self, actor_id: UUID, when: datetime, *, code: Optional[str] = None
    ) -> bool:
        """
        Set validated_at only if currently unset.
        With code given, the row must still hold that code, so a validator
        holding a stale lookup cannot consume a re-issued code.
        True if the transition happened, False if already validated, replaced or missing.
        """

    def delete(self, actor_id: UUID) -> bool:
        """Remove the record; True if one existed."""

    def close(self) -> None:
        """Release the backing resource. Safe to call more than once."""
