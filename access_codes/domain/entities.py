from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal
from uuid import UUID

OutcomeStatus = Literal["success", "not_found", "already_validated", "error"]


@dataclass(frozen=True)
class CodeRecord:
    actor_id: UUID
    code: str
    created_at: datetime
    validated_at: datetime | None = None

    @property
    def is_validated(self) -> bool:
        return self.validated_at is not None


@dataclass(frozen=True)
class ValidateOutcome:
    """
    Result of presenting a code.

    - success: the record moved from issued to validated; already_member tells
      whether the actor was present in the membership set beforehand.
    - already_validated: the record exists but was consumed earlier.
    - not_found: nothing matches the normalized code.
    - error: the store transition or the membership step failed.
    """

    status: OutcomeStatus
    actor_id: UUID | None = None
    already_member: bool = False
    message: str | None = None

    @classmethod
    def success(cls, actor_id: UUID, already_member: bool) -> "ValidateOutcome":
        return cls(status="success", actor_id=actor_id, already_member=already_member)

    @classmethod
    def not_found(cls) -> "ValidateOutcome":
        return cls(status="not_found", message="code not found")

    @classmethod
    def already_validated(cls, actor_id: UUID) -> "ValidateOutcome":
        return cls(
            status="already_validated",
            actor_id=actor_id,
            message="code already validated",
        )

    @classmethod
    def error(cls, actor_id: UUID | None, message: str) -> "ValidateOutcome":
        return cls(status="error", actor_id=actor_id, message=message)


@dataclass(frozen=True)
class Admission:
    allowed: bool
    code: str | None = None
