from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from access_codes.domain.entities import CodeRecord, OutcomeStatus


class IssuedCodeOut(BaseModel):
    actor_id: UUID
    code: str = Field(..., description="Code the actor must present")


class CodeRecordOut(BaseModel):
    actor_id: UUID
    code: str
    created_at: datetime
    validated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: CodeRecord) -> "CodeRecordOut":
        return cls(
            actor_id=record.actor_id,
            code=record.code,
            created_at=record.created_at,
            validated_at=record.validated_at,
        )


class ValidateOutcomeOut(BaseModel):
    status: OutcomeStatus
    actor_id: Optional[UUID] = None
    already_member: bool = False
    message: Optional[str] = None


class RevokedOut(BaseModel):
    deleted: bool


class MembershipOut(BaseModel):
    actor_id: UUID
    member: bool


class AdmissionOut(BaseModel):
    allowed: bool
    code: Optional[str] = None
