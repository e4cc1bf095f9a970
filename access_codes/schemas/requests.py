from uuid import UUID

from pydantic import BaseModel, Field


class IssueCodeIn(BaseModel):
    actor_id: UUID = Field(..., description="Identity requesting a code")


class ValidateCodeIn(BaseModel):
    code: str = Field(..., description="Code as typed by the actor", max_length=64)
