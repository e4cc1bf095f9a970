from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from access_codes.application.admit_actor import admit_actor
from access_codes.application.code_service import CodeService
from access_codes.domain.errors import CapabilityUnavailable, MembershipFault
from access_codes.presentation.dependencies import get_code_service
from access_codes.schemas.requests import IssueCodeIn, ValidateCodeIn
from access_codes.schemas.responses import (
    AdmissionOut,
    CodeRecordOut,
    IssuedCodeOut,
    MembershipOut,
    RevokedOut,
    ValidateOutcomeOut,
)

router = APIRouter(tags=["Codes"])

ServiceDep = Annotated[CodeService, Depends(get_code_service)]

_OUTCOME_STATUS = {
    "success": status.HTTP_200_OK,
    "not_found": status.HTTP_404_NOT_FOUND,
    "already_validated": status.HTTP_409_CONFLICT,
    "error": status.HTTP_502_BAD_GATEWAY,
}


@router.post("/codes", status_code=201, response_model=IssuedCodeOut)
def post_issue_code(body: IssueCodeIn, service: ServiceDep):
    code = service.ensure_code(body.actor_id)
    return IssuedCodeOut(actor_id=body.actor_id, code=code)


@router.post("/codes/validate", response_model=ValidateOutcomeOut)
def post_validate_code(body: ValidateCodeIn, service: ServiceDep):
    outcome = service.validate_code(body.code)
    payload = ValidateOutcomeOut(
        status=outcome.status,
        actor_id=outcome.actor_id,
        already_member=outcome.already_member,
        message=outcome.message,
    )
    if outcome.status != "success":
        raise HTTPException(
            status_code=_OUTCOME_STATUS[outcome.status],
            detail=payload.model_dump(mode="json"),
        )
    return payload


@router.get("/codes", response_model=list[CodeRecordOut])
def get_active_codes(service: ServiceDep):
    return [CodeRecordOut.from_record(r) for r in service.list_active_codes()]


@router.get("/codes/{code}", response_model=CodeRecordOut)
def get_code(code: str, service: ServiceDep):
    record = service.find_by_code(code)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="unknown code")
    return CodeRecordOut.from_record(record)


@router.get("/actors/{actor_id}/code", response_model=CodeRecordOut)
def get_actor_code(actor_id: UUID, service: ServiceDep):
    record = service.find_by_actor(actor_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="no code for actor"
        )
    return CodeRecordOut.from_record(record)


@router.delete("/actors/{actor_id}/code", response_model=RevokedOut)
def delete_actor_code(
    actor_id: UUID,
    service: ServiceDep,
    remove_membership: Annotated[bool, Query()] = False,
):
    try:
        deleted = service.revoke(actor_id, also_remove_from_membership=remove_membership)
    except (CapabilityUnavailable, MembershipFault):
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="code cleared but membership could not be removed",
        )
    return RevokedOut(deleted=deleted)


@router.get("/actors/{actor_id}/membership", response_model=MembershipOut)
def get_membership(actor_id: UUID, service: ServiceDep):
    return MembershipOut(actor_id=actor_id, member=service.is_member(actor_id))


@router.post("/actors/{actor_id}/admission", response_model=AdmissionOut)
def post_admission(actor_id: UUID, service: ServiceDep):
    admission = admit_actor(service, actor_id)
    return AdmissionOut(allowed=admission.allowed, code=admission.code)
