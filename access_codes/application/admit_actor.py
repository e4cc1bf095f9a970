import logging
from uuid import UUID

from access_codes.application.code_service import CodeService
from access_codes.domain.entities import Admission
from access_codes.domain.errors import GenerationExhausted, StoreFault

logger = logging.getLogger(__name__)


def admit_actor(service: CodeService, actor_id: UUID) -> Admission:
    """
    Connection gate: members pass; everyone else is refused with the code
    they need to redeem. code is None when issuance failed.
    """
    if service.is_member(actor_id):
        return Admission(allowed=True)

    try:
        code = service.ensure_code(actor_id)
    except (StoreFault, GenerationExhausted) as e:
        logger.warning(
            "failed to issue access code on connect",
            extra={"actor_id": str(actor_id), "error": str(e)},
        )
        return Admission(allowed=False)
    return Admission(allowed=False, code=code)
