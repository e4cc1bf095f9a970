from __future__ import annotations

import logging
import threading
from datetime import datetime
from types import TracebackType
from typing import Callable, Optional, Sequence, Type
from uuid import UUID

import access_codes.domain.services as domain_services
from access_codes.domain.entities import CodeRecord, ValidateOutcome
from access_codes.domain.errors import (
    CapabilityUnavailable,
    GenerationExhausted,
    MembershipFault,
)
from access_codes.domain.ports.code_store import CodeStorePort
from access_codes.domain.ports.membership import MembershipPort

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 32


class CodeService:
    """
    Issues one-time access codes and admits actors who present them.

    State per actor: unissued -> issued -> validated. ensure_code re-issues
    (issued -> issued, or validated -> issued); revoke deletes from any state.
    The store's mark_validated is the point of no return: a membership failure
    after it is reported as an error outcome and the record stays consumed.
    """

    def __init__(
        self,
        store: CodeStorePort,
        membership: MembershipPort,
        *,
        code_length: int = domain_services.DEFAULT_CODE_LENGTH,
        alphabet: str = domain_services.DIGITS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        clock: Callable[[], datetime] = domain_services.utc_now,
    ) -> None:
        if code_length < 1:
            raise ValueError("code_length must be positive")
        if not alphabet:
            raise ValueError("alphabet cannot be empty")
        if not domain_services.is_canonical_alphabet(alphabet):
            raise ValueError(
                "alphabet must hold distinct characters that survive normalization"
            )
        if max_attempts < 1:
            raise ValueError("max_attempts must be positive")
        self._store = store
        self._membership = membership
        self._code_length = code_length
        self._alphabet = alphabet
        self._max_attempts = max_attempts
        self._clock = clock
        self._issue_lock = threading.Lock()

    def initialize(self) -> None:
        self._store.initialize()

    def close(self) -> None:
        self._store.close()

    def __enter__(self) -> "CodeService":
        self.initialize()
        return self

    def __exit__(
        self,
        exc_type: Type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def ensure_code(self, actor_id: UUID) -> str:
        with self._issue_lock:
            existing = self._store.find_by_actor(actor_id)
            if existing is not None and not existing.is_validated:
                return existing.code

            code = self._generate_unique_code()
            record = self._store.upsert(actor_id, code)

        logger.info(
            "issued access code",
            extra={"actor_id": str(actor_id), "reissued": existing is not None},
        )
        return record.code

    def validate_code(self, code: str) -> ValidateOutcome:
        if not code or not code.strip():
            return ValidateOutcome.not_found()
        normalized = domain_services.normalize_code(code)

        record = self._store.find_by_code(normalized)
        if record is None:
            return ValidateOutcome.not_found()
        actor_id = record.actor_id
        if record.is_validated:
            return ValidateOutcome.already_validated(actor_id)

        if not self._store.mark_validated(actor_id, self._clock(), code=record.code):
            logger.warning(
                "code validation lost the race",
                extra={"actor_id": str(actor_id)},
            )
            return ValidateOutcome.error(
                actor_id, "Unable to mark access code as validated"
            )

        try:
            added = self._membership.add(actor_id)
        except (CapabilityUnavailable, MembershipFault) as e:
            logger.error(
                "code consumed but membership could not be granted",
                extra={"actor_id": str(actor_id), "error": str(e)},
            )
            return ValidateOutcome.error(actor_id, f"Unable to grant membership: {e}")

        logger.info(
            "access code validated",
            extra={"actor_id": str(actor_id), "already_member": not added},
        )
        return ValidateOutcome.success(actor_id, already_member=not added)

    def revoke(self, actor_id: UUID, also_remove_from_membership: bool = False) -> bool:
        deleted = self._store.delete(actor_id)
        if not deleted:
            return False

        if also_remove_from_membership:
            try:
                self._membership.remove(actor_id)
            except (CapabilityUnavailable, MembershipFault) as e:
                logger.error(
                    "code cleared but membership could not be removed",
                    extra={"actor_id": str(actor_id), "error": str(e)},
                )
                raise
            logger.info(
                "revoked access code and membership", extra={"actor_id": str(actor_id)}
            )
        else:
            logger.info(
                "revoked access code, membership retained",
                extra={"actor_id": str(actor_id)},
            )
        return True

    def is_member(self, actor_id: UUID) -> bool:
        return self._membership.contains(actor_id)

    def list_active_codes(self) -> Sequence[CodeRecord]:
        return self._store.list_active()

    def find_by_actor(self, actor_id: UUID) -> Optional[CodeRecord]:
        return self._store.find_by_actor(actor_id)

    def find_by_code(self, code: str) -> Optional[CodeRecord]:
        return self._store.find_by_code(domain_services.normalize_code(code))

    def _generate_unique_code(self) -> str:
        for _ in range(self._max_attempts):
            candidate = domain_services.generate_code(self._code_length, self._alphabet)
            if self._store.find_by_code(candidate) is None:
                return candidate
        logger.error(
            "code space exhausted",
            extra={
                "attempts": self._max_attempts,
                "code_length": self._code_length,
                "alphabet_size": len(self._alphabet),
            },
        )
        raise GenerationExhausted(self._max_attempts)
