from __future__ import annotations

from typing import Sequence


class DomainError(Exception):
    """Base class for all domain-level errors."""

    pass


class UninitializedStore(DomainError):
    """The code store was used before initialize() or after close()."""

    def __init__(self, operation: str) -> None:
        super().__init__(f"code store is not initialized (operation={operation})")
        self.operation = operation


class StoreFault(DomainError):
    """The backing storage failed (I/O error, constraint violation, corruption)."""

    def __init__(
        self, operation: str, message: str, cause: BaseException | None = None
    ) -> None:
        super().__init__(f"{operation}: {message}")
        self.operation = operation
        self.cause = cause


class GenerationExhausted(DomainError):
    """No unused code could be drawn within the attempt bound."""

    def __init__(self, attempts: int) -> None:
        super().__init__(f"unable to generate a unique code after {attempts} attempts")
        self.attempts = attempts


class CapabilityUnavailable(DomainError):
    """The membership collaborator offers no usable mutation path."""

    def __init__(
        self,
        operation: str,
        provider_type: str,
        probed: Sequence[str] = (),
        cause: BaseException | None = None,
    ) -> None:
        detail = f"{provider_type} refused {operation}"
        if probed:
            detail += f"; no mutable backing set found among {', '.join(probed)}"
        super().__init__(detail)
        self.operation = operation
        self.provider_type = provider_type
        self.probed = tuple(probed)
        self.cause = cause


class MembershipFault(DomainError):
    """The membership collaborator failed while being queried or mutated."""

    pass
