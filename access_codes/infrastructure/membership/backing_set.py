from __future__ import annotations

import logging
from collections.abc import MutableSet
from typing import Optional
from uuid import UUID

from access_codes.domain.errors import CapabilityUnavailable
from access_codes.infrastructure.membership.direct import (
    DirectMembershipAdapter,
    add_member,
    remove_member,
    is_identity_set,
)

logger = logging.getLogger(__name__)

# Attribute names under which known providers keep the real set, in priority order.
BACKING_FIELD_CANDIDATES: tuple[str, ...] = (
    "whitelist",
    "mutable_whitelist",
    "mutable_list",
    "list",
    "backing_whitelist",
)


class BackingSetMembershipAdapter(DirectMembershipAdapter):
    """
    Compatibility shim for providers whose get_list() is read-only.

    Tries the direct path first. When the provider refuses the mutation, looks
    for the mutable set behind it (public name, then underscore-prefixed) and
    mutates that instead.
    """

    def __init__(
        self, provider, *, candidates: tuple[str, ...] = BACKING_FIELD_CANDIDATES
    ) -> None:
        super().__init__(provider)
        self._candidates = candidates

    def resolve_backing_set(self) -> Optional[MutableSet]:
        for name in self._probe_names():
            candidate = getattr(self.provider, name, None)
            if is_identity_set(candidate):
                return candidate
        return None

    def _probe_names(self) -> list[str]:
        names: list[str] = []
        for field in self._candidates:
            names.extend((field, f"_{field}"))
        return names

    def _on_read_only(
        self, operation: str, actor_id: UUID, cause: BaseException | None
    ) -> bool:
        backing = self.resolve_backing_set()
        if backing is None:
            logger.error(
                "membership set is read-only and no backing set was found",
                extra={
                    "operation": operation,
                    "actor_id": str(actor_id),
                    "provider": type(self.provider).__name__,
                    "probed": self._probe_names(),
                },
            )
            raise CapabilityUnavailable(
                operation,
                type(self.provider).__name__,
                probed=self._probe_names(),
                cause=cause,
            )

        logger.warning(
            "membership set is read-only; mutating backing set directly",
            extra={"operation": operation, "provider": type(self.provider).__name__},
        )
        if operation == "add":
            return add_member(backing, actor_id)
        return remove_member(backing, actor_id)
