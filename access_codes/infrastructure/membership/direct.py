from __future__ import annotations

import logging
from collections.abc import MutableSet
from typing import Callable
from uuid import UUID

from access_codes.domain.errors import CapabilityUnavailable
from access_codes.domain.ports.membership import MembershipPort, MembershipProviderPort

logger = logging.getLogger(__name__)


class DirectMembershipAdapter(MembershipPort):
    """
    Mutates the set the provider hands out through get_list().

    Use this when the collaborator is known to expose a mutable set.
    A read-only set is reported as CapabilityUnavailable.
    """

    def __init__(self, provider: MembershipProviderPort) -> None:
        self._provider = provider

    @property
    def provider(self) -> MembershipProviderPort:
        return self._provider

    def contains(self, actor_id: UUID) -> bool:
        return actor_id in self._provider.get_list()

    def add(self, actor_id: UUID) -> bool:
        return self._mutate("add", actor_id, add_member)

    def remove(self, actor_id: UUID) -> bool:
        return self._mutate("remove", actor_id, remove_member)

    def _mutate(
        self,
        operation: str,
        actor_id: UUID,
        apply: Callable[[MutableSet, UUID], bool],
    ) -> bool:
        members = self._provider.get_list()
        if isinstance(members, MutableSet):
            try:
                return apply(members, actor_id)
            except (NotImplementedError, TypeError, AttributeError) as exc:
                return self._on_read_only(operation, actor_id, exc)
        return self._on_read_only(operation, actor_id, None)

    def _on_read_only(
        self, operation: str, actor_id: UUID, cause: BaseException | None
    ) -> bool:
        logger.error(
            "membership set refused mutation",
            extra={
                "operation": operation,
                "actor_id": str(actor_id),
                "provider": type(self._provider).__name__,
            },
        )
        raise CapabilityUnavailable(
            operation, type(self._provider).__name__, cause=cause
        )


def add_member(members: MutableSet, actor_id: UUID) -> bool:
    if actor_id in members:
        return False
    members.add(actor_id)
    return True


def remove_member(members: MutableSet, actor_id: UUID) -> bool:
    if actor_id not in members:
        return False
    members.discard(actor_id)
    return True


def is_identity_set(candidate: object) -> bool:
    """True for a mutable set holding only UUIDs (an empty set qualifies)."""
    return isinstance(candidate, MutableSet) and all(
        isinstance(item, UUID) for item in candidate
    )
