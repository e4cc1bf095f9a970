from __future__ import annotations

from typing import AbstractSet, Protocol
from uuid import UUID


class MembershipProviderPort(Protocol):
    """Shape of the externally-owned access list we write into."""

    def get_list(self) -> AbstractSet[UUID]:
        """Current members. May be a read-only view."""


class MembershipPort(Protocol):
    def contains(self, actor_id: UUID) -> bool:
        """True if actor_id is a member."""

    def add(self, actor_id: UUID) -> bool:
        """
        Add actor_id. True if it was newly added, False if already present.
        Raises CapabilityUnavailable when the collaborator refuses mutation.
        """

    def remove(self, actor_id: UUID) -> bool:
        """
        Remove actor_id. True if it was present.
        Raises CapabilityUnavailable when the collaborator refuses mutation.
        """
