from __future__ import annotations

from typing import AbstractSet, Iterable
from uuid import UUID

from access_codes.domain.ports.membership import MembershipProviderPort


class InMemoryMembershipProvider(MembershipProviderPort):
    """
    Process-local access list.

    With read_only=True, get_list() hands out a frozen snapshot, the way some
    host access-control modules do, while the live set stays on _whitelist.
    """

    def __init__(self, members: Iterable[UUID] = (), *, read_only: bool = False) -> None:
        self._whitelist: set[UUID] = set(members)
        self._read_only = read_only

    def get_list(self) -> AbstractSet[UUID]:
        if self._read_only:
            return frozenset(self._whitelist)
        return self._whitelist
