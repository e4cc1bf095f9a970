from __future__ import annotations

from uuid import UUID

from redis import Redis, RedisError

from access_codes.domain.errors import MembershipFault
from access_codes.domain.ports.membership import MembershipPort


class RedisMembershipAdapter(MembershipPort):
    """Access list kept in a single Redis set of actor ids."""

    def __init__(self, redis: Redis, *, key: str = "access:members") -> None:
        self._redis = redis
        self._key = key

    def contains(self, actor_id: UUID) -> bool:
        try:
            return bool(self._redis.sismember(self._key, str(actor_id)))
        except RedisError as e:
            raise MembershipFault(f"membership lookup failed: {e}") from e

    def add(self, actor_id: UUID) -> bool:
        try:
            return int(self._redis.sadd(self._key, str(actor_id))) == 1
        except RedisError as e:
            raise MembershipFault(f"membership add failed: {e}") from e

    def remove(self, actor_id: UUID) -> bool:
        try:
            return int(self._redis.srem(self._key, str(actor_id))) == 1
        except RedisError as e:
            raise MembershipFault(f"membership remove failed: {e}") from e
