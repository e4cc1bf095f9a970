from __future__ import annotations

from access_codes.application.code_service import CodeService
from access_codes.domain.ports.code_store import CodeStorePort
from access_codes.domain.ports.membership import MembershipPort
from access_codes.infrastructure.db.pool import get_pool
from access_codes.infrastructure.db.pg_store import PgCodeStore
from access_codes.infrastructure.db.sqlite_store import SqliteCodeStore
from access_codes.infrastructure.membership.backing_set import (
    BackingSetMembershipAdapter,
)
from access_codes.infrastructure.membership.direct import DirectMembershipAdapter
from access_codes.infrastructure.membership.memory import InMemoryMembershipProvider
from access_codes.infrastructure.redis_cache.membership import RedisMembershipAdapter
from access_codes.infrastructure.redis_cache.pool import get_redis
from access_codes.settings import Settings


def build_store(settings: Settings) -> CodeStorePort:
    if settings.store_backend == "postgres":
        return PgCodeStore(get_pool())
    return SqliteCodeStore.from_path(settings.database_path)


def build_membership(settings: Settings) -> MembershipPort:
    if settings.membership_backend == "redis":
        return RedisMembershipAdapter(get_redis(), key=settings.membership_redis_key)

    provider = InMemoryMembershipProvider()
    if settings.membership_adapter == "backing_set":
        return BackingSetMembershipAdapter(provider)
    return DirectMembershipAdapter(provider)


def build_code_service(settings: Settings) -> CodeService:
    return CodeService(
        build_store(settings),
        build_membership(settings),
        code_length=settings.code_length,
        alphabet=settings.code_alphabet,
        max_attempts=settings.code_max_attempts,
    )
