import pytest

from access_codes.application.code_service import CodeService
from access_codes.infrastructure.db.sqlite_store import SqliteCodeStore
from access_codes.infrastructure.membership.direct import DirectMembershipAdapter
from access_codes.infrastructure.membership.memory import InMemoryMembershipProvider
from tests.fakes import FakeClock


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def store(tmp_path, clock):
    s = SqliteCodeStore(tmp_path / "data", clock=clock)
    s.initialize()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture()
def provider():
    return InMemoryMembershipProvider()


@pytest.fixture()
def membership(provider):
    return DirectMembershipAdapter(provider)


@pytest.fixture()
def service(store, membership):
    return CodeService(store, membership)


@pytest.fixture()
def fixed_code(monkeypatch):
    """
    Make generated codes deterministic: each call pops the next value.
    Usage: fixed_code("482913", "100200")
    """
    from access_codes.domain import services as domain_services

    def _install(*codes: str):
        queue = list(codes)

        def _next(length=6, alphabet="0123456789"):
            return queue.pop(0) if len(queue) > 1 else queue[0]

        monkeypatch.setattr(domain_services, "generate_code", _next)

    return _install
