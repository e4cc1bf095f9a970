from concurrent.futures import ThreadPoolExecutor
from uuid import uuid4

import pytest

from access_codes.application.code_service import CodeService
from access_codes.domain.errors import (
    CapabilityUnavailable,
    GenerationExhausted,
    MembershipFault,
    StoreFault,
)
from access_codes.infrastructure.membership.direct import DirectMembershipAdapter
from access_codes.infrastructure.membership.memory import InMemoryMembershipProvider
from tests.fakes import (
    FakeCodeStore,
    FakeMembership,
    FaultyCodeStore,
    RacingCodeStore,
    StallingCodeStore,
)


def test_end_to_end_issue_validate_and_replay(service, fixed_code):
    fixed_code("482913")
    p1 = uuid4()

    code = service.ensure_code(p1)
    assert code == "482913"

    outcome = service.validate_code("482913")
    assert outcome.status == "success"
    assert outcome.actor_id == p1
    assert outcome.already_member is False
    assert service.is_member(p1) is True

    again = service.validate_code("482913")
    assert again.status == "already_validated"
    assert again.actor_id == p1


def test_ensure_code_is_idempotent_while_active(service):
    a = uuid4()
    assert service.ensure_code(a) == service.ensure_code(a)


def test_validate_unknown_code_is_not_found(service):
    service.ensure_code(uuid4())
    assert service.validate_code("no-such-code").status == "not_found"


@pytest.mark.parametrize("raw", ["", "   ", "\t\n"])
def test_validate_blank_code_is_not_found_without_store_access(raw):
    store = FaultyCodeStore()
    svc = CodeService(store, FakeMembership())
    assert svc.validate_code(raw).status == "not_found"


def test_validate_normalizes_input(service, fixed_code):
    fixed_code("ab12cd")
    a = uuid4()
    service.ensure_code(a)
    outcome = service.validate_code("  Ab12Cd ")
    assert outcome.status == "success" and outcome.actor_id == a


def test_codes_are_unique_across_actors(service):
    codes = [service.ensure_code(uuid4()) for _ in range(200)]
    assert len(set(codes)) == len(codes)


def test_reissue_after_validation_gives_new_code_and_old_is_gone(service, fixed_code):
    fixed_code("111111", "222222")
    a = uuid4()
    code1 = service.ensure_code(a)
    assert service.validate_code(code1).status == "success"

    code2 = service.ensure_code(a)
    assert code2 == "222222" and code2 != code1
    assert service.validate_code(code1).status == "not_found"
    assert service.find_by_actor(a).validated_at is None


def test_already_member_is_reported(store):
    a = uuid4()
    svc = CodeService(store, FakeMembership(members=[a]))
    code = svc.ensure_code(a)
    outcome = svc.validate_code(code)
    assert outcome.status == "success"
    assert outcome.already_member is True


def test_generation_retries_past_collisions(service, fixed_code):
    fixed_code("777777", "777777", "777777", "888888")
    assert service.ensure_code(uuid4()) == "777777"
    assert service.ensure_code(uuid4()) == "888888"


def test_generation_exhausted_after_bound(store, monkeypatch):
    from access_codes.domain import services as domain_services

    calls = []

    def _same(length=6, alphabet="0123456789"):
        calls.append(length)
        return "999999"

    monkeypatch.setattr(domain_services, "generate_code", _same)
    svc = CodeService(store, FakeMembership())
    svc.ensure_code(uuid4())
    calls.clear()

    b = uuid4()
    with pytest.raises(GenerationExhausted) as ei:
        svc.ensure_code(b)
    assert ei.value.attempts == 32
    assert len(calls) == 32
    assert svc.find_by_actor(b) is None


def test_custom_code_policy_is_passed_to_generator(store):
    svc = CodeService(store, FakeMembership(), code_length=4, alphabet="XY")
    code = svc.ensure_code(uuid4())
    assert len(code) == 4 and set(code) <= {"X", "Y"}


@pytest.mark.parametrize(
    "kwargs",
    [
        {"code_length": 0},
        {"alphabet": ""},
        {"alphabet": "aA"},
        {"alphabet": "01 "},
        {"alphabet": "0 1"},
        {"alphabet": "0011"},
        {"max_attempts": 0},
    ],
)
def test_invalid_code_policy_is_rejected(kwargs):
    with pytest.raises(ValueError):
        CodeService(FakeCodeStore(), FakeMembership(), **kwargs)


def test_lost_race_is_an_error_outcome():
    store = RacingCodeStore()
    membership = FakeMembership()
    svc = CodeService(store, membership)
    a = uuid4()
    code = svc.ensure_code(a)

    outcome = svc.validate_code(code)
    assert outcome.status == "error"
    assert outcome.actor_id == a
    assert membership.add_calls == []


def test_stale_validation_cannot_consume_a_reissued_code(fixed_code):
    fixed_code("111111", "222222")
    store = StallingCodeStore()
    membership = FakeMembership()
    svc = CodeService(store, membership)
    a = uuid4()
    assert svc.ensure_code(a) == "111111"

    with ThreadPoolExecutor(max_workers=1) as pool:
        stalled = pool.submit(svc.validate_code, "111111")
        assert store.entered.wait(5)
        try:
            assert svc.validate_code("111111").status == "success"
            assert svc.ensure_code(a) == "222222"
        finally:
            store.release.set()
        late = stalled.result(timeout=5)

    assert late.status == "error"
    assert membership.add_calls == [a]
    assert svc.find_by_actor(a).validated_at is None
    assert svc.validate_code("222222").status == "success"


@pytest.mark.parametrize(
    "failure",
    [
        CapabilityUnavailable("add", "Provider"),
        MembershipFault("redis down"),
    ],
)
def test_membership_failure_leaves_record_consumed(store, failure):
    membership = FakeMembership(fail_with=failure)
    svc = CodeService(store, membership)
    a = uuid4()
    code = svc.ensure_code(a)

    outcome = svc.validate_code(code)
    assert outcome.status == "error"
    assert outcome.actor_id == a
    assert svc.find_by_actor(a).is_validated
    assert svc.validate_code(code).status == "already_validated"


def test_read_only_membership_with_direct_adapter_is_an_error(store):
    provider = InMemoryMembershipProvider(read_only=True)
    svc = CodeService(store, DirectMembershipAdapter(provider))
    a = uuid4()
    outcome = svc.validate_code(svc.ensure_code(a))
    assert outcome.status == "error"
    assert "membership" in outcome.message


def test_store_faults_propagate():
    svc = CodeService(FaultyCodeStore(), FakeMembership())
    with pytest.raises(StoreFault):
        svc.ensure_code(uuid4())
    with pytest.raises(StoreFault):
        svc.validate_code("123456")


def test_revoke_with_membership_removal(service):
    a = uuid4()
    service.validate_code(service.ensure_code(a))
    assert service.is_member(a)

    assert service.revoke(a, True) is True
    assert service.find_by_actor(a) is None
    assert service.is_member(a) is False


def test_revoke_keeps_membership_by_default(service):
    a = uuid4()
    service.validate_code(service.ensure_code(a))
    assert service.revoke(a) is True
    assert service.is_member(a) is True


def test_revoke_unknown_actor_touches_nothing():
    membership = FakeMembership()
    svc = CodeService(FakeCodeStore(), membership)
    assert svc.revoke(uuid4(), True) is False
    assert membership.remove_calls == []


def test_revoke_membership_failure_propagates_after_delete():
    store = FakeCodeStore()
    svc = CodeService(store, FakeMembership(fail_with=CapabilityUnavailable("remove", "P")))
    a = uuid4()
    svc.ensure_code(a)
    with pytest.raises(CapabilityUnavailable):
        svc.revoke(a, True)
    assert store.find_by_actor(a) is None


def test_list_active_codes_and_find_by_code(service):
    a, b = uuid4(), uuid4()
    code_a = service.ensure_code(a)
    code_b = service.ensure_code(b)
    service.validate_code(code_a)

    assert [r.actor_id for r in service.list_active_codes()] == [b]
    assert service.find_by_code(f" {code_b} ").actor_id == b


def test_concurrent_ensure_code_same_actor_converges(service, store):
    a = uuid4()
    with ThreadPoolExecutor(max_workers=8) as pool:
        codes = list(pool.map(lambda _: service.ensure_code(a), range(32)))

    assert len(set(codes)) == 1
    assert store.find_by_actor(a).code == codes[0]
    assert len(store.list_active()) == 1


def test_concurrent_ensure_code_distinct_actors_unique(service):
    actors = [uuid4() for _ in range(64)]
    with ThreadPoolExecutor(max_workers=8) as pool:
        codes = list(pool.map(service.ensure_code, actors))
    assert len(set(codes)) == len(actors)


def test_concurrent_validation_succeeds_once(service):
    a = uuid4()
    code = service.ensure_code(a)
    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(lambda _: service.validate_code(code), range(16)))

    statuses = [o.status for o in outcomes]
    assert statuses.count("success") == 1
    assert set(statuses) <= {"success", "already_validated", "error"}


def test_context_manager_initializes_and_closes():
    store = FakeCodeStore()
    with CodeService(store, FakeMembership()) as svc:
        assert store.initialized
        svc.ensure_code(uuid4())
    assert store.closed
