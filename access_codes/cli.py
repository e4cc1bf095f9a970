from __future__ import annotations

import sys
from uuid import UUID

from access_codes.application.code_service import CodeService
from access_codes.bootstrap import build_code_service
from access_codes.domain.errors import DomainError
from access_codes.logging import setup_logging
from access_codes.settings import get_settings

USAGE = (
    "usage: python -m access_codes.cli "
    "[list|issue <actor_id>|validate <code>|revoke <actor_id> [--remove-membership]]"
)


def _parse_actor(raw: str) -> UUID | None:
    try:
        return UUID(raw)
    except ValueError:
        print(f"ERROR: not a valid actor id: {raw}", file=sys.stderr)
        return None


def cmd_list(service: CodeService) -> int:
    records = service.list_active_codes()
    if not records:
        print("No active codes.")
        return 0
    for r in records:
        print(f"{r.code}  {r.actor_id}  issued {r.created_at.isoformat()}")
    return 0


def cmd_issue(service: CodeService, raw_actor: str) -> int:
    actor_id = _parse_actor(raw_actor)
    if actor_id is None:
        return 2
    print(service.ensure_code(actor_id))
    return 0


def cmd_validate(service: CodeService, code: str) -> int:
    outcome = service.validate_code(code)
    if outcome.status == "success":
        print(f"validated {outcome.actor_id} (already member={outcome.already_member})")
        return 0
    print(f"{outcome.status}: {outcome.message}", file=sys.stderr)
    return 1


def cmd_revoke(service: CodeService, raw_actor: str, remove_membership: bool) -> int:
    actor_id = _parse_actor(raw_actor)
    if actor_id is None:
        return 2
    if service.revoke(actor_id, also_remove_from_membership=remove_membership):
        print(f"revoked {actor_id}")
        return 0
    print(f"no code for {actor_id}", file=sys.stderr)
    return 1


def run(service: CodeService, argv: list[str]) -> int:
    cmd = argv[1]
    if cmd == "list":
        return cmd_list(service)
    if cmd in ("issue", "validate", "revoke") and len(argv) < 3:
        print(USAGE, file=sys.stderr)
        return 2
    if cmd == "issue":
        return cmd_issue(service, argv[2])
    if cmd == "validate":
        return cmd_validate(service, argv[2])
    if cmd == "revoke":
        return cmd_revoke(service, argv[2], "--remove-membership" in argv[3:])
    print(f"unknown command: {cmd}", file=sys.stderr)
    return 2


def main(argv: list[str], service: CodeService | None = None) -> int:
    if len(argv) < 2:
        print(USAGE, file=sys.stderr)
        return 2

    if service is None:
        settings = get_settings()
        setup_logging(settings.log_level)
        service = build_code_service(settings)

    try:
        with service:
            return run(service, argv)
    except DomainError as e:
        print(f"✗ {type(e).__name__}: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv))
