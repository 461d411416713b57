from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from ledgerlink.app import (
    AuthContext,
    check_data_integrity,
    claim,
    claim_invite,
    cleanup_orphans,
    create_invite,
    get_aliases_for_member,
    merge_member_ids,
    merge_unlinked_friends,
    register_account,
    resolve_canonical_member_id,
)
from ledgerlink.config import configure_logging

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _add_actor(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--as",
        dest="actor_email",
        type=str,
        required=True,
        help="Email of the account performing the operation",
    )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Maintain linked ledger identities")
    subparsers = parser.add_subparsers(dest="command", required=True)

    account = subparsers.add_parser("account", help="Account management commands")
    account_sub = account.add_subparsers(dest="account_command", required=True)
    account_create = account_sub.add_parser("create", help="Register an account")
    account_create.add_argument(
        "--email",
        type=str,
        required=True,
        help="Login email of the account",
    )
    account_create.add_argument(
        "--display-name",
        type=str,
        required=True,
        help="Display name for the account",
    )
    account_create.add_argument(
        "--member-id",
        type=str,
        help="Canonical member id (a random one is generated when omitted)",
    )

    resolve = subparsers.add_parser("resolve", help="Resolve a member id to its canonical id")
    resolve.add_argument("member_id", type=str, help="Member id to resolve")

    aliases = subparsers.add_parser("aliases", help="List direct aliases of a canonical id")
    aliases.add_argument("member_id", type=str, help="Canonical member id")

    merge = subparsers.add_parser("merge", help="Link a member id to a canonical id")
    _add_actor(merge)
    merge.add_argument("source_id", type=str, help="Member id that becomes an alias")
    merge.add_argument("target_id", type=str, help="Canonical member id")

    merge_friends = subparsers.add_parser(
        "merge-friends", help="Merge two unlinked friends of the acting account"
    )
    _add_actor(merge_friends)
    merge_friends.add_argument("first_member_id", type=str, help="Friend that is kept")
    merge_friends.add_argument(
        "second_member_id", type=str, help="Friend folded into the first one"
    )

    claim_cmd = subparsers.add_parser("claim", help="Claim a member id for the acting account")
    _add_actor(claim_cmd)
    claim_cmd.add_argument("member_id", type=str, help="Member id to claim")
    claim_cmd.add_argument(
        "--creator-email",
        type=str,
        required=True,
        help="Email of the account that created the member",
    )

    invite = subparsers.add_parser("invite", help="Invite token commands")
    invite_sub = invite.add_subparsers(dest="invite_command", required=True)
    invite_create = invite_sub.add_parser("create", help="Create an invite for a member")
    _add_actor(invite_create)
    invite_create.add_argument("token_id", type=str, help="Token id to hand out")
    invite_create.add_argument("member_id", type=str, help="Member id being offered")
    invite_create.add_argument(
        "--name",
        type=str,
        default="",
        help="Display name of the invited member",
    )
    invite_claim = invite_sub.add_parser("claim", help="Claim an invite token")
    _add_actor(invite_claim)
    invite_claim.add_argument("token_id", type=str, help="Token id to claim")

    subparsers.add_parser("integrity", help="Run the read-only data integrity audit")
    subparsers.add_parser("janitor", help="Run one bounded orphan cleanup pass")

    return parser.parse_args(list(argv))


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    auth = AuthContext(email=getattr(parsed_args, "actor_email", None))
    try:
        if parsed_args.command == "account" and parsed_args.account_command == "create":
            account = register_account(
                email=parsed_args.email,
                display_name=parsed_args.display_name,
                member_id=parsed_args.member_id,
            )
            log.info("Account %s uses member id %s", account.email, account.canonical_member_id)
        elif parsed_args.command == "resolve":
            canonical = resolve_canonical_member_id(parsed_args.member_id)
            log.info("%s resolves to %s", parsed_args.member_id, canonical)
        elif parsed_args.command == "aliases":
            found = get_aliases_for_member(parsed_args.member_id)
            log.info("Aliases of %s: %s", parsed_args.member_id, ", ".join(found) or "-")
        elif parsed_args.command == "merge":
            result = merge_member_ids(auth, parsed_args.source_id, parsed_args.target_id)
            log.info(
                "Merge finished: already_existed=%s, canonical=%s",
                result.already_existed,
                result.canonical_member_id,
            )
        elif parsed_args.command == "merge-friends":
            result = merge_unlinked_friends(
                auth, parsed_args.first_member_id, parsed_args.second_member_id
            )
            log.info(
                "Friend merge finished: already_existed=%s, canonical=%s",
                result.already_existed,
                result.canonical_member_id,
            )
        elif parsed_args.command == "claim":
            claimed = claim(auth, parsed_args.member_id, creator_email=parsed_args.creator_email)
            log.info("Claimed %s as %s", parsed_args.member_id, claimed.canonical_member_id)
        elif parsed_args.command == "invite" and parsed_args.invite_command == "create":
            token = create_invite(
                auth, parsed_args.token_id, parsed_args.member_id, parsed_args.name
            )
            log.info("Invite %s expires at %s", token.token_id, token.expires_at.isoformat())
        elif parsed_args.command == "invite" and parsed_args.invite_command == "claim":
            claimed = claim_invite(auth, parsed_args.token_id)
            log.info("Invite %s claimed as %s", parsed_args.token_id, claimed.canonical_member_id)
        elif parsed_args.command == "integrity":
            report = check_data_integrity()
            for line in report.summary.splitlines():
                log.info(line)
        elif parsed_args.command == "janitor":
            janitor_result = cleanup_orphans()
            log.info(
                "Janitor finished: found=%s, cleaned=%s, remaining=%s",
                janitor_result.orphans_found,
                janitor_result.orphans_cleaned,
                janitor_result.remaining_orphans,
            )
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error while running %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
