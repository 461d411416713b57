"""Application service entry points.

Each service opens one unit of work, performs the request and commits; any
exception leaves the unit of work through ``__exit__`` and rolls the request back.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING
from uuid import uuid4

from ledgerlink.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyLinkingUnitOfWork,
    is_started,
    startup,
)
from ledgerlink.config import get_admin_config, get_linking_config
from ledgerlink.domain.linking import (
    AccountNotFoundError,
    AliasGraph,
    AuthorizationError,
    ClaimContext,
    ClaimOrchestrator,
    IntegrityAuditor,
    InviteManager,
    OrphanJanitor,
    UnauthenticatedError,
    normalize_email,
    normalize_member_id,
    purge_account_data,
)
from ledgerlink.domain.model import Account
from ledgerlink.domain.ports.unit_of_work import LinkingUnitOfWork

if TYPE_CHECKING:
    from ledgerlink.config import AdminConfig, LinkingConfig
    from ledgerlink.domain.linking import (
        ClaimResult,
        IntegrityReport,
        InviteValidation,
        JanitorResult,
        MergeResult,
        PurgeResult,
    )
    from ledgerlink.domain.model import InviteToken, LinkRequest
    from ledgerlink.domain.ports import LinkingRepositories

UnitOfWorkFactory = Callable[[], LinkingUnitOfWork]

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AuthContext:
    """Authenticated caller as reported by the identity provider."""

    email: str | None


def _default_unit_of_work() -> LinkingUnitOfWork:
    if not is_started():
        startup()
    return SqlAlchemyLinkingUnitOfWork()


def _unit_of_work(factory: UnitOfWorkFactory | None) -> LinkingUnitOfWork:
    return (factory or _default_unit_of_work)()


def current_account(auth: AuthContext | None, repositories: LinkingRepositories) -> Account:
    if auth is None or not auth.email:
        raise UnauthenticatedError("Unauthenticated")
    account = repositories.accounts.get_by_email(auth.email)
    if account is None:
        raise AccountNotFoundError("User not found")
    return account


def _orchestrator(
    repositories: LinkingRepositories, config: LinkingConfig | None
) -> ClaimOrchestrator:
    effective = config or get_linking_config()
    return ClaimOrchestrator(repositories, legacy_scan=effective.legacy_alias_scan)


def _invite_manager(
    repositories: LinkingRepositories, config: LinkingConfig | None
) -> InviteManager:
    effective = config or get_linking_config()
    return InviteManager(
        repositories,
        _orchestrator(repositories, effective),
        invite_ttl=effective.invite_ttl,
        link_request_ttl=effective.link_request_ttl,
    )


# Accounts ----------------------------------------------------------------------


def register_account(
    *,
    email: str,
    display_name: str,
    account_id: str | None = None,
    member_id: str | None = None,
    first_name: str | None = None,
    last_name: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> Account:
    """Create an account, or return the existing one registered under ``email``."""

    with _unit_of_work(unit_of_work_factory) as uow:
        accounts = uow.repositories.accounts
        existing = accounts.get_by_email(email)
        if existing is not None:
            return existing
        account = Account(
            account_id=account_id or str(uuid4()),
            email=normalize_email(email),
            display_name=display_name,
            first_name=first_name,
            last_name=last_name,
            canonical_member_id=normalize_member_id(member_id or str(uuid4())),
        )
        accounts.add(account)
        uow.commit()
    log.info("Registered account %s (member %s)", account.email, account.canonical_member_id)
    return account


def hard_delete_account(
    auth: AuthContext,
    email: str,
    *,
    admin_config: AdminConfig | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> PurgeResult:
    """Admin-only: delete an account and everything it owns or is linked from."""

    admins = admin_config or get_admin_config()
    if not auth.email:
        raise UnauthenticatedError("Unauthenticated")
    if not admins.is_admin(auth.email):
        raise AuthorizationError("Admin privileges required")

    with _unit_of_work(unit_of_work_factory) as uow:
        repositories = uow.repositories
        account = repositories.accounts.get_by_email(email)
        if account is None:
            raise AccountNotFoundError(f"No account registered for {email}")
        result = purge_account_data(repositories, account.email, account_id=account.account_id)
        repositories.accounts.delete(account)
        uow.commit()
    log.warning("Hard-deleted account %s on behalf of %s", email, auth.email)
    return result


# Alias graph -------------------------------------------------------------------


def resolve_canonical_member_id(
    member_id: str,
    *,
    config: LinkingConfig | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> str:
    effective = config or get_linking_config()
    with _unit_of_work(unit_of_work_factory) as uow:
        graph = AliasGraph(uow.repositories.aliases, legacy_scan=effective.legacy_alias_scan)
        return graph.resolve_canonical(member_id)


def get_aliases_for_member(
    canonical_member_id: str,
    *,
    config: LinkingConfig | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> tuple[str, ...]:
    effective = config or get_linking_config()
    with _unit_of_work(unit_of_work_factory) as uow:
        graph = AliasGraph(uow.repositories.aliases, legacy_scan=effective.legacy_alias_scan)
        return graph.aliases_for(canonical_member_id)


def merge_member_ids(
    auth: AuthContext,
    source_id: str,
    target_canonical_id: str,
    *,
    config: LinkingConfig | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> MergeResult:
    with _unit_of_work(unit_of_work_factory) as uow:
        repositories = uow.repositories
        actor = current_account(auth, repositories)
        result = _orchestrator(repositories, config).merge_member_ids(
            actor, source_id, target_canonical_id
        )
        uow.commit()
    return result


def merge_unlinked_friends(
    auth: AuthContext,
    friend_id_1: str,
    friend_id_2: str,
    *,
    config: LinkingConfig | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> MergeResult:
    with _unit_of_work(unit_of_work_factory) as uow:
        repositories = uow.repositories
        actor = current_account(auth, repositories)
        result = _orchestrator(repositories, config).merge_unlinked_friends(
            actor, friend_id_1, friend_id_2
        )
        uow.commit()
    return result


# Claims ------------------------------------------------------------------------


def claim(
    auth: AuthContext,
    target_member_id: str,
    *,
    creator_email: str,
    creator_id: str | None = None,
    config: LinkingConfig | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> ClaimResult:
    context = ClaimContext(
        target_member_id=target_member_id, creator_email=creator_email, creator_id=creator_id
    )
    with _unit_of_work(unit_of_work_factory) as uow:
        repositories = uow.repositories
        account = current_account(auth, repositories)
        result = _orchestrator(repositories, config).claim(account, context)
        uow.commit()
    return result


def create_invite(
    auth: AuthContext,
    token_id: str,
    target_member_id: str,
    target_member_name: str,
    *,
    config: LinkingConfig | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> InviteToken:
    with _unit_of_work(unit_of_work_factory) as uow:
        repositories = uow.repositories
        creator = current_account(auth, repositories)
        token = _invite_manager(repositories, config).create_invite(
            creator, token_id, target_member_id, target_member_name
        )
        uow.commit()
    return token


def validate_invite(
    token_id: str,
    *,
    config: LinkingConfig | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> InviteValidation:
    with _unit_of_work(unit_of_work_factory) as uow:
        return _invite_manager(uow.repositories, config).validate_invite(token_id)


def claim_invite(
    auth: AuthContext,
    token_id: str,
    *,
    config: LinkingConfig | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> ClaimResult:
    with _unit_of_work(unit_of_work_factory) as uow:
        repositories = uow.repositories
        account = current_account(auth, repositories)
        result = _invite_manager(repositories, config).claim_invite(account, token_id)
        uow.commit()
    return result


def revoke_invite(
    auth: AuthContext,
    token_id: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> None:
    with _unit_of_work(unit_of_work_factory) as uow:
        repositories = uow.repositories
        account = current_account(auth, repositories)
        _invite_manager(repositories, None).revoke_invite(account, token_id)
        uow.commit()


def list_active_invites(
    auth: AuthContext,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[InviteToken]:
    with _unit_of_work(unit_of_work_factory) as uow:
        repositories = uow.repositories
        account = current_account(auth, repositories)
        return _invite_manager(repositories, None).list_active_invites(account)


def create_link_request(
    auth: AuthContext,
    request_id: str,
    recipient_email: str,
    target_member_id: str,
    target_member_name: str,
    *,
    config: LinkingConfig | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> LinkRequest:
    with _unit_of_work(unit_of_work_factory) as uow:
        repositories = uow.repositories
        requester = current_account(auth, repositories)
        request = _invite_manager(repositories, config).create_link_request(
            requester, request_id, recipient_email, target_member_id, target_member_name
        )
        uow.commit()
    return request


def accept_link_request(
    auth: AuthContext,
    request_id: str,
    *,
    config: LinkingConfig | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> ClaimResult:
    with _unit_of_work(unit_of_work_factory) as uow:
        repositories = uow.repositories
        account = current_account(auth, repositories)
        result = _invite_manager(repositories, config).accept_link_request(account, request_id)
        uow.commit()
    return result


def decline_link_request(
    auth: AuthContext,
    request_id: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> None:
    with _unit_of_work(unit_of_work_factory) as uow:
        repositories = uow.repositories
        account = current_account(auth, repositories)
        _invite_manager(repositories, None).decline_link_request(account, request_id)
        uow.commit()


def cancel_link_request(
    auth: AuthContext,
    request_id: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> None:
    with _unit_of_work(unit_of_work_factory) as uow:
        repositories = uow.repositories
        account = current_account(auth, repositories)
        _invite_manager(repositories, None).cancel_link_request(account, request_id)
        uow.commit()


def list_incoming_link_requests(
    auth: AuthContext,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[LinkRequest]:
    with _unit_of_work(unit_of_work_factory) as uow:
        repositories = uow.repositories
        account = current_account(auth, repositories)
        return _invite_manager(repositories, None).list_incoming(account)


def list_outgoing_link_requests(
    auth: AuthContext,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[LinkRequest]:
    with _unit_of_work(unit_of_work_factory) as uow:
        repositories = uow.repositories
        account = current_account(auth, repositories)
        return _invite_manager(repositories, None).list_outgoing(account)


# Maintenance -------------------------------------------------------------------


def check_data_integrity(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> IntegrityReport:
    with _unit_of_work(unit_of_work_factory) as uow:
        report = IntegrityAuditor(uow.repositories).check()
    log.info(
        "Integrity check finished: issues=%s, errors=%s, warnings=%s",
        len(report.issues),
        report.error_count,
        report.warning_count,
    )
    return report


def cleanup_orphans(
    *,
    config: LinkingConfig | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> JanitorResult:
    effective = config or get_linking_config()
    with _unit_of_work(unit_of_work_factory) as uow:
        janitor = OrphanJanitor(
            uow.repositories,
            page_size=effective.janitor_page_size,
            max_deletions=effective.janitor_max_deletions,
            legacy_scan=effective.legacy_alias_scan,
            savepoint=uow.savepoint,
        )
        result = janitor.cleanup()
        uow.commit()
    return result
