"""
Identity resolution: map a verified issuer assertion to a local account.

Lookup order:
1. By issuer subject (fast path).
2. By email. A match is claimed: the existing record takes the asserted
   subject and keeps its id, history and grants.
3. Otherwise a new active account is provisioned in the default tenant.

The email unique constraint is the final arbiter between concurrent first
logins. The loser of that race rolls back, retries the lookup once, and only
surfaces a Conflict if the retry also finds nothing.
"""

from __future__ import annotations

from typing import Optional

import structlog
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from taskline.core.auth import IdentityAssertion, IdentityIssuer
from taskline.core.config import Settings, get_settings
from taskline.core.errors import Conflict
from taskline.models.account import Account
from taskline.models.assignments import TaskCollaborator
from taskline.models.base import utcnow
from taskline.models.membership import Membership
from taskline.services.roles import heal_super_admin
from taskline.services.tenancy import get_or_create_default_tenant
from taskline_shared.schemas.common import AccountRole, AccountStatus

log = structlog.get_logger()

PLACEHOLDER_DOMAIN = "placeholder"
DEFAULT_DISPLAY_NAME = "New User"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def placeholder_email(subject: str) -> str:
    return f"{subject}@{PLACEHOLDER_DOMAIN}"


async def complete_assertion(
    assertion: IdentityAssertion, issuer: IdentityIssuer
) -> IdentityAssertion:
    """Backfill a missing email from the issuer, else fall back to a placeholder."""
    if assertion.email:
        return assertion.model_copy(update={"email": normalize_email(assertion.email)})

    record = await issuer.lookup_user(assertion.subject)
    email = record.email if record and record.email else placeholder_email(assertion.subject)
    update = {"email": normalize_email(email)}
    if record:
        update["display_name"] = assertion.display_name or record.display_name
        update["avatar_url"] = assertion.avatar_url or record.avatar_url
    return assertion.model_copy(update=update)


def merge_claim(account: Account, assertion: IdentityAssertion) -> Account:
    """Attach the asserted subject to an existing record.

    Empty asserted fields never erase stored values, and stored non-empty
    values are kept over asserted ones.
    """
    account.auth_subject = assertion.subject
    if not account.avatar_url and assertion.avatar_url:
        account.avatar_url = assertion.avatar_url
    if not account.display_name and assertion.display_name:
        account.display_name = assertion.display_name
    account.status = AccountStatus.ACTIVE.value
    return account


async def _get_by_subject(session: AsyncSession, subject: str) -> Optional[Account]:
    result = await session.execute(select(Account).where(Account.auth_subject == subject))
    return result.scalar_one_or_none()


async def _get_by_email(session: AsyncSession, email: str) -> Optional[Account]:
    result = await session.execute(select(Account).where(Account.email == email))
    return result.scalar_one_or_none()


async def _claim(session: AsyncSession, account: Account, assertion: IdentityAssertion) -> Account:
    was_ghost = account.is_ghost
    merge_claim(account, assertion)
    session.add(account)
    await session.flush()
    if was_ghost:
        # Invitations waiting on this account are now joined
        await session.execute(
            update(TaskCollaborator)
            .where(
                TaskCollaborator.account_id == account.id,
                TaskCollaborator.joined_at.is_(None),
            )
            .values(joined_at=utcnow())
        )
    log.info(
        "identity.claimed",
        account_id=str(account.id),
        was_ghost=was_ghost,
    )
    return account


async def _provision(
    session: AsyncSession, assertion: IdentityAssertion, settings: Settings
) -> Account:
    tenant = await get_or_create_default_tenant(session, settings)
    role = AccountRole.GOD if settings.is_super_admin(assertion.email) else AccountRole.USER

    account = Account(
        auth_subject=assertion.subject,
        email=assertion.email,
        display_name=assertion.display_name or DEFAULT_DISPLAY_NAME,
        avatar_url=assertion.avatar_url or "",
        role=role.value,
        status=AccountStatus.ACTIVE.value,
        tenant_id=tenant.id,
    )
    session.add(account)
    await session.flush()
    session.add(Membership(account_id=account.id, tenant_id=tenant.id, role=role.value))
    await session.flush()

    log.info("identity.provisioned", account_id=str(account.id), role=role.value)
    return account


async def _lookup_or_claim(
    session: AsyncSession, assertion: IdentityAssertion
) -> Optional[Account]:
    account = await _get_by_subject(session, assertion.subject)
    if account:
        return account

    account = await _get_by_email(session, assertion.email)
    if account:
        return await _claim(session, account, assertion)
    return None


async def resolve_identity(
    session: AsyncSession,
    assertion: IdentityAssertion,
    settings: Optional[Settings] = None,
) -> Account:
    """Return the local account for a complete assertion (email already backfilled)."""
    settings = settings or get_settings()
    email = assertion.email or placeholder_email(assertion.subject)
    assertion = assertion.model_copy(update={"email": normalize_email(email)})

    try:
        account = await _lookup_or_claim(session, assertion)
        if account is None:
            account = await _provision(session, assertion, settings)
    except IntegrityError:
        await session.rollback()
        log.info("identity.race_retry", subject=assertion.subject)
        try:
            account = await _lookup_or_claim(session, assertion)
        except IntegrityError as exc:
            await session.rollback()
            raise Conflict("Account is being created concurrently; retry the request") from exc
        if account is None:
            raise Conflict("Account is being created concurrently; retry the request")

    await heal_super_admin(session, account, settings)
    return account
