"""
Account directory service: listing, adding ghost accounts, removal.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy import delete, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from taskline.core.errors import Forbidden, NotFound
from taskline.models.account import Account
from taskline.models.admin_request import AdminRequest
from taskline.models.assignments import TaskAssignment, TaskCollaborator
from taskline.models.delegation import DelegationGrant
from taskline.models.membership import Membership
from taskline.models.task import Task
from taskline.services.identity import normalize_email
from taskline.services.tenancy import ensure_membership
from taskline_shared.schemas.common import ELEVATED_ROLES, AccountRole, AccountStatus
from taskline_shared.schemas.users import AccountRead, DirectoryAddRequest, DirectoryEntry

log = structlog.get_logger()


def account_read(account: Account) -> AccountRead:
    return AccountRead(
        id=account.id,
        email=account.email,
        display_name=account.display_name,
        avatar_url=account.avatar_url,
        role=account.role,
        status=account.status,
        tenant_id=account.tenant_id,
        created_at=account.created_at,
    )


def _entry(account: Account, role: str, source: str) -> DirectoryEntry:
    return DirectoryEntry(
        id=account.id,
        name=account.display_name or account.email.split("@")[0],
        email=account.email,
        role=role,
        avatar=account.avatar_url or None,
        source=source,
    )


async def ensure_ghost_account(
    session: AsyncSession,
    email: str,
    display_name: Optional[str] = None,
    tenant_id: Optional[uuid.UUID] = None,
) -> tuple[Account, bool]:
    """Find an account by email or create a pending ghost. Returns (account, created)."""
    email = normalize_email(email)
    result = await session.execute(select(Account).where(Account.email == email))
    account = result.scalar_one_or_none()
    if account:
        return account, False

    account = Account(
        auth_subject=None,
        email=email,
        display_name=display_name,
        avatar_url="",
        role=AccountRole.USER.value,
        status=AccountStatus.PENDING.value,
        tenant_id=tenant_id,
    )
    session.add(account)
    await session.flush()
    log.info("account.ghost_created", account_id=str(account.id))
    return account, True


# ---------------------------------------------------------------------------
# Directory
# ---------------------------------------------------------------------------


async def list_directory(
    session: AsyncSession, role: AccountRole, tenant_ids: set[uuid.UUID]
) -> list[DirectoryEntry]:
    """Tenant members plus guests collaborating on the tenants' tasks. God sees everyone."""
    if AccountRole(role) == AccountRole.GOD:
        result = await session.execute(select(Account).order_by(Account.display_name))
        return [_entry(a, a.role, "all") for a in result.scalars().all()]

    if not tenant_ids:
        return []

    member_ids = select(Membership.account_id).where(Membership.tenant_id.in_(tenant_ids))
    result = await session.execute(
        select(Account).where(
            or_(Account.id.in_(member_ids), Account.tenant_id.in_(tenant_ids))
        )
    )
    members = {a.id: a for a in result.scalars().all()}

    result = await session.execute(
        select(Account)
        .join(TaskCollaborator, TaskCollaborator.account_id == Account.id)
        .join(Task, Task.id == TaskCollaborator.task_id)
        .where(Task.tenant_id.in_(tenant_ids))
    )
    guests = {a.id: a for a in result.scalars().all() if a.id not in members}

    entries = [_entry(a, a.role, "member") for a in members.values()]
    entries += [_entry(a, "guest", "guest") for a in guests.values()]
    entries.sort(key=lambda e: e.name.lower())
    return entries


async def add_to_directory(
    session: AsyncSession,
    role: AccountRole,
    tenant_id: uuid.UUID,
    req: DirectoryAddRequest,
) -> tuple[Account, bool]:
    """Link a person to the tenant, creating a ghost account if the email is unknown."""
    if AccountRole(role) not in ELEVATED_ROLES:
        raise Forbidden("Insufficient permissions")

    account, created = await ensure_ghost_account(
        session, req.email, display_name=req.name, tenant_id=tenant_id
    )
    await ensure_membership(session, account.id, tenant_id)

    if not created and account.tenant_id is None:
        account.tenant_id = tenant_id
        session.add(account)
        await session.flush()

    log.info(
        "directory.added",
        account_id=str(account.id),
        tenant_id=str(tenant_id),
        created=created,
    )
    return account, created


async def _in_tenant(session: AsyncSession, account: Account, tenant_id: uuid.UUID) -> bool:
    if account.tenant_id == tenant_id:
        return True
    result = await session.execute(
        select(Membership.id).where(
            Membership.account_id == account.id, Membership.tenant_id == tenant_id
        )
    )
    return result.first() is not None


async def delete_account(
    session: AsyncSession,
    role: AccountRole,
    tenant_id: Optional[uuid.UUID],
    account_id: uuid.UUID,
) -> None:
    """Remove an account and its dependent rows. Admins are limited to their tenant."""
    role = AccountRole(role)
    if role not in ELEVATED_ROLES:
        raise Forbidden("Insufficient permissions")

    account = await session.get(Account, account_id)
    if not account:
        raise NotFound("Account not found")
    if role != AccountRole.GOD and (
        tenant_id is None or not await _in_tenant(session, account, tenant_id)
    ):
        raise NotFound("Account not found")

    await session.execute(delete(TaskAssignment).where(TaskAssignment.account_id == account_id))
    await session.execute(
        delete(TaskCollaborator).where(TaskCollaborator.account_id == account_id)
    )
    await session.execute(delete(Membership).where(Membership.account_id == account_id))
    await session.execute(
        delete(DelegationGrant).where(
            or_(
                DelegationGrant.delegate_id == account_id,
                DelegationGrant.delegator_id == account_id,
            )
        )
    )
    await session.execute(delete(AdminRequest).where(AdminRequest.requester_id == account_id))
    await session.execute(
        update(Task).where(Task.created_by == account_id).values(created_by=None)
    )
    await session.delete(account)
    await session.flush()
    log.info("account.deleted", account_id=str(account_id), by_role=role.value)
