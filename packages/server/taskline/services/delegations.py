"""
Delegation store: time-boxed `admin` grants from one account to another.

No uniqueness is enforced across grants to the same delegate. When several
are live, the role evaluator takes the most recently created one.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from taskline.core.errors import BadRequest, Forbidden, NotFound
from taskline.models.account import Account
from taskline.models.base import as_naive_utc, utcnow
from taskline.models.delegation import DelegationGrant
from taskline.services.tenancy import tenant_ids_for
from taskline_shared.schemas.common import ELEVATED_ROLES, AccountRole, DelegationStatus
from taskline_shared.schemas.delegations import DelegationRead

log = structlog.get_logger()

DELEGATED_ROLE = AccountRole.ADMIN


def is_live(grant: DelegationGrant, now: datetime) -> bool:
    return (
        grant.status == DelegationStatus.ACTIVE.value
        and grant.starts_at <= now < grant.expires_at
    )


def _require_elevated(granter_role: AccountRole) -> None:
    if AccountRole(granter_role) not in ELEVATED_ROLES:
        raise Forbidden("Admin access required")


def to_read(grant: DelegationGrant, delegate: Optional[Account] = None) -> DelegationRead:
    return DelegationRead(
        id=grant.id,
        delegator_id=grant.delegator_id,
        delegate_id=grant.delegate_id,
        tenant_id=grant.tenant_id,
        role=grant.role,
        status=grant.status,
        starts_at=grant.starts_at,
        expires_at=grant.expires_at,
        created_at=grant.created_at,
        delegate_name=delegate.display_name if delegate else None,
        delegate_email=delegate.email if delegate else None,
        delegate_avatar=delegate.avatar_url if delegate else None,
    )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def find_live_grant(
    session: AsyncSession, delegate_id: uuid.UUID, now: datetime
) -> Optional[DelegationGrant]:
    """Most recently created live grant naming `delegate_id`, if any."""
    result = await session.execute(
        select(DelegationGrant)
        .where(
            DelegationGrant.delegate_id == delegate_id,
            DelegationGrant.status == DelegationStatus.ACTIVE.value,
            DelegationGrant.starts_at <= now,
            DelegationGrant.expires_at > now,
        )
        .order_by(DelegationGrant.created_at.desc())
        .limit(1)
    )
    return result.scalars().first()


async def list_active_delegations(
    session: AsyncSession, tenant_id: uuid.UUID, now: Optional[datetime] = None
) -> list[DelegationRead]:
    now = as_naive_utc(now) if now else utcnow()
    result = await session.execute(
        select(DelegationGrant, Account)
        .join(Account, Account.id == DelegationGrant.delegate_id)
        .where(
            DelegationGrant.tenant_id == tenant_id,
            DelegationGrant.status == DelegationStatus.ACTIVE.value,
            DelegationGrant.expires_at > now,
        )
        .order_by(DelegationGrant.created_at.desc())
    )
    return [to_read(grant, delegate) for grant, delegate in result.all()]


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


async def create_delegation(
    session: AsyncSession,
    granter_role: AccountRole,
    delegator_id: uuid.UUID,
    delegate_id: uuid.UUID,
    tenant_id: uuid.UUID,
    days: int,
    now: Optional[datetime] = None,
) -> DelegationGrant:
    _require_elevated(granter_role)
    if days <= 0:
        raise BadRequest("Delegation length must be a positive number of days")

    delegate = await session.get(Account, delegate_id)
    if not delegate or tenant_id not in await tenant_ids_for(session, delegate):
        raise NotFound("Delegate not found")

    now = as_naive_utc(now) if now else utcnow()
    grant = DelegationGrant(
        delegator_id=delegator_id,
        delegate_id=delegate_id,
        tenant_id=tenant_id,
        role=DELEGATED_ROLE.value,
        status=DelegationStatus.ACTIVE.value,
        starts_at=now,
        expires_at=now + timedelta(days=days),
        created_at=now,
    )
    session.add(grant)
    await session.flush()

    log.info(
        "delegation.created",
        delegation_id=str(grant.id),
        delegator_id=str(delegator_id),
        delegate_id=str(delegate_id),
        tenant_id=str(tenant_id),
        days=days,
    )
    return grant


async def revoke_delegation(
    session: AsyncSession,
    granter_role: AccountRole,
    tenant_id: uuid.UUID,
    grant_id: uuid.UUID,
) -> None:
    """Cancel a grant in the caller's tenant. Cancelling twice is a silent no-op."""
    _require_elevated(granter_role)

    result = await session.execute(
        select(DelegationGrant).where(
            DelegationGrant.id == grant_id, DelegationGrant.tenant_id == tenant_id
        )
    )
    grant = result.scalar_one_or_none()
    if not grant:
        raise NotFound("Delegation not found")

    if grant.status == DelegationStatus.CANCELLED.value:
        return

    grant.status = DelegationStatus.CANCELLED.value
    session.add(grant)
    await session.flush()
    log.info("delegation.revoked", delegation_id=str(grant_id), tenant_id=str(tenant_id))
