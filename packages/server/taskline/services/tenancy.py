"""
Tenant membership helpers.

Membership evidence comes from two places: the `memberships` join table and
the legacy single-tenant field on the account. Both count.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from taskline.core.config import Settings, get_settings
from taskline.core.errors import Forbidden
from taskline.models.account import Account
from taskline.models.membership import Membership
from taskline.models.tenant import Tenant

log = structlog.get_logger()


async def tenant_ids_for(session: AsyncSession, account: Account) -> set[uuid.UUID]:
    result = await session.execute(
        select(Membership.tenant_id).where(Membership.account_id == account.id)
    )
    tenant_ids = {row[0] for row in result.all()}
    if account.tenant_id:
        tenant_ids.add(account.tenant_id)
    return tenant_ids


def primary_tenant_id(account: Account, tenant_ids: set[uuid.UUID]) -> Optional[uuid.UUID]:
    """The legacy tenant if set, else a stable pick among memberships."""
    if account.tenant_id:
        return account.tenant_id
    if tenant_ids:
        return sorted(tenant_ids, key=str)[0]
    return None


def require_primary_tenant(account: Account, tenant_ids: set[uuid.UUID]) -> uuid.UUID:
    tenant_id = primary_tenant_id(account, tenant_ids)
    if tenant_id is None:
        raise Forbidden("Account does not belong to a tenant")
    return tenant_id


async def ensure_membership(
    session: AsyncSession, account_id: uuid.UUID, tenant_id: uuid.UUID, role: str = "user"
) -> bool:
    """Link an account to a tenant if not already linked. Returns True if created."""
    result = await session.execute(
        select(Membership).where(
            Membership.account_id == account_id, Membership.tenant_id == tenant_id
        )
    )
    if result.scalar_one_or_none():
        return False
    session.add(Membership(account_id=account_id, tenant_id=tenant_id, role=role))
    await session.flush()
    return True


async def get_or_create_default_tenant(
    session: AsyncSession, settings: Optional[Settings] = None
) -> Tenant:
    settings = settings or get_settings()
    tenant = await session.get(Tenant, settings.default_tenant_id)
    if tenant:
        return tenant

    tenant = Tenant(id=settings.default_tenant_id, name=settings.default_tenant_name)
    session.add(tenant)
    try:
        await session.flush()
    except IntegrityError:
        # Another request created it first
        await session.rollback()
        tenant = await session.get(Tenant, settings.default_tenant_id)
        if tenant is None:
            raise
        return tenant

    log.info("tenant.default_created", tenant_id=str(tenant.id))
    return tenant
