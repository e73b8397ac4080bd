"""
Effective role evaluation.

The effective role is what every authorization check uses. It combines:
- the stored role on the account,
- the super-admin allow-list from settings (always `god`),
- the most recent live delegation grant naming the account as delegate.

It is recomputed on every request. Delegation windows open and close with the
clock alone, so a cached answer could be stale on the next request.

Evaluation has one documented side effect: an allow-listed account whose
stored role is not `god` is promoted in the store (self-healing). The write
happens at most once; afterwards the stored role already matches.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from taskline.core.config import Settings, get_settings
from taskline.models.account import Account
from taskline.models.base import as_naive_utc, utcnow
from taskline.models.delegation import DelegationGrant
from taskline.services.delegations import find_live_grant, is_live
from taskline_shared.schemas.common import ELEVATED_ROLES, AccountRole
from taskline_shared.schemas.users import EffectiveRoleRead

log = structlog.get_logger()


@dataclass(frozen=True)
class EffectiveRole:
    role: AccountRole
    is_delegated: bool = False
    expires_at: Optional[datetime] = None

    @property
    def is_elevated(self) -> bool:
        return self.role in ELEVATED_ROLES

    @property
    def is_god(self) -> bool:
        return self.role == AccountRole.GOD

    def to_read(self) -> EffectiveRoleRead:
        return EffectiveRoleRead(
            role=self.role, is_delegated=self.is_delegated, expires_at=self.expires_at
        )


def stored_role(account: Account) -> AccountRole:
    try:
        return AccountRole(account.role)
    except ValueError:
        log.warning("role.unknown_stored_role", account_id=str(account.id), role=account.role)
        return AccountRole.USER


def effective_role(
    account: Account,
    now: datetime,
    live_grant: Optional[DelegationGrant],
    *,
    super_admin: bool = False,
) -> EffectiveRole:
    """Pure role computation. No I/O; `live_grant` is whatever the store returned."""
    if super_admin:
        return EffectiveRole(AccountRole.GOD)

    role = stored_role(account)
    if role in ELEVATED_ROLES:
        return EffectiveRole(role)

    if live_grant is not None and is_live(live_grant, now):
        return EffectiveRole(
            role=AccountRole(live_grant.role),
            is_delegated=True,
            expires_at=live_grant.expires_at,
        )

    return EffectiveRole(role)


async def heal_super_admin(
    session: AsyncSession, account: Account, settings: Optional[Settings] = None
) -> bool:
    """Promote an allow-listed account to `god` in the store. Returns True if it wrote."""
    settings = settings or get_settings()
    if not settings.is_super_admin(account.email) or account.role == AccountRole.GOD.value:
        return False

    account.role = AccountRole.GOD.value
    session.add(account)
    await session.flush()
    log.info("role.super_admin_healed", account_id=str(account.id))
    return True


async def evaluate_effective_role(
    session: AsyncSession,
    account: Account,
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> EffectiveRole:
    """Effective role for `account` at `now`, reading the delegation store if needed."""
    settings = settings or get_settings()
    now = as_naive_utc(now) if now else utcnow()

    await heal_super_admin(session, account, settings)
    super_admin = settings.is_super_admin(account.email)

    grant = None
    if not super_admin and stored_role(account) not in ELEVATED_ROLES:
        grant = await find_live_grant(session, account.id, now)

    return effective_role(account, now, grant, super_admin=super_admin)
