"""
Request authentication and authorization dependencies.

Every authenticated route depends on `get_auth_context`, which runs the full
pipeline before any handler logic:

    bearer credential -> issuer verification -> identity resolution
    -> effective role evaluation -> AuthContext

Nothing is cached across requests; the effective role is recomputed each time.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from fastapi import Depends, Header, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from taskline.core.auth import IdentityAssertion, IdentityIssuer, get_identity_issuer
from taskline.core.config import Settings, get_settings
from taskline.core.database import get_session
from taskline.core.errors import Forbidden, Unauthorized
from taskline.models.account import Account
from taskline.services.identity import complete_assertion, normalize_email, resolve_identity
from taskline.services.roles import EffectiveRole, evaluate_effective_role
from taskline.services.tenancy import primary_tenant_id, tenant_ids_for

log = structlog.get_logger()

bearer_scheme = HTTPBearer(auto_error=False)

DEV_GOD_SUBJECT_PREFIX = "dev-god"


class AuthContext:
    """Container for the resolved account, its effective role and tenant set."""

    def __init__(self, account: Account, effective: EffectiveRole, tenant_ids: set[uuid.UUID]):
        self.account = account
        self.effective = effective
        self.tenant_ids = tenant_ids
        self.account_id = account.id
        self.role = effective.role
        self.tenant_id: Optional[uuid.UUID] = primary_tenant_id(account, tenant_ids)


# ---------------------------------------------------------------------------
# Development bypass
# ---------------------------------------------------------------------------


async def _dev_account(
    session: AsyncSession,
    settings: Settings,
    account_id: Optional[str],
    god_mode: Optional[str],
) -> Optional[Account]:
    if god_mode == "1":
        if not settings.super_admin_emails:
            raise Forbidden("No super-admin email configured")
        email = normalize_email(settings.super_admin_emails[0])
        result = await session.execute(select(Account).where(Account.email == email))
        account = result.scalar_one_or_none()
        if account is None:
            assertion = IdentityAssertion(
                subject=f"{DEV_GOD_SUBJECT_PREFIX}|{email}",
                email=email,
                display_name="Super Admin",
            )
            account = await resolve_identity(session, assertion, settings)
        log.warning("auth.dev_god_mode", account_id=str(account.id))
        return account

    if account_id:
        try:
            parsed = uuid.UUID(account_id)
        except ValueError as exc:
            raise Unauthorized("Invalid development account id") from exc
        account = await session.get(Account, parsed)
        if account is None:
            raise Unauthorized("Unknown development account")
        log.warning("auth.dev_impersonation", account_id=str(account.id))
        return account

    return None


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


async def get_auth_context(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    x_dev_account_id: Optional[str] = Header(None),
    x_dev_god_mode: Optional[str] = Header(None),
    session: AsyncSession = Depends(get_session),
    issuer: IdentityIssuer = Depends(get_identity_issuer),
    settings: Settings = Depends(get_settings),
) -> AuthContext:
    """Main authentication dependency."""
    account: Optional[Account] = None

    if settings.dev_bypass_enabled:
        account = await _dev_account(session, settings, x_dev_account_id, x_dev_god_mode)

    if account is None:
        if credentials is None or not credentials.credentials:
            raise Unauthorized("Authentication required")
        assertion = await issuer.verify(credentials.credentials)
        assertion = await complete_assertion(assertion, issuer)
        account = await resolve_identity(session, assertion, settings)

    effective = await evaluate_effective_role(session, account, settings=settings)
    tenant_ids = await tenant_ids_for(session, account)

    auth = AuthContext(account, effective, tenant_ids)
    request.state.auth = auth
    return auth


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------


async def require_admin(
    auth: AuthContext = Depends(get_auth_context),
) -> AuthContext:
    """Requires effective role `admin` or `god` (stored or delegated)."""
    if not auth.effective.is_elevated:
        raise Forbidden("Admin access required")
    return auth
