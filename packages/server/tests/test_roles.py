"""
Effective role tests: stored role, super-admin allow-list, delegation windows.
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from taskline.models.account import Account
from taskline.models.base import utcnow
from taskline.models.delegation import DelegationGrant
from taskline.services.delegations import create_delegation, revoke_delegation
from taskline.services.roles import effective_role, evaluate_effective_role, heal_super_admin
from taskline_shared.schemas.common import AccountRole

from factories import SUPER_ADMIN_EMAIL, make_account, make_tenant


def _grant(now, days=1, status="active") -> DelegationGrant:
    return DelegationGrant(
        delegator_id=None,
        delegate_id=None,
        tenant_id=None,
        role="admin",
        status=status,
        starts_at=now,
        expires_at=now + timedelta(days=days),
        created_at=now,
    )


# ---------------------------------------------------------------------------
# Unit tests: pure evaluation
# ---------------------------------------------------------------------------


class TestEffectiveRolePure:
    def test_user_without_grant_keeps_stored_role(self):
        result = effective_role(Account(email="u@x.com", role="user"), utcnow(), None)
        assert result.role == AccountRole.USER
        assert result.is_delegated is False
        assert result.expires_at is None

    def test_live_grant_elevates_user(self):
        now = utcnow()
        grant = _grant(now)
        result = effective_role(Account(email="u@x.com", role="user"), now, grant)
        assert result.role == AccountRole.ADMIN
        assert result.is_delegated is True
        assert result.expires_at == grant.expires_at

    def test_elevated_accounts_ignore_grants(self):
        now = utcnow()
        for stored in ("admin", "god"):
            result = effective_role(Account(email="a@x.com", role=stored), now, _grant(now))
            assert result.role == AccountRole(stored)
            assert result.is_delegated is False

    def test_lapsed_or_cancelled_grant_is_ignored(self):
        now = utcnow()
        account = Account(email="u@x.com", role="user")
        assert effective_role(account, now + timedelta(days=2), _grant(now)).role == AccountRole.USER
        assert effective_role(account, now, _grant(now, status="cancelled")).role == AccountRole.USER

    def test_expiry_boundary_is_exclusive(self):
        now = utcnow()
        grant = _grant(now)
        account = Account(email="u@x.com", role="user")
        assert effective_role(account, grant.expires_at, grant).role == AccountRole.USER

    def test_super_admin_is_always_god(self):
        result = effective_role(Account(email="x@x.com", role="user"), utcnow(), None, super_admin=True)
        assert result.role == AccountRole.GOD
        assert result.is_god

    def test_unknown_stored_role_degrades_to_user(self):
        result = effective_role(Account(email="x@x.com", role="superuser"), utcnow(), None)
        assert result.role == AccountRole.USER


# ---------------------------------------------------------------------------
# Integration tests: evaluation against the delegation store
# ---------------------------------------------------------------------------


class TestEvaluateEffectiveRole:
    @pytest.mark.asyncio
    async def test_one_day_grant_window(self, session, settings):
        """Grant with days=1 at T0: admin at T0+23h, stored role again at T0+25h."""
        tenant = await make_tenant(session)
        admin = await make_account(session, "boss@x.com", tenant=tenant, role="admin")
        user = await make_account(session, "u@x.com", tenant=tenant)
        t0 = utcnow()
        await create_delegation(session, AccountRole.ADMIN, admin.id, user.id, tenant.id, 1, now=t0)

        during = await evaluate_effective_role(session, user, t0 + timedelta(hours=23), settings)
        assert during.role == AccountRole.ADMIN
        assert during.is_delegated is True
        assert during.expires_at == t0 + timedelta(days=1)

        after = await evaluate_effective_role(session, user, t0 + timedelta(hours=25), settings)
        assert after.role == AccountRole.USER
        assert after.is_delegated is False
        assert user.role == "user"

    @pytest.mark.asyncio
    async def test_most_recent_grant_wins(self, session, settings):
        tenant = await make_tenant(session)
        admin = await make_account(session, "boss@x.com", tenant=tenant, role="admin")
        user = await make_account(session, "u@x.com", tenant=tenant)
        t0 = utcnow()
        await create_delegation(session, AccountRole.ADMIN, admin.id, user.id, tenant.id, 10, now=t0)
        newer = await create_delegation(
            session, AccountRole.ADMIN, admin.id, user.id, tenant.id, 2, now=t0 + timedelta(hours=1)
        )

        result = await evaluate_effective_role(session, user, t0 + timedelta(hours=2), settings)
        assert result.expires_at == newer.expires_at

    @pytest.mark.asyncio
    async def test_revoked_grant_stops_elevating(self, session, settings):
        tenant = await make_tenant(session)
        admin = await make_account(session, "boss@x.com", tenant=tenant, role="admin")
        user = await make_account(session, "u@x.com", tenant=tenant)
        grant = await create_delegation(session, AccountRole.ADMIN, admin.id, user.id, tenant.id, 3)

        await revoke_delegation(session, AccountRole.ADMIN, tenant.id, grant.id)

        result = await evaluate_effective_role(session, user, settings=settings)
        assert result.role == AccountRole.USER

    @pytest.mark.asyncio
    async def test_super_admin_heals_exactly_once(self, session, settings):
        account = await make_account(session, SUPER_ADMIN_EMAIL, role="user")

        first = await evaluate_effective_role(session, account, settings=settings)
        assert first.role == AccountRole.GOD
        assert account.role == "god"

        assert await heal_super_admin(session, account, settings) is False
        second = await evaluate_effective_role(session, account, settings=settings)
        assert second.role == AccountRole.GOD

    @pytest.mark.asyncio
    async def test_allow_list_match_ignores_case(self, session, settings):
        account = await make_account(session, "Root@Acme.io", role="admin")
        result = await evaluate_effective_role(session, account, settings=settings)
        assert result.role == AccountRole.GOD
