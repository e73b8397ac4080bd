"""
Delegation store tests, service level and through the API.
"""

from __future__ import annotations

import uuid
from datetime import timedelta

import pytest
from fastapi import HTTPException

from taskline.models.base import utcnow
from taskline.services.delegations import (
    create_delegation,
    list_active_delegations,
    revoke_delegation,
)
from taskline_shared.schemas.common import AccountRole

from factories import bearer, make_account, make_tenant, make_token


@pytest.fixture
async def tenant_pair(session):
    tenant = await make_tenant(session)
    admin = await make_account(session, "boss@x.com", tenant=tenant, role="admin", subject="sub-boss")
    user = await make_account(session, "u@x.com", tenant=tenant, subject="sub-u")
    return tenant, admin, user


class TestCreateDelegation:
    @pytest.mark.asyncio
    async def test_expiry_is_now_plus_days(self, session, tenant_pair):
        tenant, admin, user = tenant_pair
        now = utcnow()
        grant = await create_delegation(
            session, AccountRole.ADMIN, admin.id, user.id, tenant.id, 7, now=now
        )
        assert grant.role == "admin"
        assert grant.status == "active"
        assert grant.starts_at == now
        assert grant.expires_at == now + timedelta(days=7)

    @pytest.mark.asyncio
    async def test_requires_elevated_granter(self, session, tenant_pair):
        tenant, admin, user = tenant_pair
        with pytest.raises(HTTPException) as exc_info:
            await create_delegation(session, AccountRole.USER, user.id, admin.id, tenant.id, 1)
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_non_positive_days_rejected(self, session, tenant_pair):
        tenant, admin, user = tenant_pair
        with pytest.raises(HTTPException) as exc_info:
            await create_delegation(session, AccountRole.ADMIN, admin.id, user.id, tenant.id, 0)
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_delegate(self, session, tenant_pair):
        tenant, admin, _ = tenant_pair
        with pytest.raises(HTTPException) as exc_info:
            await create_delegation(
                session, AccountRole.ADMIN, admin.id, uuid.uuid4(), tenant.id, 1
            )
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_delegate_outside_tenant_is_not_found(self, session, tenant_pair):
        tenant, admin, _ = tenant_pair
        other = await make_tenant(session, "Other")
        outsider = await make_account(session, "o@other.io", tenant=other)

        with pytest.raises(HTTPException) as exc_info:
            await create_delegation(session, AccountRole.ADMIN, admin.id, outsider.id, tenant.id, 1)
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_legacy_tenant_delegate_accepted(self, session, tenant_pair):
        tenant, admin, _ = tenant_pair
        legacy = await make_account(session, "l@x.com", tenant=tenant, legacy_tenant=True)
        grant = await create_delegation(session, AccountRole.ADMIN, admin.id, legacy.id, tenant.id, 1)
        assert grant.delegate_id == legacy.id

    @pytest.mark.asyncio
    async def test_duplicate_grants_allowed(self, session, tenant_pair):
        tenant, admin, user = tenant_pair
        now = utcnow()
        await create_delegation(session, AccountRole.ADMIN, admin.id, user.id, tenant.id, 1, now=now)
        await create_delegation(
            session, AccountRole.ADMIN, admin.id, user.id, tenant.id, 1, now=now + timedelta(minutes=1)
        )
        assert len(await list_active_delegations(session, tenant.id, now=now)) == 2


class TestRevokeDelegation:
    @pytest.mark.asyncio
    async def test_revoke_twice_is_silent(self, session, tenant_pair):
        tenant, admin, user = tenant_pair
        grant = await create_delegation(session, AccountRole.ADMIN, admin.id, user.id, tenant.id, 1)

        await revoke_delegation(session, AccountRole.ADMIN, tenant.id, grant.id)
        await revoke_delegation(session, AccountRole.ADMIN, tenant.id, grant.id)

        await session.refresh(grant)
        assert grant.status == "cancelled"

    @pytest.mark.asyncio
    async def test_other_tenant_grant_is_not_found(self, session, tenant_pair):
        tenant, admin, user = tenant_pair
        other = await make_tenant(session, "Other")
        grant = await create_delegation(session, AccountRole.ADMIN, admin.id, user.id, tenant.id, 1)

        with pytest.raises(HTTPException) as exc_info:
            await revoke_delegation(session, AccountRole.ADMIN, other.id, grant.id)
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_requires_elevated_caller(self, session, tenant_pair):
        tenant, admin, user = tenant_pair
        grant = await create_delegation(session, AccountRole.ADMIN, admin.id, user.id, tenant.id, 1)
        with pytest.raises(HTTPException) as exc_info:
            await revoke_delegation(session, AccountRole.USER, tenant.id, grant.id)
        assert exc_info.value.status_code == 403


class TestListActive:
    @pytest.mark.asyncio
    async def test_excludes_cancelled_and_lapsed_newest_first(self, session, tenant_pair):
        tenant, admin, user = tenant_pair
        t0 = utcnow()
        lapsed = await create_delegation(
            session, AccountRole.ADMIN, admin.id, user.id, tenant.id, 1, now=t0 - timedelta(days=3)
        )
        cancelled = await create_delegation(
            session, AccountRole.ADMIN, admin.id, user.id, tenant.id, 5, now=t0 - timedelta(days=2)
        )
        older = await create_delegation(
            session, AccountRole.ADMIN, admin.id, user.id, tenant.id, 5, now=t0 - timedelta(days=1)
        )
        newer = await create_delegation(session, AccountRole.ADMIN, admin.id, user.id, tenant.id, 5, now=t0)
        await revoke_delegation(session, AccountRole.ADMIN, tenant.id, cancelled.id)

        items = await list_active_delegations(session, tenant.id, now=t0)

        assert [d.id for d in items] == [newer.id, older.id]
        assert lapsed.id not in {d.id for d in items}
        assert items[0].delegate_email == "u@x.com"


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------


class TestDelegationAPI:
    @pytest.mark.asyncio
    async def test_admin_creates_and_delegate_becomes_admin(self, client, session, tenant_pair):
        _, admin, user = tenant_pair
        await session.commit()

        resp = await client.post(
            "/api/v1/delegations",
            json={"delegate_id": str(user.id), "days": 2},
            headers=bearer(make_token("sub-boss", "boss@x.com")),
        )
        assert resp.status_code == 201
        assert resp.json()["delegate_name"] == "U"

        me = await client.get("/api/v1/users/me", headers=bearer(make_token("sub-u", "u@x.com")))
        effective = me.json()["effective"]
        assert effective["role"] == "admin"
        assert effective["is_delegated"] is True
        assert effective["expires_at"] is not None

    @pytest.mark.asyncio
    async def test_plain_user_is_forbidden(self, client, session, tenant_pair):
        _, admin, _ = tenant_pair
        await session.commit()
        resp = await client.post(
            "/api/v1/delegations",
            json={"delegate_id": str(admin.id), "days": 2},
            headers=bearer(make_token("sub-u", "u@x.com")),
        )
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "FORBIDDEN"

    @pytest.mark.asyncio
    async def test_zero_days_is_validation_error(self, client, session, tenant_pair):
        _, _, user = tenant_pair
        await session.commit()
        resp = await client.post(
            "/api/v1/delegations",
            json={"delegate_id": str(user.id), "days": 0},
            headers=bearer(make_token("sub-boss", "boss@x.com")),
        )
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_revoke_and_list(self, client, session, tenant_pair):
        tenant, admin, user = tenant_pair
        grant = await create_delegation(session, AccountRole.ADMIN, admin.id, user.id, tenant.id, 1)
        await session.commit()
        headers = bearer(make_token("sub-boss", "boss@x.com"))

        listed = await client.get("/api/v1/delegations", headers=headers)
        assert [d["id"] for d in listed.json()] == [str(grant.id)]

        for _ in range(2):
            resp = await client.delete(f"/api/v1/delegations/{grant.id}", headers=headers)
            assert resp.status_code == 204

        listed = await client.get("/api/v1/delegations", headers=headers)
        assert listed.json() == []

    @pytest.mark.asyncio
    async def test_cannot_elevate_account_in_another_tenant(self, client, session, tenant_pair):
        other = await make_tenant(session, "Other")
        outsider = await make_account(session, "o@other.io", tenant=other, subject="sub-o")
        bystander = await make_account(session, "b@other.io", tenant=other)
        await session.commit()

        resp = await client.post(
            "/api/v1/delegations",
            json={"delegate_id": str(outsider.id), "days": 2},
            headers=bearer(make_token("sub-boss", "boss@x.com")),
        )
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "NOT_FOUND"

        outsider_headers = bearer(make_token("sub-o", "o@other.io"))
        me = await client.get("/api/v1/users/me", headers=outsider_headers)
        assert me.json()["effective"]["role"] == "user"
        denied = await client.delete(f"/api/v1/users/{bystander.id}", headers=outsider_headers)
        assert denied.status_code == 403
