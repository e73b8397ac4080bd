"""
Delegation endpoints (Admin only).

GET    /api/v1/delegations              - Active grants in the caller's tenant
POST   /api/v1/delegations              - Grant `admin` to an account for N days
DELETE /api/v1/delegations/{grantId}    - Revoke a grant
"""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from taskline.api.deps import AuthContext, require_admin
from taskline.core.database import get_session
from taskline.models.account import Account
from taskline.services import delegations as delegation_service
from taskline.services.tenancy import require_primary_tenant
from taskline_shared.schemas.delegations import DelegationCreate, DelegationRead

router = APIRouter()


@router.get("", response_model=List[DelegationRead])
async def list_delegations(
    auth: AuthContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    tenant_id = require_primary_tenant(auth.account, auth.tenant_ids)
    return await delegation_service.list_active_delegations(session, tenant_id)


@router.post("", response_model=DelegationRead, status_code=201)
async def create_delegation(
    body: DelegationCreate,
    auth: AuthContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Temporarily elevate another account to `admin`."""
    tenant_id = require_primary_tenant(auth.account, auth.tenant_ids)
    grant = await delegation_service.create_delegation(
        session,
        auth.role,
        delegator_id=auth.account_id,
        delegate_id=body.delegate_id,
        tenant_id=tenant_id,
        days=body.days,
    )
    await session.commit()
    delegate = await session.get(Account, grant.delegate_id)
    return delegation_service.to_read(grant, delegate)


@router.delete("/{grantId}", status_code=204)
async def revoke_delegation(
    grantId: uuid.UUID,
    auth: AuthContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Cancel a grant. Revoking an already-cancelled grant succeeds silently."""
    tenant_id = require_primary_tenant(auth.account, auth.tenant_ids)
    await delegation_service.revoke_delegation(session, auth.role, tenant_id, grantId)
    await session.commit()
    return Response(status_code=204)
