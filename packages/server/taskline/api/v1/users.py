"""
Account directory endpoints.

GET    /api/v1/users/me       - Current account and effective role
GET    /api/v1/users          - Tenant directory (members and guests)
POST   /api/v1/users          - Add a person by email (Admin only)
DELETE /api/v1/users/{userId} - Remove an account (Admin only)
"""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from taskline.api.deps import AuthContext, get_auth_context, require_admin
from taskline.core.database import get_session
from taskline.core.errors import BadRequest
from taskline.services import users as user_service
from taskline.services.tenancy import require_primary_tenant
from taskline_shared.schemas.users import (
    DirectoryAddRequest,
    DirectoryAddResponse,
    DirectoryEntry,
    MeResponse,
)

router = APIRouter()


@router.get("/me", response_model=MeResponse)
async def read_me(auth: AuthContext = Depends(get_auth_context)):
    return MeResponse(
        account=user_service.account_read(auth.account),
        effective=auth.effective.to_read(),
        tenant_ids=sorted(auth.tenant_ids, key=str),
    )


@router.get("", response_model=List[DirectoryEntry])
async def list_directory(
    auth: AuthContext = Depends(get_auth_context),
    session: AsyncSession = Depends(get_session),
):
    """List tenant members plus guests collaborating on tenant tasks."""
    return await user_service.list_directory(session, auth.role, auth.tenant_ids)


@router.post("", response_model=DirectoryAddResponse, status_code=201)
async def add_to_directory(
    body: DirectoryAddRequest,
    response: Response,
    auth: AuthContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Add a person to the directory (Admin only). Unknown emails become ghost accounts."""
    tenant_id = require_primary_tenant(auth.account, auth.tenant_ids)
    account, created = await user_service.add_to_directory(session, auth.role, tenant_id, body)
    await session.commit()

    if not created:
        response.status_code = 200
    return DirectoryAddResponse(
        account=user_service.account_read(account),
        created=created,
        message="Invitation created" if created else "Existing account linked to tenant",
    )


@router.delete("/{userId}", status_code=204)
async def delete_account(
    userId: uuid.UUID,
    auth: AuthContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Remove an account and its grants (Admin: own tenant only)."""
    if userId == auth.account_id:
        raise BadRequest("You cannot delete your own account")
    await user_service.delete_account(session, auth.role, auth.tenant_id, userId)
    await session.commit()
    return Response(status_code=204)
