"""
Admin request queue endpoints.

POST  /api/v1/requests                    - File a request (any account)
GET   /api/v1/requests?status=            - List requests (Admin only)
PATCH /api/v1/requests/{requestId}/resolve - Approve or reject (Admin only)
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskline.api.deps import AuthContext, get_auth_context, require_admin
from taskline.core.database import get_session
from taskline.services import requests as request_service
from taskline.services.tenancy import require_primary_tenant
from taskline_shared.schemas.common import RequestStatus
from taskline_shared.schemas.requests import (
    AdminRequestCreate,
    AdminRequestRead,
    AdminRequestResolve,
)

router = APIRouter()


@router.post("", response_model=AdminRequestRead, status_code=201)
async def file_request(
    body: AdminRequestCreate,
    auth: AuthContext = Depends(get_auth_context),
    session: AsyncSession = Depends(get_session),
):
    tenant_id = require_primary_tenant(auth.account, auth.tenant_ids)
    req = await request_service.file_request(session, auth.account_id, tenant_id, body)
    await session.commit()
    await session.refresh(req)
    return request_service.to_read(req, auth.account)


@router.get("", response_model=List[AdminRequestRead])
async def list_requests(
    status: Optional[RequestStatus] = None,
    auth: AuthContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Newest first. Admins see their tenant's queue; god sees every tenant."""
    return await request_service.list_requests(session, auth.role, auth.tenant_id, status)


@router.patch("/{requestId}/resolve", response_model=AdminRequestRead)
async def resolve_request(
    requestId: uuid.UUID,
    body: AdminRequestResolve,
    auth: AuthContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Approve (runs the command) or reject a pending request."""
    req = await request_service.resolve_request(
        session, auth.role, auth.tenant_id, requestId, body
    )
    await session.commit()
    await session.refresh(req)
    return request_service.to_read(req)
