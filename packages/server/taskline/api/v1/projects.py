"""
Project endpoints.

GET  /api/v1/projects   - Projects in the caller's tenants (all of them for `god`)
POST /api/v1/projects   - Create a project in the caller's tenant (Admin only)
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskline.api.deps import AuthContext, get_auth_context, require_admin
from taskline.core.database import get_session
from taskline.services import projects as project_service
from taskline.services.tenancy import require_primary_tenant
from taskline_shared.schemas.projects import ProjectCreate, ProjectRead

router = APIRouter()


@router.get("", response_model=List[ProjectRead])
async def list_projects(
    auth: AuthContext = Depends(get_auth_context),
    session: AsyncSession = Depends(get_session),
):
    """List projects, newest first."""
    return await project_service.list_projects(session, auth.role, auth.tenant_ids)


@router.post("", response_model=ProjectRead, status_code=201)
async def create_project(
    project_in: ProjectCreate,
    auth: AuthContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    tenant_id = require_primary_tenant(auth.account, auth.tenant_ids)
    project = await project_service.create_project(
        session, auth.role, tenant_id, project_in, created_by=auth.account_id
    )
    await session.commit()
    await session.refresh(project)
    return project
