"""
Project service layer.

Projects belong to one tenant. Everyone sees the projects of their own
tenants; `god` sees all of them. Only elevated roles create projects.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from taskline.core.errors import Forbidden, NotFound
from taskline.models.project import Project
from taskline_shared.schemas.common import ELEVATED_ROLES, AccountRole
from taskline_shared.schemas.projects import ProjectCreate

log = structlog.get_logger()


async def list_projects(
    session: AsyncSession, role: AccountRole, tenant_ids: set[uuid.UUID]
) -> list[Project]:
    stmt = select(Project)
    if role != AccountRole.GOD:
        if not tenant_ids:
            return []
        stmt = stmt.where(Project.tenant_id.in_(tenant_ids))
    result = await session.execute(stmt.order_by(Project.created_at.desc()))
    return list(result.scalars().all())


async def create_project(
    session: AsyncSession,
    role: AccountRole,
    tenant_id: uuid.UUID,
    project_in: ProjectCreate,
    created_by: Optional[uuid.UUID] = None,
) -> Project:
    if AccountRole(role) not in ELEVATED_ROLES:
        raise Forbidden("Admin access required")

    project = Project(
        tenant_id=tenant_id,
        title=project_in.title,
        description=project_in.description,
        status=project_in.status.value,
        start_date=project_in.start_date,
        end_date=project_in.end_date,
    )
    session.add(project)
    await session.flush()

    log.info(
        "project.created",
        project_id=str(project.id),
        tenant_id=str(tenant_id),
        created_by=str(created_by) if created_by else None,
    )
    return project


async def get_tenant_project(
    session: AsyncSession, project_id: uuid.UUID, tenant_id: uuid.UUID
) -> Project:
    """A project in `tenant_id`. Projects in other tenants look the same as missing ones."""
    project = await session.get(Project, project_id)
    if not project or project.tenant_id != tenant_id:
        raise NotFound("Project not found")
    return project
