"""
Task endpoints: visible-task listing, CRUD and collaboration invites.

- Listing runs the visibility resolver: tenant tasks, collaborations,
  direct assignments, or everything for `god`.
- Single-task routes go through the access gate first.
"""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskline.api.deps import AuthContext, get_auth_context
from taskline.core.database import get_session
from taskline.services.access import require_task_access
from taskline.services.tasks import create_task, enrich_task, invite_collaborator, update_task
from taskline.services.tenancy import require_primary_tenant
from taskline.services.visibility import list_visible_tasks
from taskline_shared.schemas.tasks import (
    CollaboratorRead,
    TaskCreate,
    TaskFilters,
    TaskInvite,
    TaskRead,
    TaskUpdate,
    VisibleTaskRead,
)

router = APIRouter()


@router.get("", response_model=List[VisibleTaskRead])
async def list_tasks_endpoint(
    filters: TaskFilters = Depends(),
    auth: AuthContext = Depends(get_auth_context),
    session: AsyncSession = Depends(get_session),
):
    """List every task the caller can see, with the access path that surfaced it."""
    return await list_visible_tasks(session, auth.account_id, auth.role, filters)


@router.post("", response_model=TaskRead, status_code=201)
async def create_task_endpoint(
    task_in: TaskCreate,
    auth: AuthContext = Depends(get_auth_context),
    session: AsyncSession = Depends(get_session),
):
    """Create a task in the caller's tenant, with its assignment list."""
    tenant_id = require_primary_tenant(auth.account, auth.tenant_ids)
    task = await create_task(session, task_in, tenant_id, auth.account_id)
    await session.commit()
    await session.refresh(task)
    return await enrich_task(session, task)


@router.get("/{task_id}", response_model=TaskRead)
async def get_task_endpoint(
    task_id: uuid.UUID,
    auth: AuthContext = Depends(get_auth_context),
    session: AsyncSession = Depends(get_session),
):
    task = await require_task_access(session, auth.account_id, auth.role, task_id)
    return await enrich_task(session, task)


@router.patch("/{task_id}", response_model=TaskRead)
async def update_task_endpoint(
    task_id: uuid.UUID,
    task_in: TaskUpdate,
    auth: AuthContext = Depends(get_auth_context),
    session: AsyncSession = Depends(get_session),
):
    """Update task fields; `assigned_to`, when present, replaces the assignment list."""
    task = await require_task_access(session, auth.account_id, auth.role, task_id)
    task = await update_task(session, task, task_in)
    await session.commit()
    await session.refresh(task)
    return await enrich_task(session, task)


@router.post("/{task_id}/invite", response_model=CollaboratorRead, status_code=201)
async def invite_collaborator_endpoint(
    task_id: uuid.UUID,
    invite: TaskInvite,
    auth: AuthContext = Depends(get_auth_context),
    session: AsyncSession = Depends(get_session),
):
    """Invite an email address to collaborate on one task."""
    task = await require_task_access(session, auth.account_id, auth.role, task_id)
    collaborator = await invite_collaborator(session, task, invite)
    await session.commit()
    return collaborator
