"""
Task service layer: business logic for tasks, assignments and collaboration invites.

Handles:
- Task CRUD with assignment lists (task + assignments flushed in one transaction)
- Collaboration invites by email, provisioning ghost accounts on demand
- Enrichment of task data for API responses
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from taskline.core.errors import BadRequest
from taskline.models.account import Account
from taskline.models.assignments import TaskAssignment, TaskCollaborator
from taskline.models.base import as_naive_utc, utcnow
from taskline.models.task import Task
from taskline.services.projects import get_tenant_project
from taskline.services.users import ensure_ghost_account
from taskline_shared.schemas.tasks import (
    CollaboratorRead,
    TaskCreate,
    TaskInvite,
    TaskRead,
    TaskUpdate,
)

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _get_assignee_ids(session: AsyncSession, task_id: uuid.UUID) -> list[uuid.UUID]:
    result = await session.execute(
        select(TaskAssignment.account_id)
        .where(TaskAssignment.task_id == task_id)
        .order_by(TaskAssignment.assigned_at)
    )
    return [row[0] for row in result.all()]


async def _check_accounts_exist(session: AsyncSession, account_ids: list[uuid.UUID]) -> None:
    if not account_ids:
        return
    result = await session.execute(select(Account.id).where(Account.id.in_(account_ids)))
    found = {row[0] for row in result.all()}
    missing = [str(a) for a in account_ids if a not in found]
    if missing:
        raise BadRequest(f"Unknown assignee ids: {', '.join(missing)}")


async def _check_project(
    session: AsyncSession, project_id: Optional[uuid.UUID], tenant_id: uuid.UUID
) -> None:
    if project_id is None:
        return
    await get_tenant_project(session, project_id, tenant_id)


async def replace_assignments(
    session: AsyncSession, task_id: uuid.UUID, account_ids: list[uuid.UUID]
) -> None:
    await session.execute(delete(TaskAssignment).where(TaskAssignment.task_id == task_id))
    for account_id in dict.fromkeys(account_ids):
        session.add(TaskAssignment(task_id=task_id, account_id=account_id))


async def enrich_task(session: AsyncSession, task: Task) -> TaskRead:
    """Convert a Task ORM object to a TaskRead with its assignment list."""
    return TaskRead(
        id=task.id,
        tenant_id=task.tenant_id,
        title=task.title,
        description=task.description,
        priority=task.priority,
        status=task.status,
        due_date=task.due_date,
        project_id=task.project_id,
        created_by=task.created_by,
        assigned_to=await _get_assignee_ids(session, task.id),
        created_at=task.created_at,
        updated_at=task.updated_at,
    )


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


async def create_task(
    session: AsyncSession,
    task_in: TaskCreate,
    tenant_id: uuid.UUID,
    creator_id: uuid.UUID,
) -> Task:
    await _check_project(session, task_in.project_id, tenant_id)
    await _check_accounts_exist(session, task_in.assigned_to)

    task = Task(
        tenant_id=tenant_id,
        title=task_in.title,
        description=task_in.description,
        priority=task_in.priority.value,
        status=task_in.status.value,
        due_date=as_naive_utc(task_in.due_date) if task_in.due_date else None,
        project_id=task_in.project_id,
        created_by=creator_id,
    )
    session.add(task)
    await session.flush()

    await replace_assignments(session, task.id, task_in.assigned_to)
    await session.flush()

    log.info(
        "task.created",
        task_id=str(task.id),
        tenant_id=str(tenant_id),
        creator_id=str(creator_id),
        assignees=len(task_in.assigned_to),
    )
    return task


async def update_task(session: AsyncSession, task: Task, task_in: TaskUpdate) -> Task:
    data = task_in.model_dump(exclude_unset=True)

    if "assigned_to" in data:
        assigned_to = data.pop("assigned_to") or []
        await _check_accounts_exist(session, assigned_to)
        await replace_assignments(session, task.id, assigned_to)

    if data.get("project_id") is not None:
        await _check_project(session, data["project_id"], task.tenant_id)

    for key in ("priority", "status"):
        if data.get(key) is not None:
            data[key] = data[key].value if hasattr(data[key], "value") else data[key]
    if data.get("due_date") is not None:
        data["due_date"] = as_naive_utc(data["due_date"])

    for key, value in data.items():
        if key in ("title", "status") and value is None:
            continue
        setattr(task, key, value)

    session.add(task)
    await session.flush()
    log.info("task.updated", task_id=str(task.id), fields=sorted(data))
    return task


# ---------------------------------------------------------------------------
# Collaboration
# ---------------------------------------------------------------------------


async def invite_collaborator(
    session: AsyncSession, task: Task, invite: TaskInvite
) -> CollaboratorRead:
    """Grant per-task access to an email address. Re-inviting updates the access level."""
    account, created = await ensure_ghost_account(session, invite.email)

    result = await session.execute(
        select(TaskCollaborator).where(
            TaskCollaborator.task_id == task.id,
            TaskCollaborator.account_id == account.id,
        )
    )
    grant = result.scalar_one_or_none()
    if grant is None:
        grant = TaskCollaborator(
            task_id=task.id,
            account_id=account.id,
            access_level=invite.access_level.value,
            joined_at=None if account.is_ghost else utcnow(),
        )
    else:
        grant.access_level = invite.access_level.value
    session.add(grant)
    await session.flush()

    log.info(
        "task.collaborator_invited",
        task_id=str(task.id),
        account_id=str(account.id),
        ghost_created=created,
        access_level=grant.access_level,
    )
    return CollaboratorRead(
        task_id=grant.task_id,
        account_id=grant.account_id,
        access_level=grant.access_level,
        invited_at=grant.invited_at,
        joined_at=grant.joined_at,
    )
