"""
Access gate for routes that read or mutate a single task by id.

Narrower than the visibility resolver: access is granted if the task's tenant
is one of the caller's tenants, the caller is `god`, or the caller holds a
collaboration grant on that task.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from taskline.core.errors import Forbidden, NotFound
from taskline.models.account import Account
from taskline.models.assignments import TaskCollaborator
from taskline.models.task import Task
from taskline.services.tenancy import tenant_ids_for
from taskline_shared.schemas.common import AccountRole

log = structlog.get_logger()


async def collaborator_level(
    session: AsyncSession, account_id: uuid.UUID, task_id: uuid.UUID
) -> Optional[str]:
    result = await session.execute(
        select(TaskCollaborator.access_level).where(
            TaskCollaborator.task_id == task_id,
            TaskCollaborator.account_id == account_id,
        )
    )
    return result.scalars().first()


async def _check(
    session: AsyncSession, account_id: uuid.UUID, role: AccountRole, task: Task
) -> bool:
    if AccountRole(role) == AccountRole.GOD:
        return True

    account = await session.get(Account, account_id)
    if account is None:
        return False
    if task.tenant_id in await tenant_ids_for(session, account):
        return True

    return await collaborator_level(session, account_id, task.id) is not None


async def can_access_task(
    session: AsyncSession, account_id: uuid.UUID, role: AccountRole, task_id: uuid.UUID
) -> bool:
    task = await session.get(Task, task_id)
    if task is None:
        return False
    return await _check(session, account_id, role, task)


async def require_task_access(
    session: AsyncSession, account_id: uuid.UUID, role: AccountRole, task_id: uuid.UUID
) -> Task:
    """Return the task or fail with NotFound (missing) / Forbidden (no access path)."""
    task = await session.get(Task, task_id)
    if task is None:
        raise NotFound("Task not found")
    if not await _check(session, account_id, role, task):
        log.info("access.denied", account_id=str(account_id), task_id=str(task_id))
        raise Forbidden("Access denied")
    return task
