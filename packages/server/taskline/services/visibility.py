"""
Task visibility: which tasks an account may read, and why.

A task is visible through any of four independent access paths:

    god            effective role is `god`; every task, tagged `god`
    membership     task's tenant is one of the account's tenants;
                   tagged `owner` if the account created it, else `member`
    collaboration  explicit per-task grant; tagged with the grant's level
    assignment     the account is in the task's assignment list; `assignee`

Each path is its own query. Results are merged by task id, and a task
reachable through several paths keeps the tag of the highest-precedence one
(ACCESS_PATH_PRECEDENCE). A god caller is served by the god path alone.

`is_owner` is computed per row from the creator id and never depends on
which path won.
"""

from __future__ import annotations

import math
import uuid
from collections import defaultdict
from datetime import datetime
from enum import Enum
from typing import Iterable, NamedTuple, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from taskline.core.errors import NotFound
from taskline.models.account import Account
from taskline.models.assignments import TaskAssignment, TaskCollaborator
from taskline.models.task import Task
from taskline.services.tenancy import tenant_ids_for
from taskline_shared.schemas.common import AccessSource, AccountRole
from taskline_shared.schemas.tasks import TaskFilters, VisibleTaskRead


class AccessPath(str, Enum):
    GOD = "god"
    MEMBERSHIP = "membership"
    COLLABORATION = "collaboration"
    ASSIGNMENT = "assignment"


ACCESS_PATH_PRECEDENCE: tuple[AccessPath, ...] = (
    AccessPath.GOD,
    AccessPath.MEMBERSHIP,
    AccessPath.COLLABORATION,
    AccessPath.ASSIGNMENT,
)

_PATH_RANK = {path: rank for rank, path in enumerate(ACCESS_PATH_PRECEDENCE)}

PRIORITY_RANK = {"high": 1, "medium": 2, "low": 3}


class AccessHit(NamedTuple):
    task: Task
    path: AccessPath
    source: AccessSource


# ---------------------------------------------------------------------------
# Pure policy
# ---------------------------------------------------------------------------


def merge_access_hits(hits: Iterable[AccessHit]) -> list[AccessHit]:
    """Collapse hits to one per task, keeping the highest-precedence path."""
    best: dict[uuid.UUID, AccessHit] = {}
    for hit in hits:
        current = best.get(hit.task.id)
        if current is None or _PATH_RANK[hit.path] < _PATH_RANK[current.path]:
            best[hit.task.id] = hit
    return list(best.values())


def membership_source(task: Task, account_id: uuid.UUID) -> AccessSource:
    return AccessSource.OWNER if task.created_by == account_id else AccessSource.MEMBER


def collaborator_source(access_level: Optional[str]) -> AccessSource:
    if access_level == AccessSource.COLLABORATOR_PAID.value:
        return AccessSource.COLLABORATOR_PAID
    return AccessSource.COLLABORATOR_FREE


def priority_rank(priority: Optional[str]) -> float:
    """Numeric rank, lower first. Missing or unrecognized priorities sort last."""
    if priority is None:
        return math.inf
    value = priority.strip().lower()
    if value in PRIORITY_RANK:
        return PRIORITY_RANK[value]
    try:
        return float(value)
    except ValueError:
        return math.inf


def task_sort_key(task) -> tuple:
    """Due date ascending (missing last), then priority rank."""
    due: Optional[datetime] = task.due_date
    return (due is None, due or datetime.min, priority_rank(task.priority))


# ---------------------------------------------------------------------------
# Access path queries
# ---------------------------------------------------------------------------


def _filtered(stmt, filters: TaskFilters):
    if filters.project_id:
        stmt = stmt.where(Task.project_id == filters.project_id)
    if filters.status:
        stmt = stmt.where(Task.status == filters.status.value)
    return stmt


async def _god_hits(session: AsyncSession, filters: TaskFilters) -> list[AccessHit]:
    result = await session.execute(_filtered(select(Task), filters))
    return [AccessHit(t, AccessPath.GOD, AccessSource.GOD) for t in result.scalars().all()]


async def _membership_hits(
    session: AsyncSession,
    account_id: uuid.UUID,
    tenant_ids: set[uuid.UUID],
    filters: TaskFilters,
) -> list[AccessHit]:
    if not tenant_ids:
        return []
    result = await session.execute(
        _filtered(select(Task).where(Task.tenant_id.in_(tenant_ids)), filters)
    )
    return [
        AccessHit(t, AccessPath.MEMBERSHIP, membership_source(t, account_id))
        for t in result.scalars().all()
    ]


async def _collaboration_hits(
    session: AsyncSession, account_id: uuid.UUID, filters: TaskFilters
) -> list[AccessHit]:
    stmt = (
        select(Task, TaskCollaborator.access_level)
        .join(TaskCollaborator, TaskCollaborator.task_id == Task.id)
        .where(TaskCollaborator.account_id == account_id)
    )
    result = await session.execute(_filtered(stmt, filters))
    return [
        AccessHit(t, AccessPath.COLLABORATION, collaborator_source(level))
        for t, level in result.all()
    ]


async def _assignment_hits(
    session: AsyncSession, account_id: uuid.UUID, filters: TaskFilters
) -> list[AccessHit]:
    stmt = (
        select(Task)
        .join(TaskAssignment, TaskAssignment.task_id == Task.id)
        .where(TaskAssignment.account_id == account_id)
    )
    result = await session.execute(_filtered(stmt, filters))
    return [
        AccessHit(t, AccessPath.ASSIGNMENT, AccessSource.ASSIGNEE)
        for t in result.scalars().all()
    ]


async def collect_access_hits(
    session: AsyncSession,
    account: Account,
    role: AccountRole,
    filters: TaskFilters,
) -> list[AccessHit]:
    if AccountRole(role) == AccountRole.GOD:
        return await _god_hits(session, filters)

    tenant_ids = await tenant_ids_for(session, account)
    hits: list[AccessHit] = []
    hits += await _membership_hits(session, account.id, tenant_ids, filters)
    hits += await _collaboration_hits(session, account.id, filters)
    hits += await _assignment_hits(session, account.id, filters)
    return hits


# ---------------------------------------------------------------------------
# Enrichment
# ---------------------------------------------------------------------------


async def assignments_by_task(
    session: AsyncSession, task_ids: Sequence[uuid.UUID]
) -> dict[uuid.UUID, list[uuid.UUID]]:
    if not task_ids:
        return {}
    result = await session.execute(
        select(TaskAssignment.task_id, TaskAssignment.account_id)
        .where(TaskAssignment.task_id.in_(task_ids))
        .order_by(TaskAssignment.assigned_at)
    )
    mapping: dict[uuid.UUID, list[uuid.UUID]] = defaultdict(list)
    for task_id, account_id in result.all():
        mapping[task_id].append(account_id)
    return mapping


def to_visible(
    hit: AccessHit, account_id: uuid.UUID, assigned_to: list[uuid.UUID]
) -> VisibleTaskRead:
    task = hit.task
    return VisibleTaskRead(
        id=task.id,
        tenant_id=task.tenant_id,
        title=task.title,
        description=task.description,
        priority=task.priority,
        status=task.status,
        due_date=task.due_date,
        project_id=task.project_id,
        created_by=task.created_by,
        assigned_to=assigned_to,
        created_at=task.created_at,
        updated_at=task.updated_at,
        access_source=hit.source,
        is_owner=task.created_by == account_id,
    )


async def list_visible_tasks(
    session: AsyncSession,
    account_id: uuid.UUID,
    role: AccountRole,
    filters: Optional[TaskFilters] = None,
) -> list[VisibleTaskRead]:
    """Every task `account_id` may read under `role`, tagged and sorted.

    An account with no memberships, grants or assignments gets an empty list.
    """
    filters = filters or TaskFilters()
    account = await session.get(Account, account_id)
    if not account:
        raise NotFound("Account not found")

    hits = merge_access_hits(await collect_access_hits(session, account, role, filters))
    hits.sort(key=lambda h: task_sort_key(h.task))

    assigned = await assignments_by_task(session, [h.task.id for h in hits])
    return [to_visible(h, account_id, assigned.get(h.task.id, [])) for h in hits]
