"""
Row factories and token helpers shared by the test modules.
"""

from __future__ import annotations

import time
from typing import Optional

import jwt
from sqlalchemy.ext.asyncio import AsyncSession

from taskline.models.account import Account
from taskline.models.assignments import TaskAssignment, TaskCollaborator
from taskline.models.membership import Membership
from taskline.models.task import Task
from taskline.models.tenant import Tenant

TEST_SECRET = "taskline-test-secret-with-enough-bytes"
SUPER_ADMIN_EMAIL = "root@acme.io"


def make_token(
    subject: str,
    email: Optional[str] = None,
    name: Optional[str] = None,
    picture: Optional[str] = None,
    expires_in: int = 300,
    secret: str = TEST_SECRET,
) -> str:
    """Sign an issuer-style assertion with the test secret."""
    claims = {"sub": subject, "exp": int(time.time()) + expires_in}
    if email is not None:
        claims["email"] = email
    if name is not None:
        claims["name"] = name
    if picture is not None:
        claims["picture"] = picture
    return jwt.encode(claims, secret, algorithm="HS256")


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def make_tenant(session: AsyncSession, name: str = "Acme") -> Tenant:
    tenant = Tenant(name=name)
    session.add(tenant)
    await session.flush()
    return tenant


async def make_account(
    session: AsyncSession,
    email: str,
    *,
    tenant: Optional[Tenant] = None,
    role: str = "user",
    subject: Optional[str] = None,
    display_name: Optional[str] = None,
    avatar_url: str = "",
    status: str = "active",
    legacy_tenant: bool = False,
) -> Account:
    """Create an account. With `tenant`, links it via membership (or the legacy field)."""
    account = Account(
        email=email,
        auth_subject=subject,
        display_name=display_name if display_name is not None else email.split("@")[0].title(),
        avatar_url=avatar_url,
        role=role,
        status=status,
        tenant_id=tenant.id if tenant and legacy_tenant else None,
    )
    session.add(account)
    await session.flush()
    if tenant and not legacy_tenant:
        session.add(Membership(account_id=account.id, tenant_id=tenant.id, role=role))
        await session.flush()
    return account


async def make_ghost(session: AsyncSession, email: str, **kwargs) -> Account:
    return await make_account(session, email, subject=None, status="pending", **kwargs)


async def make_task(
    session: AsyncSession,
    tenant: Tenant,
    creator: Optional[Account],
    title: str = "Task",
    **fields,
) -> Task:
    task = Task(
        tenant_id=tenant.id,
        title=title,
        created_by=creator.id if creator else None,
        **fields,
    )
    session.add(task)
    await session.flush()
    return task


async def assign(session: AsyncSession, task: Task, account: Account) -> None:
    session.add(TaskAssignment(task_id=task.id, account_id=account.id))
    await session.flush()


async def collaborate(
    session: AsyncSession, task: Task, account: Account, level: str = "collaborator_free"
) -> None:
    session.add(TaskCollaborator(task_id=task.id, account_id=account.id, access_level=level))
    await session.flush()
