"""
Admin request queue: accounts file commands, admins approve or reject them.

Approving runs the command and marks the request resolved in the same
transaction. If the command fails, the request stays PENDING.
"""

from __future__ import annotations

import uuid
from typing import Any, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from taskline.core.errors import BadRequest, Forbidden, NotFound
from taskline.models.account import Account
from taskline.models.admin_request import AdminRequest
from taskline.models.task import Task
from taskline.services.tasks import replace_assignments
from taskline.services.users import delete_account
from taskline_shared.schemas.common import (
    ELEVATED_ROLES,
    AccountRole,
    RequestStatus,
    RequestType,
)
from taskline_shared.schemas.requests import (
    AdminRequestCreate,
    AdminRequestRead,
    AdminRequestResolve,
)

log = structlog.get_logger()


def to_read(req: AdminRequest, requester: Optional[Account] = None) -> AdminRequestRead:
    return AdminRequestRead(
        id=req.id,
        tenant_id=req.tenant_id,
        requester_id=req.requester_id,
        type=req.type,
        payload=req.payload,
        status=req.status,
        admin_notes=req.admin_notes,
        requester_name=requester.display_name if requester else None,
        created_at=req.created_at,
        updated_at=req.updated_at,
    )


def _payload_uuid(payload: dict[str, Any], key: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(payload[key]))
    except (KeyError, ValueError) as exc:
        raise BadRequest(f"Payload field '{key}' must be a UUID") from exc


def validate_payload(req_type: RequestType, payload: dict[str, Any]) -> None:
    if req_type == RequestType.DELETE_USER:
        _payload_uuid(payload, "target_account_id")
    elif req_type == RequestType.REASSIGN_TASK:
        _payload_uuid(payload, "task_id")
        _payload_uuid(payload, "to_account_id")


async def file_request(
    session: AsyncSession,
    requester_id: uuid.UUID,
    tenant_id: uuid.UUID,
    req_in: AdminRequestCreate,
) -> AdminRequest:
    validate_payload(req_in.type, req_in.payload)
    req = AdminRequest(
        tenant_id=tenant_id,
        requester_id=requester_id,
        type=req_in.type.value,
        payload=req_in.payload,
        status=RequestStatus.PENDING.value,
    )
    session.add(req)
    await session.flush()
    log.info("request.filed", request_id=str(req.id), type=req.type, tenant_id=str(tenant_id))
    return req


async def list_requests(
    session: AsyncSession,
    role: AccountRole,
    tenant_id: Optional[uuid.UUID],
    status: Optional[RequestStatus] = None,
) -> list[AdminRequestRead]:
    role = AccountRole(role)
    if role not in ELEVATED_ROLES:
        raise Forbidden("Admins only")

    stmt = select(AdminRequest, Account).join(
        Account, Account.id == AdminRequest.requester_id, isouter=True
    )
    if role != AccountRole.GOD:
        stmt = stmt.where(AdminRequest.tenant_id == tenant_id)
    if status:
        stmt = stmt.where(AdminRequest.status == status.value)
    stmt = stmt.order_by(AdminRequest.created_at.desc())

    result = await session.execute(stmt)
    return [to_read(req, requester) for req, requester in result.all()]


async def _execute_command(
    session: AsyncSession, role: AccountRole, req: AdminRequest
) -> None:
    req_type = RequestType(req.type)
    if req_type == RequestType.DELETE_USER:
        target_id = _payload_uuid(req.payload, "target_account_id")
        if target_id == req.requester_id:
            raise BadRequest("A request cannot delete its own requester")
        await delete_account(session, role, req.tenant_id, target_id)
    elif req_type == RequestType.REASSIGN_TASK:
        task_id = _payload_uuid(req.payload, "task_id")
        to_account_id = _payload_uuid(req.payload, "to_account_id")
        task = await session.get(Task, task_id)
        if not task or (role != AccountRole.GOD and task.tenant_id != req.tenant_id):
            raise NotFound("Task not found")
        if not await session.get(Account, to_account_id):
            raise NotFound("Account not found")
        await replace_assignments(session, task.id, [to_account_id])
        await session.flush()


async def resolve_request(
    session: AsyncSession,
    role: AccountRole,
    tenant_id: Optional[uuid.UUID],
    request_id: uuid.UUID,
    body: AdminRequestResolve,
) -> AdminRequest:
    role = AccountRole(role)
    if role not in ELEVATED_ROLES:
        raise Forbidden("Forbidden")
    if body.status == RequestStatus.PENDING:
        raise BadRequest("Invalid status. Must be APPROVED or REJECTED.")

    stmt = select(AdminRequest).where(AdminRequest.id == request_id)
    if role != AccountRole.GOD:
        stmt = stmt.where(AdminRequest.tenant_id == tenant_id)
    req = (await session.execute(stmt)).scalar_one_or_none()
    if not req:
        raise NotFound("Request not found")
    if req.status != RequestStatus.PENDING.value:
        raise BadRequest("Request is already resolved")

    if body.status == RequestStatus.APPROVED:
        await _execute_command(session, role, req)

    req.status = body.status.value
    req.admin_notes = body.admin_notes
    session.add(req)
    await session.flush()

    log.info("request.resolved", request_id=str(req.id), status=req.status, type=req.type)
    return req
