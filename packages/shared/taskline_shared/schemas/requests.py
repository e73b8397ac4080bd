"""Admin request (approval queue) schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .common import RequestStatus, RequestType


class AdminRequestCreate(BaseModel):
    type: RequestType
    payload: dict[str, Any] = Field(min_length=1)


class AdminRequestResolve(BaseModel):
    """Request body for PATCH /requests/{id}/resolve."""
    status: RequestStatus
    admin_notes: Optional[str] = None


class AdminRequestRead(BaseModel):
    id: UUID
    tenant_id: UUID
    requester_id: UUID
    type: RequestType
    payload: dict[str, Any]
    status: RequestStatus
    admin_notes: Optional[str] = None
    requester_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime
