"""Delegation grant schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .common import AccountRole, DelegationStatus


class DelegationCreate(BaseModel):
    """Request body for POST /delegations."""
    delegate_id: UUID
    days: int = Field(gt=0)


class DelegationRead(BaseModel):
    id: UUID
    delegator_id: UUID
    delegate_id: UUID
    tenant_id: UUID
    role: AccountRole
    status: DelegationStatus
    starts_at: datetime
    expires_at: datetime
    created_at: datetime
    delegate_name: Optional[str] = None
    delegate_email: Optional[str] = None
    delegate_avatar: Optional[str] = None
