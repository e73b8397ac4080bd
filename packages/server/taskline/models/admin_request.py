"""Approval queue entries filed by accounts for admins to resolve."""

from typing import Any, Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class AdminRequest(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "admin_requests"

    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", ondelete="CASCADE", index=True)
    requester_id: uuid.UUID = Field(foreign_key="accounts.id", ondelete="CASCADE", index=True)
    type: str = Field(nullable=False, max_length=50)  # DELETE_USER | REASSIGN_TASK
    payload: dict[str, Any] = Field(default_factory=dict, sa_type=sa.JSON, nullable=False)
    status: str = Field(nullable=False, default="PENDING", index=True)
    admin_notes: Optional[str] = None
