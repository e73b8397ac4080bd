"""Account-Tenant membership (join table)."""

from datetime import datetime
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import UUIDMixin, utcnow


class Membership(UUIDMixin, SQLModel, table=True):
    __tablename__ = "memberships"
    __table_args__ = (sa.UniqueConstraint("account_id", "tenant_id"),)

    account_id: uuid.UUID = Field(foreign_key="accounts.id", ondelete="CASCADE", index=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", ondelete="CASCADE", index=True)
    role: str = Field(nullable=False, default="user")
    created_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=sa.DateTime())
