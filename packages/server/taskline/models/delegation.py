"""Role delegation grants.

A grant is live only while status is `active` and starts_at <= now < expires_at.
There is no `expired` status: lapsed grants simply stop matching.
"""

from datetime import datetime
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import UUIDMixin, utcnow


class DelegationGrant(UUIDMixin, SQLModel, table=True):
    __tablename__ = "role_delegations"

    delegator_id: uuid.UUID = Field(foreign_key="accounts.id", ondelete="CASCADE", nullable=False)
    delegate_id: uuid.UUID = Field(
        foreign_key="accounts.id", ondelete="CASCADE", nullable=False, index=True
    )
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    role: str = Field(nullable=False, default="admin")
    status: str = Field(nullable=False, default="active")  # active | cancelled
    starts_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=sa.DateTime())
    expires_at: datetime = Field(nullable=False, sa_type=sa.DateTime())
    created_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=sa.DateTime())
