"""Account model.

An account whose `auth_subject` is NULL is a ghost: provisioned by an
invitation or a directory add, not yet claimed by a real login.
"""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import UUIDMixin, utcnow


class Account(UUIDMixin, SQLModel, table=True):
    __tablename__ = "accounts"

    auth_subject: Optional[str] = Field(default=None, unique=True, index=True, max_length=128)
    email: str = Field(nullable=False, unique=True, index=True, max_length=255)
    display_name: Optional[str] = Field(default=None, max_length=100)
    avatar_url: Optional[str] = None
    role: str = Field(nullable=False, default="user")  # user | admin | god
    status: str = Field(nullable=False, default="active")  # pending | active
    tenant_id: Optional[uuid.UUID] = Field(default=None, foreign_key="tenants.id", index=True)
    company_label: Optional[str] = Field(default=None, max_length=100)
    created_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=sa.DateTime())

    @property
    def is_ghost(self) -> bool:
        return self.auth_subject is None
