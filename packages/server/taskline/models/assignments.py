"""Task access join tables: direct assignments and collaboration grants."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import UUIDMixin, utcnow


class TaskAssignment(SQLModel, table=True):
    __tablename__ = "task_assignments"

    task_id: uuid.UUID = Field(foreign_key="tasks.id", ondelete="CASCADE", primary_key=True)
    account_id: uuid.UUID = Field(
        foreign_key="accounts.id", ondelete="CASCADE", primary_key=True, index=True
    )
    assigned_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=sa.DateTime())


class TaskCollaborator(UUIDMixin, SQLModel, table=True):
    """Explicit per-task access for someone outside the task's tenant."""

    __tablename__ = "task_collaborators"
    __table_args__ = (sa.UniqueConstraint("task_id", "account_id"),)

    task_id: uuid.UUID = Field(foreign_key="tasks.id", ondelete="CASCADE", index=True)
    account_id: uuid.UUID = Field(foreign_key="accounts.id", ondelete="CASCADE", index=True)
    access_level: str = Field(nullable=False, default="collaborator_free")
    invited_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=sa.DateTime())
    joined_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime())
