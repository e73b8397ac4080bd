"""Task model."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Task(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "tasks"

    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    title: str = Field(nullable=False, max_length=255)
    description: Optional[str] = None
    priority: Optional[str] = Field(default="medium")  # high | medium | low
    status: str = Field(nullable=False, default="todo", index=True)  # todo | doing | paused | done
    due_date: Optional[datetime] = Field(default=None, index=True, sa_type=sa.DateTime())
    project_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="projects.id", ondelete="SET NULL", index=True
    )
    created_by: Optional[uuid.UUID] = Field(
        default=None, foreign_key="accounts.id", ondelete="SET NULL"
    )
