"""Project model."""

from datetime import date
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Project(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "projects"

    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    title: str = Field(nullable=False, max_length=150)
    description: Optional[str] = None
    status: str = Field(default="planning", nullable=False)  # planning | active | archived
    start_date: Optional[date] = Field(default=None, sa_type=sa.Date())
    end_date: Optional[date] = Field(default=None, sa_type=sa.Date())
