"""Tenant model."""

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Tenant(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "tenants"

    name: str = Field(nullable=False, index=True, max_length=100)
