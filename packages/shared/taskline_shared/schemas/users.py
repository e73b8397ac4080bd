"""Account and directory schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from .common import AccountRole, AccountStatus


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class DirectoryAddRequest(BaseModel):
    """Add a person to the caller's tenant directory (creates a ghost if unknown)."""
    email: EmailStr
    name: str = Field(min_length=1, max_length=100)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class AccountRead(BaseModel):
    id: UUID
    email: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    role: AccountRole
    status: AccountStatus
    tenant_id: Optional[UUID] = None
    created_at: datetime


class EffectiveRoleRead(BaseModel):
    """The role used for authorization right now."""
    role: AccountRole
    is_delegated: bool = False
    expires_at: Optional[datetime] = None


class MeResponse(BaseModel):
    account: AccountRead
    effective: EffectiveRoleRead
    tenant_ids: List[UUID] = Field(default_factory=list)


class DirectoryEntry(BaseModel):
    """One row of the tenant directory. Guests carry role 'guest'."""
    id: UUID
    name: str
    email: str
    role: str  # user | admin | god | guest
    avatar: Optional[str] = None
    source: str  # member | guest | all


class DirectoryAddResponse(BaseModel):
    account: AccountRead
    created: bool
    message: str
