"""Task-related Pydantic schemas for shared use across server and frontend codegen."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from .common import AccessLevel, AccessSource, TaskPriority, TaskStatus


# ---------------------------------------------------------------------------
# Task CRUD
# ---------------------------------------------------------------------------

class TaskBase(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.TODO
    due_date: Optional[datetime] = None
    project_id: Optional[UUID] = None


class TaskCreate(TaskBase):
    assigned_to: List[UUID] = Field(default_factory=list)


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    due_date: Optional[datetime] = None
    project_id: Optional[UUID] = None
    assigned_to: Optional[List[UUID]] = None


class TaskRead(BaseModel):
    id: UUID
    tenant_id: UUID
    title: str
    description: Optional[str] = None
    priority: Optional[str] = None
    status: str
    due_date: Optional[datetime] = None
    project_id: Optional[UUID] = None
    created_by: Optional[UUID] = None
    assigned_to: List[UUID] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class VisibleTaskRead(TaskRead):
    """A task as seen by one account: which path surfaced it and whether they created it."""
    access_source: AccessSource
    is_owner: bool


class TaskFilters(BaseModel):
    project_id: Optional[UUID] = None
    status: Optional[TaskStatus] = None


# ---------------------------------------------------------------------------
# Collaboration invites
# ---------------------------------------------------------------------------

class TaskInvite(BaseModel):
    """Request body for POST /tasks/{taskId}/invite."""
    email: EmailStr
    access_level: AccessLevel = AccessLevel.COLLABORATOR_FREE


class CollaboratorRead(BaseModel):
    task_id: UUID
    account_id: UUID
    access_level: AccessLevel
    invited_at: datetime
    joined_at: Optional[datetime] = None
