from enum import Enum

class AccountRole(str, Enum):
    USER = "user"
    ADMIN = "admin"
    GOD = "god"

# Roles allowed to manage delegations, directory entries and requests
ELEVATED_ROLES: frozenset["AccountRole"] = frozenset({AccountRole.ADMIN, AccountRole.GOD})

class AccountStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"

class TaskStatus(str, Enum):
    TODO = "todo"
    DOING = "doing"
    PAUSED = "paused"
    DONE = "done"

class TaskPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

class AccessLevel(str, Enum):
    COLLABORATOR_FREE = "collaborator_free"
    COLLABORATOR_PAID = "collaborator_paid"

class AccessSource(str, Enum):
    GOD = "god"
    OWNER = "owner"
    MEMBER = "member"
    COLLABORATOR_FREE = "collaborator_free"
    COLLABORATOR_PAID = "collaborator_paid"
    ASSIGNEE = "assignee"

class DelegationStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"

class RequestType(str, Enum):
    DELETE_USER = "DELETE_USER"
    REASSIGN_TASK = "REASSIGN_TASK"

class RequestStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

class ProjectStatus(str, Enum):
    PLANNING = "planning"
    ACTIVE = "active"
    ARCHIVED = "archived"
