# SQLModel definitions, imported here to ensure metadata is populated for create_all.
from .base import UUIDMixin, TimestampMixin  # noqa: F401
from .tenant import Tenant  # noqa: F401
from .account import Account  # noqa: F401
from .membership import Membership  # noqa: F401
from .project import Project  # noqa: F401
from .task import Task  # noqa: F401
from .assignments import TaskAssignment, TaskCollaborator  # noqa: F401
from .delegation import DelegationGrant  # noqa: F401
from .admin_request import AdminRequest  # noqa: F401
