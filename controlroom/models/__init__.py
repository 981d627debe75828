# Control Room Models
from controlroom.models.database import (
    Base,
    create_tables,
    create_async_db_engine,
    create_async_session_factory,
)
from controlroom.models.user import User, Role
from controlroom.models.policy import Policy, PolicyStatus, DeletedPolicy
from controlroom.models.notification import Notification, NotificationType
from controlroom.models.signature import PolicySignature
from controlroom.models.pin import PinnedPolicy

__all__ = [
    "Base",
    "create_tables",
    "create_async_db_engine",
    "create_async_session_factory",
    "User",
    "Role",
    "Policy",
    "PolicyStatus",
    "DeletedPolicy",
    "Notification",
    "NotificationType",
    "PolicySignature",
    "PinnedPolicy",
]
