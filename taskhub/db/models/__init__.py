# taskhub/db/models/__init__.py
"""
Database models package
Imports all models for easy access
"""

# Import base classes and mixins
from taskhub.db.models.base import Base, TimestampMixin, UUIDMixin

# Import all enums
from taskhub.db.models.enums import TaskStatus, TaskPriority, UserRole

# Import authentication models
from taskhub.db.models.auth import User, RefreshToken, BlacklistedToken

# Import task models
from taskhub.db.models.task import Task, TaskTag

__all__ = [
    # Base classes
    'Base', 'TimestampMixin', 'UUIDMixin',

    # Enums
    'TaskStatus', 'TaskPriority', 'UserRole',

    # Authentication models
    'User', 'RefreshToken', 'BlacklistedToken',

    # Task models
    'Task', 'TaskTag',
]
