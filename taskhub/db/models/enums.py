# taskhub/db/models/enums.py
import enum


class TaskStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class UserRole(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


def enum_values(enum_cls) -> list:
    """Persist enum values rather than member names"""
    return [member.value for member in enum_cls]
