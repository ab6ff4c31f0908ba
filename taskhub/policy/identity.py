# taskhub/policy/identity.py
"""Identity context handed to every policy function"""
from dataclasses import dataclass
from uuid import UUID

from taskhub.db.models import User, UserRole
from taskhub.exceptions.policy import PolicyValidationError


@dataclass(frozen=True)
class Identity:
    """The authenticated caller: public id, role, and internal row id"""
    user_id: UUID
    role: UserRole
    pk: int

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @classmethod
    def from_user(cls, user: User) -> "Identity":
        return cls(user_id=user.uuid, role=UserRole(user.role), pk=user.id)


def parse_id(value, label: str = "Id") -> UUID:
    """Parse a public id, rejecting malformed values as a bad request"""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise PolicyValidationError(f"{label} not valid")
