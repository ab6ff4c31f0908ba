# taskhub/api/v1/schemas/users.py
from pydantic import BaseModel, UUID4
from typing import Optional
from datetime import datetime

from taskhub.db.models.enums import UserRole


class UserResponse(BaseModel):
    """
    Public projection of a user. The password hash is never included.
    """
    id: UUID4
    name: str
    email: str
    role: UserRole
    avatar: Optional[str] = None
    is_active: bool = True
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, user):
        return cls(
            id=user.uuid,
            name=user.name,
            email=user.email,
            role=user.role,
            avatar=user.avatar,
            is_active=user.is_active,
            created_at=user.created_at,
            updated_at=user.updated_at
        )


class RoleUpdate(BaseModel):
    """New role; checked against the known roles by the user policy"""
    role: str


class UserDeleted(BaseModel):
    message: str
    tasks_deleted: int
