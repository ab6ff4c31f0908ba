# taskhub/policy/users.py
"""User role and lifecycle policy: role changes, deletion, avatars"""
from typing import List

from fastapi import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.api.v1.schemas.users import UserResponse, UserDeleted
from taskhub.core import tracing
from taskhub.db import crud
from taskhub.db.models import UserRole
from taskhub.exceptions.policy import ForbiddenError, PolicyValidationError, UserNotFoundError
from taskhub.policy.identity import Identity, parse_id
from taskhub.storage.avatars import AvatarStorage, avatar_storage


def _require_admin(identity: Identity, action: str) -> None:
    if not identity.is_admin:
        tracing.warning("Admin operation refused", action=action, user_id=str(identity.user_id))
        raise ForbiddenError(f"Only admins can {action}")


async def list_users(db: AsyncSession, identity: Identity) -> List[UserResponse]:
    _require_admin(identity, "list users")
    return [UserResponse.from_model(user) for user in await crud.list_users(db)]


async def change_role(db: AsyncSession, identity: Identity, user_id, role) -> UserResponse:
    _require_admin(identity, "change roles")

    try:
        new_role = UserRole(role)
    except ValueError:
        raise PolicyValidationError("Invalid role")
    target_uuid = parse_id(user_id, "User id")

    user = await crud.get_user_by_uuid(db, target_uuid)
    if user is None:
        raise UserNotFoundError()

    user = await crud.update_user_db(db, user, {"role": new_role})
    tracing.info("User role changed", user_id=str(user.uuid), role=new_role.value, by=str(identity.user_id))
    return UserResponse.from_model(user)


async def delete_user(
        db: AsyncSession,
        identity: Identity,
        user_id,
        storage: AvatarStorage = avatar_storage
) -> UserDeleted:
    """Delete a user and every task they own, are assigned, or created.

    The tasks and the user are removed in one transaction (see
    ``crud.delete_user_cascade``). On a backend without transactions this
    would need to run tasks first, then the user, and report failure if the
    second step fails.
    """
    _require_admin(identity, "delete users")
    target_uuid = parse_id(user_id, "User id")

    user = await crud.get_user_by_uuid(db, target_uuid)
    if user is None:
        raise UserNotFoundError()

    avatar = user.avatar
    tasks_deleted = await crud.delete_user_cascade(db, user)
    storage.release(avatar)

    tracing.info("User deleted", user_id=str(target_uuid), tasks_deleted=tasks_deleted, by=str(identity.user_id))
    return UserDeleted(message="User deleted successfully", tasks_deleted=tasks_deleted)


async def get_profile(db: AsyncSession, identity: Identity) -> UserResponse:
    user = await crud.get_user_by_id(db, identity.pk)
    if user is None:
        raise UserNotFoundError()
    return UserResponse.from_model(user)


async def update_avatar(
        db: AsyncSession,
        identity: Identity,
        upload: UploadFile,
        storage: AvatarStorage = avatar_storage
) -> UserResponse:
    """Store a new avatar for the caller and release the previous file"""
    user = await crud.get_user_by_id(db, identity.pk)
    if user is None:
        raise UserNotFoundError()

    previous = user.avatar
    reference = await storage.save(upload)
    try:
        user = await crud.update_user_db(db, user, {"avatar": reference})
    except Exception:
        storage.release(reference)
        raise

    if previous and previous != reference:
        storage.release(previous)
    tracing.info("Avatar updated", user_id=str(identity.user_id))
    return UserResponse.from_model(user)


async def remove_avatar(
        db: AsyncSession,
        identity: Identity,
        storage: AvatarStorage = avatar_storage
) -> UserResponse:
    """Clear the caller's avatar. Releasing the file is best-effort."""
    user = await crud.get_user_by_id(db, identity.pk)
    if user is None:
        raise UserNotFoundError()

    previous = user.avatar
    user = await crud.update_user_db(db, user, {"avatar": None})
    if previous:
        storage.release(previous)
    tracing.info("Avatar removed", user_id=str(identity.user_id))
    return UserResponse.from_model(user)
