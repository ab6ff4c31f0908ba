from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, or_, func
from typing import Optional, Dict, Any, List
from uuid import UUID
from loguru import logger

from taskhub.db.models import User, UserRole, Task, TaskTag, RefreshToken


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    """
    Retrieves a user by their email address.
    """
    result = await db.execute(select(User).filter(User.email == email))
    return result.scalars().first()


async def get_user_by_id(db: AsyncSession, user_id: int) -> Optional[User]:
    """
    Retrieves a user by internal primary key.
    """
    result = await db.execute(select(User).filter(User.id == user_id))
    return result.scalars().first()


async def get_user_by_uuid(db: AsyncSession, user_uuid: UUID) -> Optional[User]:
    """
    Retrieves a user by their public UUID.
    """
    result = await db.execute(select(User).filter(User.uuid == user_uuid))
    user = result.scalars().first()
    if user:
        logger.debug(f"User found: {user_uuid}")
    return user


async def list_users(db: AsyncSession) -> List[User]:
    result = await db.execute(select(User).order_by(User.created_at.asc(), User.id.asc()))
    return list(result.scalars().all())


async def get_user_count(db: AsyncSession, role: Optional[UserRole] = None) -> int:
    query = select(func.count(User.id))
    if role is not None:
        query = query.where(User.role == role)
    return await db.scalar(query) or 0


async def create_user_db(db: AsyncSession, user_data: Dict[str, Any]) -> User:
    """
    Creates a new user record.
    """
    try:
        if not user_data.get('email') or not user_data.get('hashed_password'):
            raise ValueError("Email and hashed_password are required")

        user = User(**user_data)
        db.add(user)
        await db.commit()
        await db.refresh(user)
        logger.info(f"User created successfully: {user.email}")
        return user
    except Exception as e:
        logger.error(f"Failed to create user: {e}")
        await db.rollback()
        raise


async def update_user_db(db: AsyncSession, user: User, updates: Dict[str, Any]) -> User:
    """
    Updates an existing user record. Identity fields are never written here.
    """
    try:
        protected_fields = {'id', 'uuid', 'created_at', 'hashed_password'}
        for key, value in updates.items():
            if key in protected_fields:
                logger.warning(f"Attempt to update protected field: {key}")
            elif hasattr(user, key):
                setattr(user, key, value)
            else:
                logger.warning(f"Attempt to update non-existent field: {key}")

        await db.commit()
        await db.refresh(user)
        logger.info(f"User updated successfully: {user.email}")
        return user
    except Exception as e:
        logger.error(f"Failed to update user {user.email}: {e}")
        await db.rollback()
        raise


async def delete_user_cascade(db: AsyncSession, user: User) -> int:
    """
    Deletes a user together with every task they own, are assigned to, or
    created, in a single transaction.

    Runs as: tag rows of the affected tasks, the tasks, the user's refresh
    tokens, then the user, committed once. Any failure rolls the whole
    transaction back, so the user and their tasks are never left half removed.
    The database is the only participant; the avatar file is released by the
    caller after the commit succeeds.

    Returns the number of tasks removed.
    """
    related = or_(
        Task.owner_id == user.id,
        Task.assignee_id == user.id,
        Task.creator_id == user.id,
    )
    task_ids = select(Task.id).where(related)

    try:
        await db.execute(
            delete(TaskTag).where(TaskTag.task_id.in_(task_ids)).execution_options(synchronize_session=False)
        )
        result = await db.execute(
            delete(Task).where(related).execution_options(synchronize_session=False)
        )
        deleted_tasks = result.rowcount or 0
        await db.execute(
            delete(RefreshToken).where(RefreshToken.user_id == user.id).execution_options(synchronize_session=False)
        )
        await db.execute(
            delete(User).where(User.id == user.id).execution_options(synchronize_session=False)
        )
        await db.commit()
        db.expunge(user)
        logger.info(f"User deleted: {user.email} ({deleted_tasks} tasks removed)")
        return deleted_tasks
    except Exception as e:
        logger.error(f"Failed to delete user {user.email}: {e}")
        await db.rollback()
        raise
