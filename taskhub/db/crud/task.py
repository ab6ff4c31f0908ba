# taskhub/db/crud/task.py
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_
from sqlalchemy.orm import joinedload, selectinload
from typing import Optional, List, Dict, Any, Sequence, Tuple
from uuid import UUID
from loguru import logger

from taskhub.db.models import Task, TaskTag, User


def _with_relations(query):
    """Eager-load everything a task response needs"""
    return query.options(
        joinedload(Task.owner),
        joinedload(Task.creator),
        joinedload(Task.assignee),
        selectinload(Task.tags),
    )


def _build_tags(names: Sequence[str]) -> List[TaskTag]:
    return [TaskTag(name=name, position=index) for index, name in enumerate(names)]


async def get_task_by_uuid(db: AsyncSession, task_uuid: UUID, *criteria) -> Optional[Task]:
    """Get a task by UUID, optionally narrowed by extra criteria, with relations loaded"""
    query = _with_relations(select(Task).filter(Task.uuid == task_uuid, *criteria))
    result = await db.execute(query.execution_options(populate_existing=True))
    return result.scalars().first()


async def find_tasks(
        db: AsyncSession,
        criteria: Sequence[Any],
        offset: int = 0,
        limit: int = 20
) -> Tuple[List[Task], int]:
    """
    Page of tasks matching all criteria, newest first, plus the total number of
    matches before pagination.
    """
    where = and_(*criteria) if criteria else None

    count_query = select(func.count(Task.id))
    page_query = select(Task)
    if where is not None:
        count_query = count_query.where(where)
        page_query = page_query.where(where)

    total = await db.scalar(count_query) or 0

    page_query = (
        _with_relations(page_query)
        .order_by(Task.created_at.desc(), Task.id.desc())
        .offset(offset)
        .limit(limit)
    )
    result = await db.execute(page_query.execution_options(populate_existing=True))
    return list(result.scalars().unique().all()), total


async def create_task(
        db: AsyncSession,
        *,
        owner: User,
        creator: User,
        description: str,
        title: str = "",
        priority=None,
        due_date=None,
        tags: Sequence[str] = ()
) -> Task:
    """Insert a task and return it with relations loaded"""
    try:
        task = Task(
            description=description,
            title=title,
            due_date=due_date,
            owner_id=owner.id,
            creator_id=creator.id,
            tags=_build_tags(tags),
        )
        if priority is not None:
            task.priority = priority

        db.add(task)
        await db.commit()

        logger.info(f"Task {task.uuid} created for user {owner.uuid} by {creator.uuid}")
        return await get_task_by_uuid(db, task.uuid)

    except Exception as e:
        logger.error(f"Failed to create task: {e}")
        await db.rollback()
        raise


async def update_task(db: AsyncSession, task: Task, updates: Dict[str, Any]) -> Task:
    """Apply a partial update. ``tags`` replaces the whole list."""
    try:
        for field, value in updates.items():
            if field == "tags":
                task.tags = _build_tags(value)
            else:
                setattr(task, field, value)

        await db.commit()
        logger.info(f"Task {task.uuid} updated: {sorted(updates)}")
        return await get_task_by_uuid(db, task.uuid)

    except Exception as e:
        logger.error(f"Failed to update task {task.uuid}: {e}")
        await db.rollback()
        raise


async def assign_task(db: AsyncSession, task: Task, assignee: User) -> Task:
    """Replace the task's assignee"""
    try:
        task.assignee_id = assignee.id
        await db.commit()
        logger.info(f"Task {task.uuid} assigned to {assignee.uuid}")
        return await get_task_by_uuid(db, task.uuid)

    except Exception as e:
        logger.error(f"Failed to assign task {task.uuid}: {e}")
        await db.rollback()
        raise


async def delete_task(db: AsyncSession, task: Task) -> None:
    """Delete a task and its tags"""
    try:
        await db.delete(task)
        await db.commit()
        logger.info(f"Task {task.uuid} deleted")

    except Exception as e:
        logger.error(f"Failed to delete task {task.uuid}: {e}")
        await db.rollback()
        raise
