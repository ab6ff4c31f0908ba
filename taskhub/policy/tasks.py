# taskhub/policy/tasks.py
"""
Task access and mutation policy.

Every read and write path for tasks goes through this module. Each operation
takes the caller's identity explicitly and decides whether the operation is
allowed, then builds the database criteria that enforce the decision.

Visibility: an admin sees every task; anyone else sees a task only when they
own it or it is assigned to them. The visibility criterion is always ANDed
with caller-supplied filters, never ORed.

Read paths do not distinguish "missing" from "not visible": both raise
TaskNotFoundError so task ids cannot be probed. Forbidden is only reported for
a task the caller can already see.
"""
from typing import Optional, List, Sequence, Union

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.api.v1.schemas.tasks import TaskCreate, TaskUpdate, TaskListParams, TaskPage, TaskResponse
from taskhub.core import tracing
from taskhub.core.config import settings
from taskhub.db import crud
from taskhub.db.models import Task, TaskTag, TaskStatus, TaskPriority
from taskhub.exceptions.policy import (
    ForbiddenError,
    PolicyValidationError,
    TaskNotFoundError,
)
from taskhub.policy.identity import Identity, parse_id

UPDATABLE_FIELDS = ("description", "status", "title", "priority", "due_date", "tags")


def visibility_filter(identity: Identity):
    """Criterion restricting tasks to those the identity may see, or None for admins"""
    if identity.is_admin:
        return None
    return or_(Task.owner_id == identity.pk, Task.assignee_id == identity.pk)


def can_update(identity: Identity, task: Task) -> bool:
    return identity.is_admin or task.owner_id == identity.pk or task.assignee_id == identity.pk


def can_delete(identity: Identity, task: Task) -> bool:
    """Assignees may update a task but only the owner or an admin may delete it"""
    return identity.is_admin or task.owner_id == identity.pk


def normalize_tags(tags: Union[None, str, Sequence[str]]) -> List[str]:
    """Split a comma-separated string (or take a list), trim, drop empties.

    Repeated tags are kept.
    """
    if tags is None:
        return []
    items = tags.split(",") if isinstance(tags, str) else [str(tag) for tag in tags]
    return [item.strip() for item in items if item.strip()]


def clamp_page(page: Optional[int]) -> int:
    # Keeps the row offset within what the database accepts
    return min(settings.TASK_PAGE_MAX_PAGE, max(1, page or 1))


def clamp_limit(limit: Optional[int]) -> int:
    if not limit:
        limit = settings.TASK_PAGE_DEFAULT_LIMIT
    return min(settings.TASK_PAGE_MAX_LIMIT, max(1, limit))


def build_list_criteria(identity: Identity, params: TaskListParams) -> list:
    """Visibility first, then every caller filter; the result is ANDed"""
    criteria = []
    base = visibility_filter(identity)
    if base is not None:
        criteria.append(base)

    if params.search:
        criteria.append(Task.description.icontains(params.search, autoescape=True))
    if params.status:
        criteria.append(Task.status == params.status)
    if params.priority:
        criteria.append(Task.priority == params.priority)

    tags = normalize_tags(params.tags)
    if tags:
        criteria.append(Task.id.in_(select(TaskTag.task_id).where(TaskTag.name.in_(tags))))

    return criteria


async def _load_visible_task(db: AsyncSession, identity: Identity, task_id) -> Task:
    task_uuid = parse_id(task_id, "Task id")
    base = visibility_filter(identity)
    criteria = [base] if base is not None else []
    task = await crud.task.get_task_by_uuid(db, task_uuid, *criteria)
    if task is None:
        tracing.warning("Task not found or not visible", task_id=str(task_uuid), user_id=str(identity.user_id))
        raise TaskNotFoundError()
    return task


async def list_tasks(db: AsyncSession, identity: Identity, params: TaskListParams) -> TaskPage:
    page = clamp_page(params.page)
    limit = clamp_limit(params.limit)

    tasks, total = await crud.task.find_tasks(
        db,
        build_list_criteria(identity, params),
        offset=(page - 1) * limit,
        limit=limit
    )
    return TaskPage(
        tasks=[TaskResponse.from_model(task) for task in tasks],
        total=total,
        page=page,
        limit=limit
    )


async def get_task(db: AsyncSession, identity: Identity, task_id) -> TaskResponse:
    task = await _load_visible_task(db, identity, task_id)
    return TaskResponse.from_model(task)


async def create_task(db: AsyncSession, identity: Identity, payload: TaskCreate) -> TaskResponse:
    """Create a task for the caller, or for ``payload.user_id`` when the caller is an admin"""
    description = payload.description
    if description is None or not description.strip():
        raise PolicyValidationError("Description of task is required")

    creator = await crud.get_user_by_id(db, identity.pk)
    owner = creator
    if identity.is_admin and payload.user_id:
        owner = await crud.get_user_by_uuid(db, parse_id(payload.user_id, "User id"))
        if owner is None:
            raise PolicyValidationError("User not found to create task for")

    task = await crud.task.create_task(
        db,
        owner=owner,
        creator=creator,
        description=description,
        title=payload.title or "",
        priority=payload.priority or TaskPriority.MEDIUM,
        due_date=payload.due_date,
        tags=normalize_tags(payload.tags),
    )
    tracing.info("Task created", task_id=str(task.uuid), owner=str(owner.uuid), creator=str(creator.uuid))
    return TaskResponse.from_model(task)


def _validated_updates(payload: TaskUpdate) -> dict:
    updates = {field: value for field, value in payload.provided_fields().items() if field in UPDATABLE_FIELDS}
    if not updates:
        raise PolicyValidationError("No update data provided")

    if "description" in updates:
        description = updates["description"]
        if description is None or not description.strip():
            raise PolicyValidationError("Description of task cannot be empty")
    if "status" in updates and not isinstance(updates["status"], TaskStatus):
        raise PolicyValidationError("Invalid status value")
    if "priority" in updates and not isinstance(updates["priority"], TaskPriority):
        raise PolicyValidationError("Invalid priority value")
    if "title" in updates and updates["title"] is None:
        updates["title"] = ""
    if "tags" in updates:
        updates["tags"] = normalize_tags(updates["tags"])
    return updates


async def update_task(db: AsyncSession, identity: Identity, task_id, payload: TaskUpdate) -> TaskResponse:
    """Partial update by an admin, the owner, or the current assignee"""
    updates = _validated_updates(payload)
    task = await _load_visible_task(db, identity, task_id)

    if not can_update(identity, task):
        tracing.warning("Task update forbidden", task_id=str(task.uuid), user_id=str(identity.user_id))
        raise ForbiddenError("You can't update this task")

    task = await crud.task.update_task(db, task, updates)
    return TaskResponse.from_model(task)


async def delete_task(db: AsyncSession, identity: Identity, task_id) -> None:
    task = await _load_visible_task(db, identity, task_id)

    if not can_delete(identity, task):
        tracing.warning("Task delete forbidden", task_id=str(task.uuid), user_id=str(identity.user_id))
        raise ForbiddenError("You can't delete task of another user")

    await crud.task.delete_task(db, task)


async def assign_task(db: AsyncSession, identity: Identity, task_id, user_id) -> TaskResponse:
    """Admin only. Replaces the task's single assignee."""
    if not identity.is_admin:
        raise ForbiddenError("Only admins can assign tasks")

    task_uuid = parse_id(task_id, "Task id")
    assignee_uuid = parse_id(user_id, "User id")

    task = await crud.task.get_task_by_uuid(db, task_uuid)
    if task is None:
        raise TaskNotFoundError()

    assignee = await crud.get_user_by_uuid(db, assignee_uuid)
    if assignee is None:
        raise PolicyValidationError("Assignee user not found")

    task = await crud.task.assign_task(db, task, assignee)
    tracing.info("Task assigned", task_id=str(task.uuid), assignee=str(assignee.uuid), by=str(identity.user_id))
    return TaskResponse.from_model(task)
