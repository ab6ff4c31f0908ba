# taskhub/api/v1/endpoints/tasks.py
"""Task management endpoints"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from loguru import logger

from taskhub.db.database import get_db
from taskhub.api.v1.schemas.tasks import (
    TaskCreate, TaskUpdate, TaskAssign, TaskListParams, TaskResponse, TaskPage
)
from taskhub.auth.dependencies import get_current_identity, require_admin
from taskhub.policy import tasks as task_policy
from taskhub.policy.identity import Identity

router = APIRouter()


@router.get("/", response_model=TaskPage)
async def list_tasks(
    search: Optional[str] = Query(None, description="Case-insensitive match on description"),
    status_filter: Optional[str] = Query(None, alias="status", description="pending, in-progress or completed; blank means any"),
    priority: Optional[str] = Query(None, description="low, medium or high; blank means any"),
    tags: Optional[str] = Query(None, description="Comma-separated tags; any match"),
    page: int = Query(1),
    limit: int = Query(20),
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity)
):
    """List the tasks visible to the caller, newest first"""
    try:
        params = TaskListParams(
            search=search,
            status=status_filter,
            priority=priority,
            tags=tags,
            page=page,
            limit=limit
        )
    except ValidationError as e:
        raise RequestValidationError(
            [{**error, "loc": ("query", *error["loc"])} for error in e.errors()]
        )
    try:
        return await task_policy.list_tasks(db, identity, params)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to list tasks: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list tasks"
        )


@router.post("/", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskCreate,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity)
):
    try:
        return await task_policy.create_task(db, identity, task_data)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to create task: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create task"
        )


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: str,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity)
):
    try:
        return await task_policy.get_task(db, identity, task_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to get task {task_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get task"
        )


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: str,
    task_data: TaskUpdate,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity)
):
    """Update the fields present in the body; owner, assignee or admin"""
    try:
        return await task_policy.update_task(db, identity, task_id, task_data)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to update task {task_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update task"
        )


@router.delete("/{task_id}", response_model=dict)
async def delete_task(
    task_id: str,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity)
):
    try:
        await task_policy.delete_task(db, identity, task_id)
        return {"message": "Task deleted successfully"}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to delete task {task_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete task"
        )


@router.post("/{task_id}/assign", response_model=TaskResponse)
async def assign_task(
    task_id: str,
    assignment: TaskAssign,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(require_admin)
):
    try:
        return await task_policy.assign_task(db, identity, task_id, assignment.user_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to assign task {task_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to assign task"
        )
