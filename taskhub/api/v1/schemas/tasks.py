# taskhub/api/v1/schemas/tasks.py
from pydantic import BaseModel, Field, UUID4, AliasChoices, field_validator
from typing import Optional, List, Union
from datetime import datetime

from taskhub.db.models.enums import TaskStatus, TaskPriority


TagsInput = Union[List[str], str]

MAX_TAG_LENGTH = 100


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _check_tag_lengths(tags):
    if tags is None:
        return tags
    items = tags.split(",") if isinstance(tags, str) else tags
    for item in items:
        if len(item.strip()) > MAX_TAG_LENGTH:
            raise ValueError(f"Tags must be at most {MAX_TAG_LENGTH} characters")
    return tags


class UserRef(BaseModel):
    """Owner, creator or assignee as shown on a task"""
    id: UUID4
    name: str
    email: str

    @classmethod
    def from_model(cls, user):
        if user is None:
            return None
        return cls(id=user.uuid, name=user.name, email=user.email)


class TaskCreate(BaseModel):
    """Schema for creating a task.

    ``description`` is checked by the task policy so that a missing or empty
    value is reported as a bad request.
    """
    description: Optional[str] = Field(None, description="What needs to be done")
    title: Optional[str] = Field(None, max_length=500, description="Short title")
    priority: Optional[TaskPriority] = Field(None, description="Defaults to medium")
    due_date: Optional[datetime] = Field(
        None, validation_alias=AliasChoices("due_date", "dueDate"), description="Due date"
    )
    tags: Optional[TagsInput] = Field(None, description="List of tags or a comma-separated string")
    user_id: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("user_id", "userId"),
        description="Admins only: UUID of the user the task is created for"
    )

    @field_validator("due_date", mode="before")
    @classmethod
    def blank_due_date_is_none(cls, value):
        return _blank_to_none(value)

    @field_validator("tags")
    @classmethod
    def tags_fit_column(cls, value):
        return _check_tag_lengths(value)


class TaskUpdate(BaseModel):
    """Partial update. Only fields present in the request body are applied."""
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    title: Optional[str] = Field(None, max_length=500)
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = Field(None, validation_alias=AliasChoices("due_date", "dueDate"))
    tags: Optional[TagsInput] = None

    @field_validator("due_date", mode="before")
    @classmethod
    def blank_due_date_is_none(cls, value):
        return _blank_to_none(value)

    @field_validator("tags")
    @classmethod
    def tags_fit_column(cls, value):
        return _check_tag_lengths(value)

    def provided_fields(self) -> dict:
        """Fields the client actually sent, keyed by attribute name"""
        return self.model_dump(exclude_unset=True)


class TaskAssign(BaseModel):
    """Schema for assigning a task"""
    user_id: str = Field(
        ..., validation_alias=AliasChoices("user_id", "userId"), description="Assignee UUID"
    )


class TaskListParams(BaseModel):
    """Listing filters. Paging values are clamped by the task policy."""
    search: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    tags: Optional[str] = None
    page: int = 1
    limit: int = 20

    @field_validator("status", "priority", mode="before")
    @classmethod
    def blank_filter_is_none(cls, value):
        return _blank_to_none(value)


class TaskResponse(BaseModel):
    """Schema for task response with UUIDs and resolved users"""
    id: UUID4 = Field(..., description="Task UUID")
    title: str
    description: str
    status: TaskStatus
    priority: TaskPriority
    due_date: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)
    owner: UserRef
    creator: Optional[UserRef] = None
    assignee: Optional[UserRef] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, task):
        """Convert Task model to API response"""
        return cls(
            id=task.uuid,
            title=task.title,
            description=task.description,
            status=task.status,
            priority=task.priority,
            due_date=task.due_date,
            tags=task.tag_names,
            owner=UserRef.from_model(task.owner),
            creator=UserRef.from_model(task.creator),
            assignee=UserRef.from_model(task.assignee),
            created_at=task.created_at,
            updated_at=task.updated_at
        )


class TaskPage(BaseModel):
    """One page of tasks plus the number of matches across all pages"""
    tasks: List[TaskResponse]
    total: int
    page: int
    limit: int
