# taskhub/db/models/task.py
"""Task model and its tag rows"""
from sqlalchemy import Column, Integer, String, Text, ForeignKey, Index, Enum, DateTime
from sqlalchemy.orm import relationship

from taskhub.db.models.base import Base, TimestampMixin, UUIDMixin
from taskhub.db.models.enums import TaskStatus, TaskPriority, enum_values


class Task(Base, UUIDMixin, TimestampMixin):
    """A unit of work owned by one user and optionally assigned to another"""
    __tablename__ = "tasks"

    # Task fields
    title = Column(String(500), nullable=False, default="")
    description = Column(Text, nullable=False)
    status = Column(
        Enum(TaskStatus, name="task_status", values_callable=enum_values),
        nullable=False,
        default=TaskStatus.PENDING,
        index=True
    )
    priority = Column(
        Enum(TaskPriority, name="task_priority", values_callable=enum_values),
        nullable=False,
        default=TaskPriority.MEDIUM,
        index=True
    )
    due_date = Column(DateTime(timezone=True), nullable=True)

    # Foreign keys
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    creator_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    assignee_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True)

    # Relationships
    owner = relationship("User", foreign_keys=[owner_id])
    creator = relationship("User", foreign_keys=[creator_id])
    assignee = relationship("User", foreign_keys=[assignee_id])
    tags = relationship(
        "TaskTag",
        back_populates="task",
        order_by="TaskTag.position",
        cascade="all, delete-orphan",
        passive_deletes=True
    )

    __table_args__ = (
        Index('idx_task_owner_created', 'owner_id', 'created_at'),
        Index('idx_task_assignee_created', 'assignee_id', 'created_at'),
        Index('idx_task_creator', 'creator_id'),
    )

    @property
    def tag_names(self) -> list:
        return [tag.name for tag in self.tags]

    def __repr__(self):
        return f"<Task uuid={self.uuid} status={self.status}>"


class TaskTag(Base):
    """One tag of a task; ``position`` keeps the order the tags were given in"""
    __tablename__ = "task_tags"

    id = Column(Integer, primary_key=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    name = Column(String(100), nullable=False)

    task = relationship("Task", back_populates="tags")

    __table_args__ = (
        Index('idx_task_tag_name', 'name', 'task_id'),
    )

    def __repr__(self):
        return f"<TaskTag task_id={self.task_id} name={self.name}>"
