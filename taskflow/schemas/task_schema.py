# taskflow/schemas/task_schema.py

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    IN_REVIEW = "in_review"
    COMPLETED = "completed"


# board order, used by the "forward" transition policy
STATUS_ORDER = [
    TaskStatus.TODO,
    TaskStatus.IN_PROGRESS,
    TaskStatus.IN_REVIEW,
    TaskStatus.COMPLETED,
]


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskType(str, Enum):
    ADHOC = "adhoc"
    SPRINT = "sprint"
    EPIC = "epic"


class TaskSource(str, Enum):
    EMAIL = "email"
    SLACK = "slack"


# fields that may not be cleared with an explicit null
NON_NULLABLE_FIELDS = (
    "title",
    "status",
    "priority",
    "workspace_id",
    "completed",
    "position",
    "task_type",
)


# --------- Common optional fields ----------
class _TaskFields(BaseModel):
    model_config = ConfigDict(use_enum_values=True, extra="forbid")

    description: Optional[str] = None
    assignee_id: Optional[int] = None
    due_date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    parent_task_id: Optional[int] = None
    epic_id: Optional[int] = None
    email_thread_id: Optional[str] = None
    source: Optional[str] = None
    slack_message_id: Optional[str] = None


# --------- For CREATE ----------
class TaskCreate(_TaskFields):
    title: str = Field(min_length=1)
    workspace_id: int
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    completed: bool = False
    position: int = 0
    task_type: TaskType = TaskType.ADHOC


# --------- For UPDATE (PATCH) ----------
class TaskUpdate(_TaskFields):
    """
    Partial update. Only the keys present in the payload are applied
    (see `changes()`); an explicit null clears a nullable field.
    """

    title: Optional[str] = Field(default=None, min_length=1)
    workspace_id: Optional[int] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    completed: Optional[bool] = None
    position: Optional[int] = None
    task_type: Optional[TaskType] = None
    documentation: Optional[str] = None

    @field_validator(*NON_NULLABLE_FIELDS)
    def reject_null(cls, value, info):
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class TaskStatusUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    status: TaskStatus


# --------- For READ (responses) ----------
class TaskRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str] = None
    status: str
    priority: str
    assignee_id: Optional[int] = None
    workspace_id: int
    due_date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    completed: bool
    position: int
    task_type: str
    parent_task_id: Optional[int] = None
    epic_id: Optional[int] = None
    email_thread_id: Optional[str] = None
    source: Optional[str] = None
    slack_message_id: Optional[str] = None
    documentation: Optional[str] = None
