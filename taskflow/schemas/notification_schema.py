# taskflow/schemas/notification_schema.py
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# --------- For READ (responses) ---------
class NotificationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    task_id: int | None = None
    type: str
    title: str
    message: str
    is_read: bool
    created_at: datetime


# --------- For manual creation (POST) ---------
# is_read and created_at are always set by the store
class NotificationCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    user_id: int
    task_id: int | None = None
    # free-form tag: task_created, task_updated, task_duplicate, ...
    type: str = Field(default="task_created", min_length=1)
    title: str = Field(min_length=1)
    message: str = Field(min_length=1)
