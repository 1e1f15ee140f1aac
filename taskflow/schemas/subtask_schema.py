# taskflow/schemas/subtask_schema.py

from pydantic import BaseModel, ConfigDict, Field


class SubtaskCreate(BaseModel):
    task_id: int
    title: str = Field(min_length=1)
    completed: bool = False


class SubtaskUpdate(BaseModel):
    completed: bool


class SubtaskRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    task_id: int
    title: str
    completed: bool
