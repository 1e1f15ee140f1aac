# taskflow/schemas/workspace_schema.py

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional


# --------- For creating a workspace (POST) ---------
class WorkspaceCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None


# --------- For updating a workspace (PATCH) ---------
class WorkspaceUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None

    @field_validator("name")
    def name_not_null(cls, value):
        if value is None:
            raise ValueError("name cannot be null")
        return value


# --------- For reading a workspace (GET responses) ---------
class WorkspaceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
