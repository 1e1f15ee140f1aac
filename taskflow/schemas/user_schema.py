# taskflow/schemas/user_schema.py
from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


# --------- For creating a user (POST) ---------
class UserCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
    display_name: str = Field(min_length=1)
    avatar_url: Optional[str] = None
    email: Optional[EmailStr] = None
    role: UserRole = UserRole.USER


# --------- For reading a user (password never leaves the store) ---------
class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    display_name: str
    avatar_url: Optional[str] = None
    email: Optional[str] = None
    role: str
