# taskflow/models/user.py
from __future__ import annotations

from sqlalchemy import Column, Integer, String
from taskflow.database import Base


class User(Base):
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)

    username = Column(String, unique=True, index=True, nullable=False)
    # passlib hash, never returned by the API
    password = Column(String, nullable=False)

    display_name = Column(String, nullable=False)
    avatar_url = Column(String, nullable=True)
    email = Column(String, nullable=True)

    role = Column(String, nullable=False, default="user")  # user | admin
