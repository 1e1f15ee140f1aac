# taskflow/models/workspace.py
from __future__ import annotations

from sqlalchemy import Column, Integer, String
from taskflow.database import Base


class Workspace(Base):
    __tablename__ = "workspaces"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
