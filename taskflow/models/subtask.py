# taskflow/models/subtask.py
from __future__ import annotations

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String
from taskflow.database import Base


class Subtask(Base):
    __tablename__ = "subtasks"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)

    # deleted together with the task (see Storage.delete_task)
    task_id = Column(Integer, ForeignKey("tasks.id"), nullable=False, index=True)

    title = Column(String, nullable=False)
    completed = Column(Boolean, nullable=False, default=False)
