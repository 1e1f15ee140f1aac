# taskflow/models/task.py

from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from taskflow.database import Base


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)

    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    # indexed: the board queries filter by workspace and status/type
    status = Column(String, nullable=False, default="todo", index=True)
    priority = Column(String, nullable=False, default="medium")

    # checked only when the task is created, never after
    workspace_id = Column(Integer, ForeignKey("workspaces.id"), nullable=False, index=True)

    # soft references: stored as-is, not enforced
    assignee_id = Column(Integer, nullable=True)
    parent_task_id = Column(Integer, nullable=True, index=True)
    epic_id = Column(Integer, nullable=True, index=True)

    due_date = Column(DateTime, nullable=True)
    start_date = Column(DateTime, nullable=True)

    completed = Column(Boolean, nullable=False, default=False)
    position = Column(Integer, nullable=False, default=0)
    task_type = Column(String, nullable=False, default="adhoc", index=True)

    # where the task came from (email / slack) and how to find it again
    email_thread_id = Column(String, nullable=True, index=True)
    source = Column(String, nullable=True)
    slack_message_id = Column(String, nullable=True, index=True)

    documentation = Column(Text, nullable=True)
