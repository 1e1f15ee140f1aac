# taskflow/models/notification.py
from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from taskflow.database import Base, utcnow


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)

    # notifications per user
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # no FK on purpose: the audit trail outlives the task
    task_id = Column(Integer, nullable=True, index=True)

    # task_created | task_updated | task_status_changed | task_duplicate | epic_documentation | ...
    type = Column(String, nullable=False, default="task_created")
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)

    is_read = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
