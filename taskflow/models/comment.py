# taskflow/models/comment.py
from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text
from taskflow.database import Base, utcnow


class Comment(Base):
    __tablename__ = "comments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)

    task_id = Column(Integer, ForeignKey("tasks.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    content = Column(Text, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
