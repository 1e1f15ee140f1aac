# taskflow/storage.py

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import Depends
from sqlalchemy import update
from sqlalchemy.orm import Session

from taskflow.database import Base, get_db
from taskflow.models.user import User
from taskflow.models.workspace import Workspace
from taskflow.models.task import Task
from taskflow.models.subtask import Subtask
from taskflow.models.comment import Comment
from taskflow.models.notification import Notification
from taskflow.schemas.user_schema import UserRead
from taskflow.schemas.workspace_schema import WorkspaceRead
from taskflow.schemas.task_schema import TaskRead
from taskflow.schemas.subtask_schema import SubtaskRead
from taskflow.schemas.comment_schema import CommentRead
from taskflow.schemas.notification_schema import NotificationRead

logger = logging.getLogger("taskflow.storage")


def create_tables(bind) -> None:
    """Create every table (the model imports above register them on Base)."""
    Base.metadata.create_all(bind=bind)


class Storage:
    """
    Entity store for users, workspaces, tasks, subtasks, comments and notifications.

    One instance wraps one SQLAlchemy session; the engine behind it is the
    single process-wide source of truth. Reads hand out pydantic snapshots,
    never live ORM rows, so callers cannot change stored state by mutating
    what they got back. Every write goes through the methods below.

    Identifiers come from the table's AUTOINCREMENT counter and are never
    reused, even after a delete.
    """

    def __init__(self, db: Session):
        self.db = db

    # -------------------------
    # Generic helpers
    # -------------------------

    def _get(self, model, entity_id: int):
        return self.db.get(model, entity_id)

    def _list(self, model, *criteria, order_by=None, limit: Optional[int] = None):
        q = self.db.query(model)
        if criteria:
            q = q.filter(*criteria)
        if order_by is None:
            order_by = (model.id.asc(),)
        q = q.order_by(*order_by)
        if limit is not None:
            q = q.limit(limit)
        return q.all()

    def _create(self, model, data: dict[str, Any]):
        obj = model(**data)
        self.db.add(obj)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(obj)
        return obj

    def _update(self, model, entity_id: int, data: dict[str, Any]):
        obj = self._get(model, entity_id)
        if obj is None:
            return None

        # shallow merge: keys absent from `data` are left untouched
        for field, value in data.items():
            setattr(obj, field, value)

        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(obj)
        return obj

    def _delete(self, model, entity_id: int) -> bool:
        obj = self._get(model, entity_id)
        if obj is None:
            return False
        self.db.delete(obj)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return True

    @staticmethod
    def _read(schema, obj):
        return None if obj is None else schema.model_validate(obj)

    @staticmethod
    def _read_all(schema, rows) -> list:
        return [schema.model_validate(row) for row in rows]

    # ==========================
    #  USERS
    # ==========================
    def get_user(self, user_id: int) -> Optional[UserRead]:
        return self._read(UserRead, self._get(User, user_id))

    def get_user_by_username(self, username: str) -> Optional[UserRead]:
        return self._read(UserRead, self.db.query(User).filter(User.username == username).first())

    def get_user_password(self, username: str) -> Optional[str]:
        """Stored password hash for `username` (only the auth layer needs it)."""
        user = self.db.query(User).filter(User.username == username).first()
        return user.password if user else None

    def get_users(self) -> list[UserRead]:
        return self._read_all(UserRead, self._list(User))

    def get_admin_users(self) -> list[UserRead]:
        return self._read_all(UserRead, self._list(User, User.role == "admin"))

    def create_user(self, data: dict[str, Any]) -> UserRead:
        return self._read(UserRead, self._create(User, data))

    # ==========================
    #  WORKSPACES
    # ==========================
    def get_workspace(self, workspace_id: int) -> Optional[WorkspaceRead]:
        return self._read(WorkspaceRead, self._get(Workspace, workspace_id))

    def get_workspaces(self) -> list[WorkspaceRead]:
        return self._read_all(WorkspaceRead, self._list(Workspace))

    def create_workspace(self, data: dict[str, Any]) -> WorkspaceRead:
        return self._read(WorkspaceRead, self._create(Workspace, data))

    def update_workspace(self, workspace_id: int, data: dict[str, Any]) -> Optional[WorkspaceRead]:
        return self._read(WorkspaceRead, self._update(Workspace, workspace_id, data))

    def delete_workspace(self, workspace_id: int) -> bool:
        # tasks of the workspace are left in place
        return self._delete(Workspace, workspace_id)

    # ==========================
    #  TASKS
    # ==========================
    def get_task(self, task_id: int) -> Optional[TaskRead]:
        return self._read(TaskRead, self._get(Task, task_id))

    def get_tasks(self, workspace_id: int) -> list[TaskRead]:
        tasks = self._read_all(TaskRead, self._list(Task, Task.workspace_id == workspace_id))
        logger.debug("tasks_listed", extra={"workspace_id": workspace_id, "count": len(tasks)})
        return tasks

    def get_tasks_by_status(self, workspace_id: int, status: str) -> list[TaskRead]:
        rows = self._list(Task, Task.workspace_id == workspace_id, Task.status == status)
        return self._read_all(TaskRead, rows)

    def get_tasks_by_type(self, workspace_id: int, task_type: str) -> list[TaskRead]:
        rows = self._list(Task, Task.workspace_id == workspace_id, Task.task_type == task_type)
        return self._read_all(TaskRead, rows)

    def get_related_tasks(self, parent_task_id: int) -> list[TaskRead]:
        return self._read_all(TaskRead, self._list(Task, Task.parent_task_id == parent_task_id))

    def get_tasks_by_epic_id(self, epic_id: int) -> list[TaskRead]:
        return self._read_all(TaskRead, self._list(Task, Task.epic_id == epic_id))

    def find_task_by_email_thread(self, thread_id: str) -> Optional[TaskRead]:
        row = self.db.query(Task).filter(Task.email_thread_id == thread_id).order_by(Task.id.asc()).first()
        return self._read(TaskRead, row)

    def find_task_by_slack_message(self, message_id: str) -> Optional[TaskRead]:
        row = self.db.query(Task).filter(Task.slack_message_id == message_id).order_by(Task.id.asc()).first()
        return self._read(TaskRead, row)

    def find_task_by_title(self, workspace_id: int, title: str, exclude_source: Optional[str] = None):
        q = self.db.query(Task).filter(Task.workspace_id == workspace_id, Task.title == title)
        if exclude_source is not None:
            q = q.filter((Task.source.is_(None)) | (Task.source != exclude_source))
        return self._read(TaskRead, q.order_by(Task.id.asc()).first())

    def create_task(self, data: dict[str, Any]) -> TaskRead:
        task = self._read(TaskRead, self._create(Task, data))
        logger.debug("task_stored", extra={"task_id": task.id, "workspace_id": task.workspace_id})
        return task

    def update_task(self, task_id: int, data: dict[str, Any]) -> Optional[TaskRead]:
        return self._read(TaskRead, self._update(Task, task_id, data))

    def update_task_status(self, task_id: int, status: str) -> Optional[TaskRead]:
        return self.update_task(task_id, {"status": status})

    def delete_task(self, task_id: int) -> bool:
        """
        Delete a task together with its subtasks and comments.

        The three deletes share one transaction: either all of them are
        committed or, on any failure, none is.
        """
        task = self._get(Task, task_id)
        if task is None:
            return False

        try:
            subtasks = (
                self.db.query(Subtask)
                .filter(Subtask.task_id == task_id)
                .delete(synchronize_session=False)
            )
            comments = (
                self.db.query(Comment)
                .filter(Comment.task_id == task_id)
                .delete(synchronize_session=False)
            )
            self.db.delete(task)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.debug(
            "task_deleted",
            extra={"task_id": task_id, "subtasks_deleted": subtasks, "comments_deleted": comments},
        )
        return True

    # ==========================
    #  SUBTASKS
    # ==========================
    def get_subtask(self, subtask_id: int) -> Optional[SubtaskRead]:
        return self._read(SubtaskRead, self._get(Subtask, subtask_id))

    def get_subtasks(self, task_id: int) -> list[SubtaskRead]:
        return self._read_all(SubtaskRead, self._list(Subtask, Subtask.task_id == task_id))

    def create_subtask(self, data: dict[str, Any]) -> SubtaskRead:
        return self._read(SubtaskRead, self._create(Subtask, data))

    def update_subtask(self, subtask_id: int, completed: bool) -> Optional[SubtaskRead]:
        return self._read(SubtaskRead, self._update(Subtask, subtask_id, {"completed": completed}))

    def delete_subtask(self, subtask_id: int) -> bool:
        return self._delete(Subtask, subtask_id)

    # ==========================
    #  COMMENTS
    # ==========================
    def get_comments(self, task_id: int) -> list[CommentRead]:
        rows = self._list(
            Comment,
            Comment.task_id == task_id,
            order_by=(Comment.created_at.asc(), Comment.id.asc()),
        )
        return self._read_all(CommentRead, rows)

    def create_comment(self, data: dict[str, Any]) -> CommentRead:
        # created_at is always assigned here
        data = {k: v for k, v in data.items() if k != "created_at"}
        return self._read(CommentRead, self._create(Comment, data))

    def delete_comment(self, comment_id: int) -> bool:
        return self._delete(Comment, comment_id)

    # ==========================
    #  NOTIFICATIONS
    # ==========================
    def get_notification(self, notification_id: int) -> Optional[NotificationRead]:
        return self._read(NotificationRead, self._get(Notification, notification_id))

    def get_notifications(self, user_id: int, limit: Optional[int] = None) -> list[NotificationRead]:
        rows = self._list(
            Notification,
            Notification.user_id == user_id,
            order_by=(Notification.created_at.desc(), Notification.id.desc()),
            limit=limit,
        )
        return self._read_all(NotificationRead, rows)

    def get_unread_notifications(self, user_id: int) -> list[NotificationRead]:
        rows = self._list(
            Notification,
            Notification.user_id == user_id,
            Notification.is_read == False,  # noqa: E712
            order_by=(Notification.created_at.desc(), Notification.id.desc()),
        )
        return self._read_all(NotificationRead, rows)

    def create_notification(self, data: dict[str, Any]) -> NotificationRead:
        data = {k: v for k, v in data.items() if k not in ("is_read", "created_at")}
        return self._read(NotificationRead, self._create(Notification, data))

    def mark_notification_as_read(self, notification_id: int) -> Optional[NotificationRead]:
        return self._read(NotificationRead, self._update(Notification, notification_id, {"is_read": True}))

    def mark_all_notifications_as_read(self, user_id: int) -> int:
        try:
            result = self.db.execute(
                update(Notification)
                .where(Notification.user_id == user_id, Notification.is_read == False)  # noqa: E712
                .values(is_read=True)
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return result.rowcount or 0

    def delete_notification(self, notification_id: int) -> bool:
        return self._delete(Notification, notification_id)


def get_storage(db: Session = Depends(get_db)) -> Storage:
    return Storage(db)
