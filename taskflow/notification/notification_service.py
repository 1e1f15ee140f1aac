# taskflow/notification/notification_service.py
from __future__ import annotations

import logging
from typing import Any, Optional

from taskflow.schemas.notification_schema import NotificationRead
from taskflow.schemas.task_schema import TaskRead
from taskflow.storage import Storage

logger = logging.getLogger("taskflow.notification")

# an update produces a notification only when it touches one of these
TRACKED_UPDATE_FIELDS = ("status", "priority", "assignee_id", "due_date", "task_type")


def _fmt(value: Any) -> str:
    if value is None:
        return "none"
    if hasattr(value, "strftime"):
        return value.strftime("%Y-%m-%d")
    return str(value)


class NotificationService:
    """
    Audit-trail notifications written after task mutations.

    Every write here is best-effort: the task write has already been
    committed, so a failing notification is logged and dropped, never raised.
    Recipients are admins, not assignees.
    """

    def __init__(self, storage: Storage):
        self.storage = storage

    # -------------------------
    # Recipients
    # -------------------------

    def _admin_ids(self) -> list[int]:
        return [u.id for u in self.storage.get_admin_users()]

    def _primary_admin_id(self) -> Optional[int]:
        ids = self._admin_ids()
        return ids[0] if ids else None

    # -------------------------
    # Writes
    # -------------------------

    def _safe_create(
        self,
        *,
        user_id: int,
        task_id: Optional[int],
        type: str,
        title: str,
        message: str,
    ) -> Optional[NotificationRead]:
        try:
            return self.storage.create_notification(
                {
                    "user_id": user_id,
                    "task_id": task_id,
                    "type": type,
                    "title": title,
                    "message": message,
                }
            )
        except Exception:
            logger.exception(
                "notification_write_failed",
                extra={"user_id": user_id, "task_id": task_id, "notification_type": type},
            )
            self.storage.db.rollback()
            return None

    def notify_admin(self, *, task_id: Optional[int], type: str, title: str, message: str):
        try:
            user_id = self._primary_admin_id()
        except Exception:
            logger.exception("notification_recipient_lookup_failed", extra={"task_id": task_id})
            self.storage.db.rollback()
            return None

        if user_id is None:
            logger.warning("notification_skipped_no_admin", extra={"task_id": task_id, "notification_type": type})
            return None

        return self._safe_create(user_id=user_id, task_id=task_id, type=type, title=title, message=message)

    def notify_all_admins(self, *, task_id: Optional[int], type: str, title: str, message: str):
        try:
            admin_ids = self._admin_ids()
        except Exception:
            logger.exception("notification_recipient_lookup_failed", extra={"task_id": task_id})
            self.storage.db.rollback()
            return []

        created = []
        for user_id in admin_ids:
            n = self._safe_create(user_id=user_id, task_id=task_id, type=type, title=title, message=message)
            if n is not None:
                created.append(n)
        return created

    # -------------------------
    # Task events
    # -------------------------

    def task_created(self, task: TaskRead):
        details = [f"{task.task_type} task", f"{task.priority} priority"]
        if task.due_date:
            details.append(f"due {_fmt(task.due_date)}")

        return self.notify_admin(
            task_id=task.id,
            type="task_created",
            title="New Task Created",
            message=f'Task "{task.title}" was created ({", ".join(details)})',
        )

    def task_updated(self, task: TaskRead, changes: dict[str, Any]):
        touched = [f for f in TRACKED_UPDATE_FIELDS if f in changes]
        if not touched:
            return None

        summary = ", ".join(f"{f} → {_fmt(changes[f])}" for f in touched)
        return self.notify_admin(
            task_id=task.id,
            type="task_updated",
            title="Task Updated",
            message=f'Task "{task.title}" was updated: {summary}',
        )

    def task_status_changed(self, task: TaskRead, previous_status: Optional[str] = None):
        if previous_status and previous_status != task.status:
            message = f'Task "{task.title}" moved from {previous_status} to {task.status}'
        else:
            message = f'Task "{task.title}" status set to {task.status}'

        return self.notify_admin(
            task_id=task.id,
            type="task_status_changed",
            title="Task Status Changed",
            message=message,
        )

    def epic_documented(self, epic: TaskRead, linked_count: int):
        return self.notify_admin(
            task_id=epic.id,
            type="epic_documentation",
            title="Epic Documentation Generated",
            message=f'Documentation was generated for epic "{epic.title}" covering {linked_count} task(s)',
        )

    # -------------------------
    # External sources
    # -------------------------

    def email_task_created(self, task: TaskRead):
        return self.notify_all_admins(
            task_id=task.id,
            type="task_created",
            title="New Email Task",
            message=f'Task "{task.title}" was created from email',
        )

    def slack_task_created(self, task: TaskRead):
        return self.notify_all_admins(
            task_id=task.id,
            type="task_created_slack",
            title="New Slack Task",
            message=f'Task "{task.title}" was created from Slack channel',
        )

    def slack_duplicate(self, task: TaskRead, original: TaskRead):
        return self.notify_all_admins(
            task_id=task.id,
            type="task_duplicate",
            title="Duplicate Task Detected",
            message=(
                f'Task "{task.title}" was created from Slack but marked as completed '
                f'because it\'s a duplicate of existing task "{original.title}"'
            ),
        )
