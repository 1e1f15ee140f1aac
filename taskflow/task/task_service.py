# taskflow/task/task_service.py

from __future__ import annotations

import logging
import os
from typing import Any, Optional, Union

from dotenv import load_dotenv
from fastapi import Depends

from taskflow.notification.notification_service import NotificationService
from taskflow.schemas.task_schema import (
    STATUS_ORDER,
    TaskCreate,
    TaskRead,
    TaskStatus,
    TaskUpdate,
)
from taskflow.storage import Storage, get_storage

load_dotenv()

# "any": every status is reachable from every other one
# "forward": a task can only move right on the board (or stay where it is)
TASK_TRANSITION_POLICY = os.getenv("TASK_TRANSITION_POLICY", "any").lower()

logger = logging.getLogger("taskflow.task")


class TaskServiceError(Exception):
    pass


class InvalidStatusError(TaskServiceError):
    pass


class InvalidTransitionError(TaskServiceError):
    pass


def _status(value: Any) -> TaskStatus:
    try:
        return TaskStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in TaskStatus)
        raise InvalidStatusError(f"Invalid status '{value}' (expected one of: {allowed})")


def _sync_completion(changes: dict[str, Any], current_status: Optional[str]) -> dict[str, Any]:
    """
    Keep `completed` and `status` consistent.

    - status given        -> completed follows it (status wins on conflict)
    - only completed=True -> status becomes completed
    - only completed=False on a completed task -> back to todo
    """
    if "status" in changes:
        changes["completed"] = changes["status"] == TaskStatus.COMPLETED
    elif "completed" in changes:
        if changes["completed"]:
            changes["status"] = TaskStatus.COMPLETED.value
        elif current_status == TaskStatus.COMPLETED:
            changes["status"] = TaskStatus.TODO.value
    return changes


class TaskService:
    """
    Business operations on tasks.

    Validation happens before anything is written. Reads and writes go
    through `Storage`; notifications are emitted after the task write
    and can never make it fail.
    """

    def __init__(
        self,
        storage: Storage,
        notifier: Optional[NotificationService] = None,
        transition_policy: str = TASK_TRANSITION_POLICY,
    ):
        if transition_policy not in ("any", "forward"):
            raise ValueError(f"Unknown transition policy: {transition_policy}")

        self.storage = storage
        self.notifier = notifier if notifier is not None else NotificationService(storage)
        self.transition_policy = transition_policy

    # -------------------------
    # Helpers
    # -------------------------

    def _check_transition(self, current: str, new: str) -> None:
        if self.transition_policy != "forward" or current == new:
            return
        if STATUS_ORDER.index(TaskStatus(new)) < STATUS_ORDER.index(TaskStatus(current)):
            raise InvalidTransitionError(f"Cannot move a task from {current} back to {new}")

    def _notify(self, event: str, *args) -> None:
        try:
            getattr(self.notifier, event)(*args)
        except Exception:
            # NotificationService already swallows write errors; this covers anything else
            logger.exception("notification_side_effect_failed", extra={"event": event})

    # -------------------------
    # Reads
    # -------------------------

    def get_task(self, task_id: int) -> Optional[TaskRead]:
        return self.storage.get_task(task_id)

    def list_by_workspace(self, workspace_id: int) -> list[TaskRead]:
        return self.storage.get_tasks(workspace_id)

    def list_by_workspace_and_status(self, workspace_id: int, status: str) -> list[TaskRead]:
        return self.storage.get_tasks_by_status(workspace_id, _status(status).value)

    def list_by_workspace_and_type(self, workspace_id: int, task_type: str) -> list[TaskRead]:
        return self.storage.get_tasks_by_type(workspace_id, task_type)

    def list_by_parent(self, parent_task_id: int) -> list[TaskRead]:
        return self.storage.get_related_tasks(parent_task_id)

    def list_by_epic(self, epic_id: int) -> list[TaskRead]:
        return self.storage.get_tasks_by_epic_id(epic_id)

    # -------------------------
    # Writes
    # -------------------------

    def create_task(self, data: Union[TaskCreate, dict[str, Any]], *, notify: bool = True) -> TaskRead:
        # raises pydantic.ValidationError on a malformed payload
        payload = data if isinstance(data, TaskCreate) else TaskCreate.model_validate(data)

        values = payload.model_dump()
        explicit = payload.model_fields_set
        if "status" in explicit or "completed" not in explicit:
            values["completed"] = values["status"] == TaskStatus.COMPLETED
        elif values["completed"]:
            values["status"] = TaskStatus.COMPLETED.value

        task = self.storage.create_task(values)
        logger.info(
            "task_created",
            extra={"task_id": task.id, "workspace_id": task.workspace_id, "source": task.source},
        )

        if notify:
            self._notify("task_created", task)
        return task

    def update_task(self, task_id: int, data: Union[TaskUpdate, dict[str, Any]]) -> Optional[TaskRead]:
        payload = data if isinstance(data, TaskUpdate) else TaskUpdate.model_validate(data)
        changes = payload.changes()

        existing = self.storage.get_task(task_id)
        if existing is None:
            return None

        if "status" in changes:
            self._check_transition(existing.status, changes["status"])
        changes = _sync_completion(changes, existing.status)
        if "status" in changes and "status" not in payload.model_fields_set:
            self._check_transition(existing.status, changes["status"])

        task = self.storage.update_task(task_id, changes)
        if task is None:
            return None

        logger.info("task_updated", extra={"task_id": task_id, "fields": sorted(changes)})
        self._notify("task_updated", task, changes)
        return task

    def update_task_status(self, task_id: int, status: str) -> Optional[TaskRead]:
        new_status = _status(status).value

        existing = self.storage.get_task(task_id)
        if existing is None:
            return None

        self._check_transition(existing.status, new_status)
        changes = _sync_completion({"status": new_status}, existing.status)

        task = self.storage.update_task(task_id, changes)
        if task is None:
            return None

        logger.info(
            "task_status_changed",
            extra={"task_id": task_id, "from_status": existing.status, "to_status": new_status},
        )
        self._notify("task_status_changed", task, existing.status)
        return task

    def delete_task(self, task_id: int) -> bool:
        deleted = self.storage.delete_task(task_id)
        if deleted:
            logger.info("task_deleted", extra={"task_id": task_id})
        return deleted


def get_task_service(storage: Storage = Depends(get_storage)) -> TaskService:
    return TaskService(storage, NotificationService(storage))
