# taskflow/integrations/slack_service.py
"""
Slack channel-to-task ingestion over the Slack Web API.

Each top-level channel message becomes a task; replies in a thread are
linked to the task of the thread's first message. A message whose first
line equals the title of an existing non-Slack task is stored as an
already-completed duplicate.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, ContextManager, Optional

import httpx
from dotenv import load_dotenv
from sqlalchemy.orm import Session

from taskflow.database import locked_session
from taskflow.notification.notification_service import NotificationService
from taskflow.schemas.task_schema import TaskPriority, TaskRead, TaskSource, TaskStatus, TaskType
from taskflow.storage import Storage
from taskflow.task.task_service import TaskService

load_dotenv()

logger = logging.getLogger("taskflow.integrations.slack")

SLACK_API_URL = "https://slack.com/api"
DEFAULT_WORKSPACE_ID = 1
TITLE_MAX_LENGTH = 100


class SlackServiceError(Exception):
    pass


class SlackNotConfiguredError(SlackServiceError):
    pass


@dataclass
class SlackConfig:
    bot_token: str
    channel_id: str

    def masked(self) -> dict:
        return {"channel_id": self.channel_id, "bot_token": "***masked***" if self.bot_token else None}


@dataclass
class SlackResult:
    tasks_created: int = 0
    duplicates_detected: int = 0


class SlackService:
    def __init__(
        self,
        session_factory: Callable[[], ContextManager[Session]] = locked_session,
        transport: Optional[httpx.BaseTransport] = None,
        workspace_id: int = DEFAULT_WORKSPACE_ID,
        timeout: float = 15.0,
    ):
        self.session_factory = session_factory
        self.transport = transport
        self.workspace_id = workspace_id
        self.timeout = timeout
        self.config: Optional[SlackConfig] = None
        self._client: Optional[httpx.Client] = None
        self._configured = False

    @classmethod
    def from_env(cls, **kwargs) -> "SlackService":
        service = cls(**kwargs)
        token = os.getenv("SLACK_BOT_TOKEN")
        channel = os.getenv("SLACK_CHANNEL_ID")
        if token and channel:
            try:
                service.configure(SlackConfig(bot_token=token, channel_id=channel))
            except SlackServiceError:
                logger.exception("slack_env_configuration_failed")
        return service

    # -------------------------
    # Web API
    # -------------------------

    def _call(self, method: str, **params: Any) -> dict:
        if self._client is None:
            raise SlackNotConfiguredError("Slack service not configured")
        try:
            response = self._client.post(f"/{method}", data=params)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise SlackServiceError(f"Slack API request failed: {exc}") from exc

        if not data.get("ok"):
            raise SlackServiceError(data.get("error") or "Invalid response from Slack API")
        return data

    # -------------------------
    # Configuration
    # -------------------------

    def configure(self, config: SlackConfig) -> None:
        """Connect and check the channel; raises SlackServiceError when Slack says no."""
        if self._client is not None:
            self._client.close()

        self.config = config
        self._configured = False
        self._client = httpx.Client(
            base_url=SLACK_API_URL,
            headers={"Authorization": f"Bearer {config.bot_token}"},
            timeout=self.timeout,
            transport=self.transport,
        )

        info = self._call("conversations.info", channel=config.channel_id)
        channel = info.get("channel") or {}
        self._configured = True
        logger.info(
            "slack_configured",
            extra={"channel_name": channel.get("name"), "is_private": channel.get("is_private")},
        )

    def is_configured(self) -> bool:
        return self._configured and self._client is not None and self.config is not None

    def get_config(self) -> Optional[dict]:
        return self.config.masked() if self.config else None

    def _require_configured(self) -> None:
        if not self.is_configured():
            raise SlackNotConfiguredError("Slack service not configured")

    def send_message(self, text: str) -> Optional[str]:
        self._require_configured()
        data = self._call("chat.postMessage", channel=self.config.channel_id, text=text)
        return data.get("ts")

    def fetch_channel_messages(self, limit: int = 50) -> list[dict]:
        self._require_configured()
        data = self._call("conversations.history", channel=self.config.channel_id, limit=limit)
        return data.get("messages") or []

    # -------------------------
    # Parsing
    # -------------------------

    def parse_message(self, storage: Storage, message: dict) -> Optional[dict]:
        text = (message.get("text") or "").strip()
        if not text:
            return None

        task_data = {
            "title": text.split("\n")[0][:TITLE_MAX_LENGTH],
            "description": text,
            "status": TaskStatus.TODO.value,
            "priority": TaskPriority.MEDIUM.value,
            "task_type": TaskType.ADHOC.value,
            "source": TaskSource.SLACK.value,
            "slack_message_id": message.get("ts"),
            "workspace_id": self.workspace_id,
        }

        thread_ts = message.get("thread_ts")
        if thread_ts and thread_ts != message.get("ts"):
            parent = storage.find_task_by_slack_message(thread_ts)
            if parent:
                task_data["parent_task_id"] = parent.id
                task_data["title"] = f"Reply: {task_data['title']}"

        return task_data

    def check_for_duplicate_task(self, storage: Storage, task_data: dict) -> Optional[TaskRead]:
        if not task_data.get("title"):
            return None
        return storage.find_task_by_title(
            task_data.get("workspace_id") or self.workspace_id,
            task_data["title"],
            exclude_source=TaskSource.SLACK.value,
        )

    # -------------------------
    # Tasks
    # -------------------------

    def create_task_from_message(self, storage: Storage, message: dict) -> tuple[Optional[TaskRead], bool]:
        """Returns (task, is_duplicate). A message seen before returns its task unchanged."""
        self._require_configured()

        ts = message.get("ts")
        if ts:
            known = storage.find_task_by_slack_message(ts)
            if known:
                return known, False

        task_data = self.parse_message(storage, message)
        if not task_data:
            return None, False

        service = TaskService(storage, NotificationService(storage))
        duplicate = self.check_for_duplicate_task(storage, task_data)

        if duplicate:
            task = service.create_task(
                {
                    **task_data,
                    "description": (
                        f"Duplicate of existing task: {duplicate.title}\n\n"
                        f"Original content:\n{task_data['description']}"
                    ),
                    "status": TaskStatus.COMPLETED.value,
                    "completed": True,
                    "parent_task_id": None,
                },
                notify=False,
            )
            service.notifier.slack_duplicate(task, duplicate)
            logger.info("slack_duplicate_detected", extra={"task_id": task.id, "duplicate_of": duplicate.id})
            return task, True

        task = service.create_task(task_data, notify=False)
        service.notifier.slack_task_created(task)
        logger.info("slack_task_created", extra={"task_id": task.id, "parent_task_id": task.parent_task_id})
        return task, False

    def process_messages(self) -> SlackResult:
        self._require_configured()

        messages = self.fetch_channel_messages()
        logger.info("slack_messages_fetched", extra={"count": len(messages)})

        result = SlackResult()
        # history comes newest first; oldest first lets thread parents exist before replies
        with self.session_factory() as db:
            storage = Storage(db)
            for message in reversed(messages):
                if message.get("subtype") or message.get("bot_id"):
                    continue

                ts = message.get("ts")
                if ts and storage.find_task_by_slack_message(ts):
                    continue

                task, is_duplicate = self.create_task_from_message(storage, message)
                if task is None:
                    continue
                if is_duplicate:
                    result.duplicates_detected += 1
                else:
                    result.tasks_created += 1

        return result
