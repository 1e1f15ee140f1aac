# taskflow/integrations/email_service.py
"""
Email-to-task ingestion over IMAP.

Unread mail in the configured label is parsed with a handful of regex
heuristics (team, assignee, deadline, priority) and turned into tasks.
A message id that was already ingested updates its task instead of
creating a new one; replies are linked to the task of their thread.
"""

from __future__ import annotations

import email as email_lib
import imaplib
import logging
import os
import re
from dataclasses import dataclass, field
from datetime import datetime
from email.header import decode_header, make_header
from email.message import Message
from typing import Callable, ContextManager, Optional

from dotenv import load_dotenv
from sqlalchemy.orm import Session

from taskflow.database import locked_session
from taskflow.notification.notification_service import NotificationService
from taskflow.schemas.task_schema import TaskPriority, TaskRead, TaskSource, TaskStatus
from taskflow.storage import Storage
from taskflow.task.task_service import TaskService

load_dotenv()

logger = logging.getLogger("taskflow.integrations.email")

DEFAULT_WORKSPACE_ID = 1

_DEADLINE_PATTERNS = (
    re.compile(r"Deadline:\s*([^\n]+)", re.I),
    re.compile(r"Due(?: Date)?:\s*([^\n]+)", re.I),
    re.compile(r"\bby:?\s*([^\n,:;]+)", re.I),
)
_PRIORITY_PATTERNS = (
    re.compile(r"Priority:\s*(high|medium|low)", re.I),
    re.compile(r"\b(high|medium|low) priority\b", re.I),
    re.compile(r"\b(urgent|important)\b", re.I),
)
_URGENT_SUBJECT = re.compile(r"(urgent|asap|immediately|deadline|due|important)", re.I)
_ACTION_SUBJECT = re.compile(r"action|task|follow up|update|review|check|complete", re.I)
_TASK_WORDING = re.compile(r"\b(task|todo|action item|follow up|please|update|review|complete)\b", re.I)
_REPLY_PREFIX = re.compile(r"^\s*((re|fwd?|aw)\s*:\s*)+", re.I)

_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%d.%m.%Y",
    "%B %d, %Y",
    "%B %d %Y",
    "%b %d, %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
)


def parse_deadline(text: str) -> Optional[datetime]:
    text = text.strip().rstrip(".")
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def strip_reply_prefix(subject: str) -> str:
    return _REPLY_PREFIX.sub("", subject).strip()


@dataclass
class ParsedEmail:
    subject: str
    body: str
    workspace_id: int = DEFAULT_WORKSPACE_ID
    message_id: Optional[str] = None
    in_reply_to: Optional[str] = None
    team: Optional[str] = None
    assignee: Optional[str] = None
    deadline: Optional[datetime] = None
    priority: Optional[str] = None

    @property
    def is_reply(self) -> bool:
        return bool(self.in_reply_to) or strip_reply_prefix(self.subject) != self.subject.strip()


def parse_email(
    subject: Optional[str],
    body: Optional[str],
    message_id: Optional[str] = None,
    in_reply_to: Optional[str] = None,
    workspace_id: int = DEFAULT_WORKSPACE_ID,
) -> Optional[ParsedEmail]:
    """Extract task fields from an email, or None when it does not look like a task."""
    subject = subject or "No Subject"
    body = body or ""

    parsed = ParsedEmail(
        subject=subject,
        body=body,
        workspace_id=workspace_id,
        message_id=message_id or None,
        in_reply_to=in_reply_to or None,
    )

    team = re.search(r"Team:\s*([^\n]+)", body, re.I)
    if team:
        parsed.team = team.group(1).strip()

    assignee = re.search(r"Assignee:\s*([^\n]+)", body, re.I)
    if assignee:
        parsed.assignee = assignee.group(1).strip()

    for pattern in _DEADLINE_PATTERNS:
        match = pattern.search(body)
        if match:
            # only the first pattern that matches counts, even if its date is unreadable
            parsed.deadline = parse_deadline(match.group(1))
            break

    for pattern in _PRIORITY_PATTERNS:
        match = pattern.search(body)
        if match:
            priority = match.group(1).lower()
            parsed.priority = "high" if priority in ("urgent", "important") else priority
            break

    if parsed.priority is None and _URGENT_SUBJECT.search(subject):
        parsed.priority = "high"

    likely_task = len(subject) < 150 and (len(body) < 1000 or _ACTION_SUBJECT.search(subject))
    if likely_task:
        return parsed
    if parsed.priority == "high" or parsed.deadline:
        return parsed
    if _TASK_WORDING.search(body[:500]):
        return parsed

    logger.debug("email_not_a_task", extra={"subject": subject[:80]})
    return None


def _decode(value: Optional[str]) -> str:
    if not value:
        return ""
    try:
        return str(make_header(decode_header(value)))
    except (UnicodeDecodeError, LookupError):
        return value


def message_text(msg: Message) -> str:
    """Plain-text body of a (possibly multipart) message."""
    if msg.is_multipart():
        for part in msg.walk():
            if part.get_content_type() == "text/plain" and not part.get("Content-Disposition"):
                payload = part.get_payload(decode=True) or b""
                return payload.decode(part.get_content_charset() or "utf-8", errors="replace")
        return ""
    payload = msg.get_payload(decode=True) or b""
    return payload.decode(msg.get_content_charset() or "utf-8", errors="replace")


@dataclass
class EmailConfig:
    email_address: str
    email_password: str
    imap_host: str = "imap.gmail.com"
    imap_port: int = 993
    email_label: str = "INBOX"

    def masked(self) -> dict:
        return {
            "email_address": self.email_address,
            "imap_host": self.imap_host,
            "imap_port": self.imap_port,
            "email_label": self.email_label,
        }


@dataclass
class EmailResult:
    tasks_created: int = 0
    tasks_updated: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)


class EmailServiceError(Exception):
    pass


class EmailNotConfiguredError(EmailServiceError):
    pass


class EmailService:
    def __init__(
        self,
        session_factory: Callable[[], ContextManager[Session]] = locked_session,
        imap_factory: Callable[..., imaplib.IMAP4] = imaplib.IMAP4_SSL,
    ):
        self.session_factory = session_factory
        self.imap_factory = imap_factory
        self.config: Optional[EmailConfig] = None

    @classmethod
    def from_env(cls, **kwargs) -> "EmailService":
        service = cls(**kwargs)
        password = os.getenv("GMAIL_APP_PASSWORD") or os.getenv("EMAIL_PASSWORD")
        address = os.getenv("EMAIL_ADDRESS")
        if address and password:
            service.configure(
                EmailConfig(
                    email_address=address,
                    email_password=password,
                    imap_host=os.getenv("IMAP_HOST", "imap.gmail.com"),
                    imap_port=int(os.getenv("IMAP_PORT", "993")),
                    email_label=os.getenv("EMAIL_LABEL", "INBOX"),
                )
            )
            logger.info("email_configured_from_env", extra={"imap_host": service.config.imap_host})
        return service

    # -------------------------
    # Configuration
    # -------------------------

    def configure(self, config: EmailConfig) -> None:
        self.config = config

    def test_connection(self) -> None:
        """Log in and out once; raises EmailServiceError on failure."""
        conn = self._connect()
        try:
            conn.logout()
        except (imaplib.IMAP4.error, OSError):
            pass

    def is_configured(self) -> bool:
        return self.config is not None

    def get_config(self) -> Optional[dict]:
        return self.config.masked() if self.config else None

    # -------------------------
    # IMAP
    # -------------------------

    def _connect(self) -> imaplib.IMAP4:
        if not self.config:
            raise EmailNotConfiguredError("Email service not configured. Please configure email settings first.")
        try:
            conn = self.imap_factory(self.config.imap_host, self.config.imap_port)
            conn.login(self.config.email_address, self.config.email_password)
        except (imaplib.IMAP4.error, OSError) as exc:
            raise EmailServiceError(f"IMAP connection failed: {exc}") from exc
        return conn

    def fetch_unread_emails(self) -> list[Message]:
        conn = self._connect()
        messages: list[Message] = []
        try:
            status, _ = conn.select(self.config.email_label, readonly=False)
            if status != "OK":
                raise EmailServiceError(f"Cannot open mailbox {self.config.email_label}")

            status, data = conn.search(None, "UNSEEN")
            if status != "OK":
                raise EmailServiceError("IMAP search failed")

            nums = data[0].split() if data and data[0] else []
            logger.info("email_unread_found", extra={"count": len(nums)})

            for num in nums:
                # RFC822 fetch marks the message as seen
                status, msg_data = conn.fetch(num, "(RFC822)")
                if status != "OK" or not msg_data or not isinstance(msg_data[0], tuple):
                    logger.warning("email_fetch_failed", extra={"imap_num": num.decode(errors="replace")})
                    continue
                messages.append(email_lib.message_from_bytes(msg_data[0][1]))
        except (imaplib.IMAP4.error, OSError) as exc:
            raise EmailServiceError(f"IMAP error: {exc}") from exc
        finally:
            try:
                conn.logout()
            except (imaplib.IMAP4.error, OSError):
                pass

        return messages

    # -------------------------
    # Tasks
    # -------------------------

    def _find_assignee_id(self, storage: Storage, name: Optional[str]) -> Optional[int]:
        if not name:
            return None
        wanted = name.lower()
        for user in storage.get_users():
            if user.display_name.lower() == wanted or user.username.lower() == wanted:
                return user.id
        return None

    def _find_parent(self, storage: Storage, parsed: ParsedEmail) -> Optional[TaskRead]:
        if parsed.in_reply_to:
            parent = storage.find_task_by_email_thread(parsed.in_reply_to)
            if parent:
                return parent
        if parsed.is_reply:
            return storage.find_task_by_title(parsed.workspace_id, strip_reply_prefix(parsed.subject))
        return None

    def create_or_update_task_from_email(self, storage: Storage, parsed: ParsedEmail) -> tuple[Optional[TaskRead], bool]:
        """Returns (task, is_new)."""
        service = TaskService(storage, NotificationService(storage))

        priority = parsed.priority if parsed.priority in {p.value for p in TaskPriority} else TaskPriority.MEDIUM.value
        assignee_id = self._find_assignee_id(storage, parsed.assignee)

        existing = storage.find_task_by_email_thread(parsed.message_id) if parsed.message_id else None
        if existing:
            task = service.update_task(
                existing.id,
                {
                    "title": parsed.subject,
                    "description": f"{parsed.body}\n\n(Updated from email)",
                    "priority": priority,
                    "assignee_id": assignee_id,
                    "due_date": parsed.deadline or existing.due_date,
                },
            )
            logger.info("email_task_updated", extra={"task_id": existing.id})
            return task, False

        parent = self._find_parent(storage, parsed)

        task = service.create_task(
            {
                "title": parsed.subject,
                "description": parsed.body,
                "status": TaskStatus.TODO.value,
                "priority": priority,
                "assignee_id": assignee_id,
                "workspace_id": parsed.workspace_id,
                "due_date": parsed.deadline,
                "start_date": datetime.now(),
                "parent_task_id": parent.id if parent else None,
                "email_thread_id": parsed.message_id,
                "source": TaskSource.EMAIL.value,
            },
            notify=False,
        )
        service.notifier.email_task_created(task)
        logger.info("email_task_created", extra={"task_id": task.id, "parent_task_id": task.parent_task_id})
        return task, True

    def ingest_message(self, storage: Storage, msg: Message) -> tuple[Optional[TaskRead], bool]:
        parsed = parse_email(
            _decode(msg.get("Subject")),
            message_text(msg),
            message_id=(msg.get("Message-ID") or "").strip() or None,
            in_reply_to=(msg.get("In-Reply-To") or "").strip() or None,
        )
        if parsed is None:
            return None, False
        return self.create_or_update_task_from_email(storage, parsed)

    def process_emails(self) -> EmailResult:
        if not self.is_configured():
            raise EmailNotConfiguredError("Email service not configured")

        emails = self.fetch_unread_emails()
        result = EmailResult()

        with self.session_factory() as db:
            storage = Storage(db)
            for msg in emails:
                try:
                    task, is_new = self.ingest_message(storage, msg)
                except Exception as exc:
                    # one bad message must not stop the batch
                    logger.exception("email_ingest_failed", extra={"subject": _decode(msg.get("Subject"))[:80]})
                    db.rollback()
                    result.errors.append(str(exc))
                    continue

                if task is None:
                    result.skipped += 1
                elif is_new:
                    result.tasks_created += 1
                else:
                    result.tasks_updated += 1

        logger.info(
            "email_processed",
            extra={"tasks_created": result.tasks_created, "tasks_updated": result.tasks_updated},
        )
        return result
