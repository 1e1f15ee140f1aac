# tests/test_email_service.py

from __future__ import annotations

import imaplib
from datetime import datetime
from email.message import EmailMessage

import pytest

from taskflow.integrations.email_service import (
    EmailConfig,
    EmailNotConfiguredError,
    EmailService,
    EmailServiceError,
    parse_deadline,
    parse_email,
    strip_reply_prefix,
)


def _mail(subject, body, message_id=None, in_reply_to=None) -> bytes:
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = "boss@example.com"
    msg["To"] = "team@example.com"
    if message_id:
        msg["Message-ID"] = message_id
    if in_reply_to:
        msg["In-Reply-To"] = in_reply_to
    msg.set_content(body)
    return msg.as_bytes()


class FakeIMAP:
    """Minimal IMAP4 double serving a fixed list of raw messages."""

    mailbox: list[bytes] = []
    fail_login = False

    def __init__(self, host, port):
        self.host = host
        self.port = port
        self.logged_out = False

    def login(self, user, password):
        if FakeIMAP.fail_login:
            raise imaplib.IMAP4.error("AUTHENTICATIONFAILED")
        return "OK", [b"Logged in"]

    def select(self, mailbox, readonly=False):
        return "OK", [str(len(FakeIMAP.mailbox)).encode()]

    def search(self, charset, criterion):
        nums = " ".join(str(i + 1) for i in range(len(FakeIMAP.mailbox)))
        return "OK", [nums.encode()]

    def fetch(self, num, parts):
        raw = FakeIMAP.mailbox[int(num) - 1]
        return "OK", [(num + b" (RFC822 {%d}" % len(raw), raw), b")"]

    def logout(self):
        self.logged_out = True
        return "BYE", [b""]


@pytest.fixture()
def email_service(session_factory):
    FakeIMAP.mailbox = []
    FakeIMAP.fail_login = False
    svc = EmailService(session_factory=session_factory, imap_factory=FakeIMAP)
    svc.configure(EmailConfig(email_address="team@example.com", email_password="app-pass"))
    return svc


# ---------------- parsing ----------------

def test_parse_email_extracts_fields() -> None:
    parsed = parse_email(
        "Prepare release notes",
        "Team: Platform\nAssignee: Sarah Chen\nDeadline: 2024-03-15\nPriority: low\n",
        message_id="<a@example.com>",
    )

    assert parsed.team == "Platform"
    assert parsed.assignee == "Sarah Chen"
    assert parsed.deadline == datetime(2024, 3, 15)
    assert parsed.priority == "low"
    assert parsed.message_id == "<a@example.com>"
    assert parsed.is_reply is False


def test_urgent_wording_means_high_priority() -> None:
    assert parse_email("Fix login", "This is urgent, the login page is down.").priority == "high"
    assert parse_email("ASAP: rotate keys", "Keys leaked.").priority == "high"
    assert parse_email("Lunch?", "Pizza or sushi").priority is None


def test_long_non_task_mail_is_ignored() -> None:
    newsletter = "Lorem ipsum dolor sit amet. " * 80
    assert parse_email("Monthly newsletter", newsletter) is None


def test_long_mail_with_task_wording_is_kept() -> None:
    body = "Please review the attached draft. " + "Background text. " * 100
    assert parse_email("Quarterly draft", body) is not None


def test_missing_subject_gets_placeholder() -> None:
    assert parse_email(None, "please update the wiki").subject == "No Subject"


def test_reply_detection_and_prefix_stripping() -> None:
    assert strip_reply_prefix("Re: Fwd: RE: Budget") == "Budget"
    assert parse_email("Re: Budget", "ok").is_reply is True
    assert parse_email("Budget", "ok", in_reply_to="<x@y>").is_reply is True


def test_parse_deadline_formats() -> None:
    assert parse_deadline("2024-03-15") == datetime(2024, 3, 15)
    assert parse_deadline("March 15, 2024.") == datetime(2024, 3, 15)
    assert parse_deadline("15.03.2024") == datetime(2024, 3, 15)
    assert parse_deadline("sometime next week") is None


# ---------------- ingestion ----------------

def test_new_email_creates_task_and_notifies_admins(email_service, storage, admin, member, workspace) -> None:
    msg_id = "<release@example.com>"
    parsed = parse_email(
        "Prepare release notes", "Assignee: Sarah Chen\nDue: 2024-03-15\nhigh priority", message_id=msg_id
    )

    task, is_new = email_service.create_or_update_task_from_email(storage, parsed)

    assert is_new is True
    assert task.source == "email"
    assert task.email_thread_id == msg_id
    assert task.assignee_id == member.id
    assert task.priority == "high"
    assert task.due_date == datetime(2024, 3, 15)
    assert task.status == "todo"

    notes = storage.get_notifications(admin.id)
    assert [(n.type, n.title) for n in notes] == [("task_created", "New Email Task")]


def test_same_message_id_updates_in_place(email_service, storage, admin, workspace) -> None:
    first = parse_email("Prepare notes", "Due: 2024-03-15", message_id="<m1@x>")
    task, _ = email_service.create_or_update_task_from_email(storage, first)

    again = parse_email("Prepare notes v2", "Priority: low", message_id="<m1@x>")
    updated, is_new = email_service.create_or_update_task_from_email(storage, again)

    assert is_new is False
    assert updated.id == task.id
    assert updated.title == "Prepare notes v2"
    assert updated.priority == "low"
    # deadline kept when the new mail has none
    assert updated.due_date == datetime(2024, 3, 15)
    assert updated.description.endswith("(Updated from email)")
    assert len(storage.get_tasks(workspace.id)) == 1


def test_reply_links_to_thread_task(email_service, storage, workspace) -> None:
    root, _ = email_service.create_or_update_task_from_email(
        storage, parse_email("Budget", "please review", message_id="<root@x>")
    )

    by_header, _ = email_service.create_or_update_task_from_email(
        storage, parse_email("Something else", "done", message_id="<r1@x>", in_reply_to="<root@x>")
    )
    by_title, _ = email_service.create_or_update_task_from_email(
        storage, parse_email("Re: Budget", "also done", message_id="<r2@x>")
    )

    assert by_header.parent_task_id == root.id
    assert by_title.parent_task_id == root.id


def test_process_emails_reads_mailbox(email_service, storage, admin, workspace) -> None:
    FakeIMAP.mailbox = [
        _mail("Update the roadmap", "Deadline: 2024-04-01", message_id="<1@x>"),
        _mail("Weekly digest", "Lorem ipsum dolor sit amet. " * 80, message_id="<2@x>"),
        _mail("Re: Update the roadmap", "Roadmap updated", message_id="<3@x>", in_reply_to="<1@x>"),
    ]

    result = email_service.process_emails()

    assert (result.tasks_created, result.tasks_updated, result.skipped) == (2, 0, 1)
    tasks = storage.get_tasks(workspace.id)
    assert [t.title for t in tasks] == ["Update the roadmap", "Re: Update the roadmap"]
    assert tasks[1].parent_task_id == tasks[0].id
    assert tasks[0].due_date == datetime(2024, 4, 1)


def test_process_emails_second_pass_updates(email_service, storage, workspace) -> None:
    FakeIMAP.mailbox = [_mail("Update the roadmap", "text", message_id="<1@x>")]
    email_service.process_emails()

    result = email_service.process_emails()

    assert (result.tasks_created, result.tasks_updated) == (0, 1)
    assert len(storage.get_tasks(workspace.id)) == 1


def test_one_bad_message_does_not_stop_the_batch(email_service, storage, workspace, monkeypatch) -> None:
    FakeIMAP.mailbox = [
        _mail("Broken one", "text", message_id="<bad@x>"),
        _mail("Good one", "text", message_id="<good@x>"),
    ]
    original = email_service.create_or_update_task_from_email

    def flaky(storage, parsed):
        if parsed.message_id == "<bad@x>":
            raise RuntimeError("cannot store")
        return original(storage, parsed)

    monkeypatch.setattr(email_service, "create_or_update_task_from_email", flaky)

    result = email_service.process_emails()

    assert result.tasks_created == 1
    assert result.errors == ["cannot store"]
    assert [t.title for t in storage.get_tasks(workspace.id)] == ["Good one"]


def test_unconfigured_and_login_failure(session_factory) -> None:
    svc = EmailService(session_factory=session_factory, imap_factory=FakeIMAP)
    with pytest.raises(EmailNotConfiguredError):
        svc.process_emails()

    svc.configure(EmailConfig(email_address="a@b.c", email_password="x"))
    FakeIMAP.fail_login = True
    try:
        with pytest.raises(EmailServiceError):
            svc.test_connection()
    finally:
        FakeIMAP.fail_login = False

    assert "email_password" not in svc.get_config()


# ---------------- routes ----------------

def test_email_routes(client, email_service, monkeypatch) -> None:
    from taskflow.integrations import integration_router

    unconfigured = EmailService(session_factory=email_service.session_factory, imap_factory=FakeIMAP)
    monkeypatch.setattr(integration_router, "email_service", unconfigured)

    assert client.post("/api/email/check").status_code == 400
    assert client.get("/api/email/config").json() == {"configured": False, "config": None}

    r = client.post("/api/email/configure", json={"email_address": "team@example.com", "email_password": "pw"})
    assert r.status_code == 200
    assert r.json()["connected"] is True
    assert r.json()["config"]["email_label"] == "taskflow"

    FakeIMAP.mailbox = [_mail("Review PR 12", "please", message_id="<pr@x>")]
    r = client.post("/api/email/check")
    assert r.status_code == 200
    assert r.json()["tasks_created"] == 1

    FakeIMAP.fail_login = True
    r = client.post("/api/email/check")
    assert r.status_code == 502
