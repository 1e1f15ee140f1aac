# tests/test_scheduler.py

from __future__ import annotations

import asyncio
import threading

import pytest

from taskflow.integrations.email_service import EmailNotConfiguredError, EmailResult
from taskflow.integrations.scheduler_service import SchedulerService


class CountingEmailService:
    def __init__(self, configured=True, fail=False):
        self.configured = configured
        self.fail = fail
        self.calls = 0

    def is_configured(self):
        return self.configured

    def process_emails(self):
        self.calls += 1
        if self.fail:
            raise RuntimeError("imap down")
        return EmailResult(tasks_created=1)


@pytest.mark.asyncio
async def test_start_runs_first_check_immediately() -> None:
    email = CountingEmailService()
    scheduler = SchedulerService(email)

    assert scheduler.start_email_checker(interval_minutes=60) is True
    assert scheduler.is_running() is True
    assert scheduler.interval_minutes == 60

    for _ in range(50):
        if email.calls:
            break
        await asyncio.sleep(0.01)
    assert email.calls == 1

    await scheduler.stop_email_checker()
    assert scheduler.is_running() is False


@pytest.mark.asyncio
async def test_second_start_is_a_no_op() -> None:
    scheduler = SchedulerService(CountingEmailService())

    assert scheduler.start_email_checker(interval_minutes=60) is True
    assert scheduler.start_email_checker(interval_minutes=1) is False
    assert scheduler.interval_minutes == 60

    await scheduler.stop_email_checker()


@pytest.mark.asyncio
async def test_start_requires_configured_email() -> None:
    scheduler = SchedulerService(CountingEmailService(configured=False))
    with pytest.raises(EmailNotConfiguredError):
        scheduler.start_email_checker()
    assert scheduler.is_running() is False


@pytest.mark.asyncio
async def test_stop_without_start_is_harmless() -> None:
    await SchedulerService(CountingEmailService()).stop_email_checker()


@pytest.mark.asyncio
async def test_failed_check_is_logged_not_raised(caplog) -> None:
    email = CountingEmailService(fail=True)
    scheduler = SchedulerService(email)

    await scheduler.run_once()

    assert email.calls == 1
    assert any(r.getMessage() == "email_check_failed" for r in caplog.records)
    # the busy flag is released after a failure
    await scheduler.run_once()
    assert email.calls == 2


@pytest.mark.asyncio
async def test_overlapping_run_is_skipped() -> None:
    release = threading.Event()

    class SlowEmailService(CountingEmailService):
        def process_emails(self):
            self.calls += 1
            release.wait(timeout=5)
            return EmailResult()

    email = SlowEmailService()
    scheduler = SchedulerService(email)

    first = asyncio.create_task(scheduler.run_once())
    for _ in range(50):
        if email.calls:
            break
        await asyncio.sleep(0.01)

    await scheduler.run_once()
    release.set()
    await first

    assert email.calls == 1


def test_scheduler_routes(client, monkeypatch) -> None:
    from taskflow.integrations import integration_router

    email = CountingEmailService(configured=False)
    scheduler = SchedulerService(email)
    monkeypatch.setattr(integration_router, "scheduler_service", scheduler)

    assert client.post("/api/email/scheduler/start", json={}).status_code == 400

    email.configured = True
    r = client.post("/api/email/scheduler/start", json={"interval_minutes": 30})
    assert r.status_code == 200
    assert r.json()["message"] == "Email scheduler started with 30 minute interval"
    assert client.get("/api/email/scheduler").json() == {"running": True, "interval_minutes": 30}

    r = client.post("/api/email/scheduler/start", json={})
    assert r.json()["message"] == "Email scheduler already running"

    assert client.post("/api/email/scheduler/stop").json()["success"] is True
    assert client.get("/api/email/scheduler").json()["running"] is False
