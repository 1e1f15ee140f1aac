# taskflow/integrations/integration_router.py

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from taskflow.integrations.email_service import (
    EmailConfig,
    EmailNotConfiguredError,
    EmailService,
    EmailServiceError,
)
from taskflow.integrations.scheduler_service import SchedulerService
from taskflow.integrations.slack_service import (
    SlackConfig,
    SlackNotConfiguredError,
    SlackService,
    SlackServiceError,
)

logger = logging.getLogger("taskflow.integrations")

# process-wide: they hold connection settings between requests
email_service = EmailService.from_env()
scheduler_service = SchedulerService(email_service)
slack_service = SlackService.from_env()

router = APIRouter(tags=["integrations"])


# ================= SCHEMAS =================
class EmailConfigureRequest(BaseModel):
    email_address: str = Field(min_length=1)
    email_password: str = Field(min_length=1)
    imap_host: Optional[str] = None
    imap_port: Optional[int] = None
    email_label: Optional[str] = None


class SchedulerStartRequest(BaseModel):
    interval_minutes: Optional[float] = Field(default=None, gt=0)


class SlackConfigureRequest(BaseModel):
    bot_token: str = Field(min_length=1)
    channel_id: str = Field(min_length=1)


# ================= EMAIL =================
@router.post("/email/configure")
def configure_email(data: EmailConfigureRequest):
    email_service.configure(
        EmailConfig(
            email_address=data.email_address,
            email_password=data.email_password,
            imap_host=data.imap_host or "imap.gmail.com",
            imap_port=data.imap_port or 993,
            email_label=data.email_label or "taskflow",
        )
    )

    try:
        email_service.test_connection()
        connected = True
    except EmailServiceError:
        logger.warning("email_connection_test_failed", extra={"imap_host": email_service.config.imap_host})
        connected = False

    return {
        "success": True,
        "connected": connected,
        "message": "Email configuration saved",
        "config": email_service.get_config(),
    }


@router.get("/email/config")
def get_email_config():
    return {"configured": email_service.is_configured(), "config": email_service.get_config()}


@router.post("/email/check")
def check_emails():
    try:
        result = email_service.process_emails()
    except EmailNotConfiguredError:
        raise HTTPException(400, "Email service not configured. Please configure email settings first.")
    except EmailServiceError as exc:
        logger.error("email_check_failed", extra={"error": str(exc)})
        raise HTTPException(502, f"Failed to check emails: {exc}")

    return {
        "success": True,
        "message": (
            f"Processed emails: created {result.tasks_created} new task(s) "
            f"and updated {result.tasks_updated} task(s)"
        ),
        "tasks_created": result.tasks_created,
        "tasks_updated": result.tasks_updated,
    }


@router.post("/email/scheduler/start")
async def start_scheduler(data: SchedulerStartRequest):
    interval = data.interval_minutes or 5
    try:
        started = scheduler_service.start_email_checker(interval)
    except EmailNotConfiguredError:
        raise HTTPException(400, "Email service not configured. Please configure email settings first.")

    if not started:
        return {"success": True, "message": "Email scheduler already running"}
    return {"success": True, "message": f"Email scheduler started with {interval:g} minute interval"}


@router.post("/email/scheduler/stop")
async def stop_scheduler():
    await scheduler_service.stop_email_checker()
    return {"success": True, "message": "Email scheduler stopped"}


@router.get("/email/scheduler")
async def scheduler_status():
    return {"running": scheduler_service.is_running(), "interval_minutes": scheduler_service.interval_minutes}


# ================= SLACK =================
@router.post("/slack/configure")
def configure_slack(data: SlackConfigureRequest):
    try:
        slack_service.configure(SlackConfig(bot_token=data.bot_token, channel_id=data.channel_id))
    except SlackServiceError as exc:
        raise HTTPException(502, f"Failed to connect to Slack: {exc}")
    return {"success": True, "config": slack_service.get_config()}


@router.get("/slack/config")
def get_slack_config():
    return {"configured": slack_service.is_configured(), "config": slack_service.get_config()}


@router.post("/slack/sync")
def sync_slack():
    try:
        result = slack_service.process_messages()
    except SlackNotConfiguredError:
        raise HTTPException(400, "Slack service not configured")
    except SlackServiceError as exc:
        raise HTTPException(502, f"Failed to process Slack messages: {exc}")

    return {
        "success": True,
        "tasks_created": result.tasks_created,
        "duplicates_detected": result.duplicates_detected,
    }
