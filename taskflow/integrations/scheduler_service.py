# taskflow/integrations/scheduler_service.py

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from taskflow.integrations.email_service import EmailNotConfiguredError, EmailService

logger = logging.getLogger("taskflow.integrations.scheduler")


class SchedulerService:
    """
    Periodic email check running as an asyncio task on the server loop.

    The first check runs immediately. A tick that finds the previous run
    still busy is skipped. Failures are logged and the loop keeps going.
    """

    def __init__(self, email_service: EmailService):
        self.email_service = email_service
        self._task: Optional[asyncio.Task] = None
        self._running = False
        self.interval_minutes: Optional[float] = None

    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start_email_checker(self, interval_minutes: float = 5) -> bool:
        """Returns False when the checker was already running."""
        if self.is_running():
            logger.info("email_checker_already_running")
            return False

        if not self.email_service.is_configured():
            raise EmailNotConfiguredError("Email service is not configured. Please configure email settings first.")

        self.interval_minutes = interval_minutes
        self._task = asyncio.create_task(self._loop(interval_minutes * 60))
        logger.info("email_checker_started", extra={"interval_minutes": interval_minutes})
        return True

    async def stop_email_checker(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("email_checker_stopped")

    async def _loop(self, interval_seconds: float) -> None:
        while True:
            await self.run_once()
            await asyncio.sleep(interval_seconds)

    async def run_once(self) -> None:
        if self._running:
            logger.info("email_check_skipped_busy")
            return

        self._running = True
        try:
            # IMAP and the store are blocking: keep them off the event loop
            result = await asyncio.to_thread(self.email_service.process_emails)
            if result.tasks_created or result.tasks_updated:
                logger.info(
                    "email_check_done",
                    extra={"tasks_created": result.tasks_created, "tasks_updated": result.tasks_updated},
                )
            else:
                logger.info("email_check_no_changes")
        except Exception:
            logger.exception("email_check_failed")
        finally:
            self._running = False
