"""Daily database backup scheduler.

APScheduler cron job that runs the backup routine once a day at a fixed
local time. Also exposes manual controls (start, stop, restart, run now)
for the admin API. One BackupScheduler is created per process at startup.
"""

import asyncio
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from fastapi import Request

from workorders.config import settings
from workorders.logging_config import correlation_id_ctx, get_logger
from workorders.services.backup import run_backup_job

logger = get_logger(__name__)

BACKUP_JOB_ID = "database_backup"

BackupRoutine = Callable[[], Awaitable[Any]]


def describe_schedule(cron_expression: str, timezone: str) -> str:
    """Human-readable form of a daily cron expression.

    "0 6 * * *" -> "Daily at 6:00 AM (Asia/Dhaka)". Anything that is not
    a plain once-a-day expression is shown as-is.
    """
    fields = cron_expression.split()
    if (
        len(fields) == 5
        and fields[0].isdecimal()
        and fields[1].isdecimal()
        and int(fields[0]) <= 59
        and int(fields[1]) <= 23
        and fields[2:] == ["*", "*", "*"]
    ):
        at = datetime(2000, 1, 1, int(fields[1]), int(fields[0]))
        return f"Daily at {at.strftime('%I:%M %p').lstrip('0')} ({timezone})"
    return f"Cron '{cron_expression}' ({timezone})"


class BackupScheduler:
    """Owns the recurring backup trigger.

    States: stopped (initial) and running. start() and stop() are
    idempotent; restart() always ends running with a fresh trigger.
    Stopping only cancels future firings; a backup already in flight
    runs to completion.

    Args:
        routine: Coroutine function performing one backup run.
        cron_expression: Five-field crontab expression.
        timezone: IANA timezone the expression is evaluated in.
    """

    def __init__(
        self,
        routine: BackupRoutine = run_backup_job,
        cron_expression: str | None = None,
        timezone: str | None = None,
    ):
        self._routine = routine
        self.cron_expression = cron_expression or settings.backup_schedule
        self.timezone = timezone or settings.backup_timezone
        self._scheduler: AsyncIOScheduler | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None

    @property
    def description(self) -> str:
        return describe_schedule(self.cron_expression, self.timezone)

    @property
    def jobs(self) -> list[Job]:
        """Jobs registered on the live scheduler (empty when stopped)."""
        if self._scheduler is None:
            return []
        return self._scheduler.get_jobs()

    @property
    def in_flight(self) -> int:
        """Number of backup runs currently executing."""
        return len(self._tasks)

    def build_trigger(self) -> CronTrigger:
        """Raises ValueError (bad expression) or KeyError (unknown timezone)."""
        return CronTrigger.from_crontab(self.cron_expression, timezone=self.timezone)

    def start(self) -> bool:
        """Register the daily trigger.

        Returns:
            True if the scheduler was started, False if it was already
            running or could not be started.
        """
        if self._scheduler is not None:
            logger.warning("Backup scheduler is already running")
            return False

        try:
            scheduler = AsyncIOScheduler(timezone=self.timezone)
            scheduler.add_job(
                self._fire,
                trigger=self.build_trigger(),
                id=BACKUP_JOB_ID,
                name="Database Backup",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
            scheduler.start()
        except Exception as e:
            logger.error(
                "Failed to start backup scheduler",
                cron=self.cron_expression,
                timezone=self.timezone,
                error=str(e),
            )
            return False

        self._scheduler = scheduler
        logger.info(
            "Backup scheduler started",
            schedule=self.description,
            next_run=self._format_next_run(),
        )
        return True

    def stop(self) -> bool:
        """Cancel the trigger. Returns False if it was not running."""
        if self._scheduler is None:
            logger.warning("Backup scheduler is not running")
            return False

        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Backup scheduler stopped", in_flight=self.in_flight)
        return True

    async def drain(self, timeout: float = 30.0) -> int:
        """Wait for in-flight backup runs to finish.

        Runs still going after `timeout` seconds are cancelled.

        Returns:
            Number of runs that had to be cancelled.
        """
        if not self._tasks:
            return 0

        logger.info("Waiting for in-flight backups", in_flight=self.in_flight)
        _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            logger.warning(
                "Cancelled unfinished backup runs",
                cancelled=len(pending),
                timeout_seconds=timeout,
            )
            await asyncio.gather(*pending, return_exceptions=True)
        return len(pending)

    def restart(self) -> bool:
        """Stop (if running) and start with a fresh trigger."""
        self.stop()
        return self.start()

    async def _fire(self) -> asyncio.Task:
        """Job callback. Hands the run off so the scheduler never waits on it."""
        return self._launch("scheduled")

    def trigger_manual_backup(self) -> asyncio.Task:
        """Start a backup now, independent of the schedule.

        Returns immediately with the running task; failures are logged by
        the task itself and never reach the caller.
        """
        logger.info("Manual backup triggered")
        return self._launch("manual")

    def _launch(self, trigger: str) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self.run_backup(trigger))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def run_backup(self, trigger: str = "manual") -> None:
        """Run the routine once, logging (not raising) any failure."""
        token = correlation_id_ctx.set(f"backup-{uuid.uuid4().hex[:12]}")
        try:
            logger.info("Backup run started", trigger=trigger)
            await self._routine()
            logger.info("Backup run finished", trigger=trigger)
        except Exception as e:
            logger.exception("Backup run failed", trigger=trigger, error=str(e))
        finally:
            correlation_id_ctx.reset(token)

    def next_run_time(self) -> datetime | None:
        if self._scheduler is None:
            return None
        job = self._scheduler.get_job(BACKUP_JOB_ID)
        return job.next_run_time if job is not None else None

    def _format_next_run(self) -> str | None:
        next_run = self.next_run_time()
        return next_run.isoformat() if next_run else None

    def status(self) -> dict[str, Any]:
        return {
            "is_running": self.is_running,
            "next_run": self._format_next_run(),
            "schedule": self.description,
            "timezone": self.timezone,
        }

    def validate_config(self) -> dict[str, Any]:
        try:
            self.build_trigger()
        except (ValueError, KeyError) as e:
            return {"valid": False, "error": str(e)}
        return {"valid": True, "message": "Scheduler configuration is valid"}

    def info(self) -> dict[str, Any]:
        return {
            "status": self.status(),
            "configuration": {
                "cron_pattern": self.cron_expression,
                "timezone": self.timezone,
                "description": self.description,
            },
            "next_execution": self._format_next_run() or "Scheduler not running",
            "validation": self.validate_config(),
        }


def get_backup_scheduler(request: Request) -> BackupScheduler:
    """FastAPI dependency returning the process-wide scheduler."""
    return request.app.state.backup_scheduler
