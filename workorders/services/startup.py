"""Once-per-process startup of background services."""

from typing import Any

from fastapi import Request

from workorders.logging_config import get_logger
from workorders.services.backup_scheduler import BackupScheduler

logger = get_logger(__name__)


class AppInitializer:
    """Starts the backup scheduler the first time initialize() is called.

    The lifespan handler calls initialize() on startup; the admin API can
    call it again and will be told it already ran.
    """

    def __init__(self, scheduler: BackupScheduler):
        self._scheduler = scheduler
        self.completed = False

    def initialize(self) -> bool:
        """Run startup once.

        Returns:
            True if this call performed initialization, False if it had
            already completed.
        """
        if self.completed:
            logger.info("Application already initialized")
            return False

        logger.info("Initializing application services")
        if self._scheduler.start() or self._scheduler.is_running:
            logger.info(
                "Backup scheduler initialized",
                next_run=self._scheduler.status()["next_run"],
            )
        else:
            logger.warning("Backup scheduler failed to start")

        self.completed = True
        return True

    def reset(self) -> None:
        self.completed = False

    def status(self) -> dict[str, Any]:
        return {
            "completed": self.completed,
            "scheduler": self._scheduler.status(),
        }


def get_initializer(request: Request) -> AppInitializer:
    """FastAPI dependency returning the process-wide initializer."""
    return request.app.state.initializer
