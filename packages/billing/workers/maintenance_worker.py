import asyncio
from typing import Optional
from uuid import uuid4

from common.core.config import settings
from common.core.telemetry import get_logger
from packages.billing.services.maintenance_service import MaintenanceService

logger = get_logger(__name__)


class UsageMaintenanceWorker:
    """Runs a maintenance pass every `interval_seconds` until stopped."""

    def __init__(
        self,
        interval_seconds: Optional[int] = None,
        worker_id: Optional[str] = None,
        run_once: bool = False,
    ):
        self.interval_seconds = interval_seconds or settings.maintenance_interval_seconds
        self.worker_id = worker_id or f"usage_maintenance_worker_{uuid4()}"
        self.run_once = run_once
        self.running = False
        self.maintenance_service = MaintenanceService()

    async def run_pass(self):
        try:
            report = await self.maintenance_service.run()
            logger.info(
                f"Worker {self.worker_id} completed maintenance pass",
                extra=report.model_dump(),
            )
            return report
        except Exception as e:
            # Next pass retries; the ledger is untouched by a failed pass
            logger.error(
                f"Maintenance pass failed in worker {self.worker_id}: {e}",
                exc_info=True,
            )
            return None

    async def start(self):
        if self.running:
            logger.warning(f"Worker {self.worker_id} is already running")
            return

        self.running = True
        logger.info(
            f"Starting worker {self.worker_id} with interval {self.interval_seconds}s"
        )
        while self.running:
            await self.run_pass()
            if self.run_once:
                break
            slept = 0
            while self.running and slept < self.interval_seconds:
                await asyncio.sleep(1)
                slept += 1
        self.running = False

    async def stop(self):
        self.running = False
        logger.info(f"Stopping worker {self.worker_id}")
