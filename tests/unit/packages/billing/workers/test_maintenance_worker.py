from unittest.mock import AsyncMock, patch

from common.core.config import settings
from packages.billing.services.maintenance_service import MaintenanceReport
from packages.billing.workers.maintenance_worker import UsageMaintenanceWorker


class TestUsageMaintenanceWorker:
    """Tests for the maintenance loop around MaintenanceService."""

    async def test_run_once_executes_a_single_pass(self, sample_user_entity):
        worker = UsageMaintenanceWorker(worker_id="test_worker", run_once=True)

        await worker.start()

        assert worker.running is False

    async def test_run_pass_returns_report(self):
        worker = UsageMaintenanceWorker(worker_id="test_worker")
        worker.maintenance_service.run = AsyncMock(
            return_value=MaintenanceReport(users_reset=2, logs_deleted=5)
        )

        report = await worker.run_pass()

        assert report.users_reset == 2
        assert report.logs_deleted == 5

    async def test_failed_pass_does_not_stop_the_worker(self):
        worker = UsageMaintenanceWorker(worker_id="test_worker")
        worker.maintenance_service.run = AsyncMock(side_effect=RuntimeError("db down"))

        assert await worker.run_pass() is None

    async def test_stop_ends_the_loop(self):
        worker = UsageMaintenanceWorker(interval_seconds=60, worker_id="test_worker")

        async def run_and_stop():
            await worker.stop()
            return MaintenanceReport()

        worker.maintenance_service.run = AsyncMock(side_effect=run_and_stop)

        with patch(
            "packages.billing.workers.maintenance_worker.asyncio.sleep", AsyncMock()
        ) as mock_sleep:
            await worker.start()

        worker.maintenance_service.run.assert_awaited_once()
        mock_sleep.assert_not_called()
        assert worker.running is False

    async def test_start_twice_is_ignored(self):
        worker = UsageMaintenanceWorker(worker_id="test_worker", run_once=True)
        worker.running = True
        worker.maintenance_service.run = AsyncMock()

        await worker.start()

        worker.maintenance_service.run.assert_not_called()

    def test_interval_defaults_to_settings(self, monkeypatch):
        monkeypatch.setattr(settings, "maintenance_interval_seconds", 42)

        assert UsageMaintenanceWorker().interval_seconds == 42
