import argparse

from common.workers.launcher import WorkerLauncher
from packages.billing.workers.maintenance_worker import UsageMaintenanceWorker


def _parse_args():
    parser = argparse.ArgumentParser(description="Usage ledger maintenance worker")
    parser.add_argument("--interval", type=int, default=None, help="Seconds between passes")
    parser.add_argument("--once", action="store_true", help="Run a single pass and exit")
    return parser.parse_args()


if __name__ == "__main__":
    args = _parse_args()
    WorkerLauncher().run(
        worker_factory=UsageMaintenanceWorker,
        worker_name="Usage Maintenance Worker",
        factory_kwargs={"interval_seconds": args.interval, "run_once": args.once},
    )
