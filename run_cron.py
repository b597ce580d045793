#!/usr/bin/env python3
"""
Bike Shop ERP - Standalone Alert Cron Runner

Runs the alert scheduler without the HTTP API.

Jobs managed:
1. stock_alert_check - evaluate stock levels (every ALERT_CHECK_INTERVAL_MINUTES)
2. alert_retention_cleanup - purge old resolved alerts (every ALERT_CLEANUP_INTERVAL_HOURS)

Usage:
    python run_cron.py                 # run the scheduler until SIGTERM/SIGINT
    python run_cron.py --once check    # one stock check pass, then exit
    python run_cron.py --once cleanup  # one retention cleanup pass, then exit
"""
import argparse
import asyncio
import logging
import os
import signal
import sys
from datetime import datetime, timezone

# Setup logging first
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)

# Validate required environment variables
REQUIRED_VARS = ["DATABASE_URL"]
missing = [var for var in REQUIRED_VARS if not os.getenv(var)]
if missing:
    logger.error(f"Missing required environment variables: {missing}")
    sys.exit(1)

# Import after env validation
from bikeshop_backend.jobs.alert_scheduler import alert_scheduler  # noqa: E402

ONCE_JOBS = {
    "check": "stock_alert_check",
    "cleanup": "alert_retention_cleanup",
}

# Graceful shutdown flag
_shutdown = False


def handle_shutdown(signum, frame):
    """Handle shutdown signals gracefully."""
    global _shutdown
    logger.info(f"Received signal {signum}, initiating graceful shutdown...")
    _shutdown = True


async def run_once(job: str) -> None:
    stats = await alert_scheduler.run_job_now(ONCE_JOBS[job])
    logger.info(f"{ONCE_JOBS[job]} finished: {stats}")


async def main():
    """Main entry point for cron service."""
    global _shutdown

    logger.info("=" * 60)
    logger.info("Bike Shop ERP Alert Cron Service")
    logger.info("=" * 60)
    logger.info(f"Started at: {datetime.now(timezone.utc).isoformat()}")

    # Register signal handlers
    signal.signal(signal.SIGTERM, handle_shutdown)
    signal.signal(signal.SIGINT, handle_shutdown)

    try:
        await alert_scheduler.start()

        # Keep running until shutdown
        logger.info("Cron service running. Press Ctrl+C to stop.")
        while not _shutdown:
            await asyncio.sleep(10)  # Check every 10 seconds

    except Exception as e:
        logger.error(f"Cron service error: {e}")
        raise
    finally:
        logger.info("Stopping alert scheduler...")
        await alert_scheduler.stop()
        logger.info("Cron service stopped.")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Bike Shop ERP alert cron runner")
    parser.add_argument(
        "--once",
        choices=sorted(ONCE_JOBS),
        help="Run a single pass of the given job and exit",
    )
    return parser.parse_args(argv)


if __name__ == "__main__":
    args = parse_args()
    try:
        if args.once:
            asyncio.run(run_once(args.once))
        else:
            asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)
