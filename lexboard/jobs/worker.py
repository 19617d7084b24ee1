"""
RQ Worker
=========

Consumes report jobs from the `REPORT_QUEUE_NAME` queue.

Usage:
    python -m lexboard.jobs.worker [--burst] [--queues reports] [--sweep-only]
    lexboard-worker --burst

Before consuming, jobs left in pending/processing by a crashed worker are
marked failed so pollers stop waiting on them.
"""

import argparse
import logging
from typing import List, Optional

from redis import Redis
from rq import Worker

from ..config import get_settings
from .tasks import task_sweep_stale_reports

logger = logging.getLogger(__name__)

WORKER_TTL_SECONDS = 420


def start_worker(
    queues: Optional[List[str]] = None,
    burst: bool = False,
    logging_level: str = "INFO",
    sweep_only: bool = False,
):
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, logging_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    swept = task_sweep_stale_reports()
    logger.info(f"Stale report sweep: {swept} job(s) marked failed")
    if sweep_only:
        return

    queues = queues or [settings.report_queue_name]
    worker = Worker(
        queues,
        connection=Redis.from_url(settings.redis_url),
        worker_ttl=WORKER_TTL_SECONDS,
        job_monitoring_interval=5,
    )
    logger.info(f"Report worker listening on {queues} (burst={burst})")
    worker.work(burst=burst)


def run_worker_cli():
    parser = argparse.ArgumentParser(description="RQ worker for Lexboard report jobs")
    parser.add_argument("--queues", "-q", nargs="+", default=None,
                        help="Queues to consume (default: REPORT_QUEUE_NAME)")
    parser.add_argument("--burst", "-b", action="store_true", help="Exit once the queues are empty")
    parser.add_argument("--log-level", "-l", default="INFO")
    parser.add_argument("--sweep-only", action="store_true", help="Fail stale report jobs and exit")
    args = parser.parse_args()

    start_worker(
        queues=args.queues,
        burst=args.burst,
        logging_level=args.log_level,
        sweep_only=args.sweep_only,
    )


if __name__ == "__main__":
    run_worker_cli()
