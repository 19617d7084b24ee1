"""
Job Queue Management
====================

Redis Queue (RQ) integration for report generation.

QUEUE_BACKEND=rq enqueues `task_generate_report` for an RQ worker; if Redis
is unreachable the job runs in-process after the response is sent instead.
QUEUE_BACKEND=inline always runs in-process (development and tests).
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import BackgroundTasks
from rq import Queue

from ..report_jobs import ReportJobManager
from ..resources import AppResources

logger = logging.getLogger(__name__)

TASK_GENERATE_REPORT = "lexboard.jobs.tasks.task_generate_report"


def rq_job_id(report_id: str) -> str:
    return f"report_{report_id}"


def run_report_inline(resources: AppResources, report_id: str) -> None:
    """Process a report job with the API's own resources."""
    db = resources.database.new_session()
    try:
        ReportJobManager(db, resources.storage).process(report_id)
    finally:
        db.close()


def get_queue(resources: AppResources) -> Queue:
    return Queue(resources.settings.report_queue_name, connection=resources.redis)


def enqueue_report(
    resources: AppResources,
    report_id: str,
    background_tasks: Optional[BackgroundTasks] = None,
) -> Dict[str, Any]:
    """
    Schedule processing of a pending report job.

    Returns:
        Dict with job_id, backend and status
    """
    def _run_in_process(reason: str) -> Dict[str, Any]:
        if background_tasks is not None:
            background_tasks.add_task(run_report_inline, resources, report_id)
            status = "scheduled"
        else:
            run_report_inline(resources, report_id)
            status = "done"
        logger.debug(f"Report {report_id} handled in-process ({reason})")
        return {"job_id": report_id, "backend": "inline", "status": status}

    if resources.settings.queue_backend != "rq":
        return _run_in_process("inline backend")

    # Enqueue job (fallback to in-process if Redis is unreachable)
    try:
        queue = get_queue(resources)
        job = queue.enqueue(
            TASK_GENERATE_REPORT,
            report_id,
            job_id=rq_job_id(report_id),
            job_timeout=resources.settings.report_job_timeout,
            retry=None,
            description=f"report {report_id}",
        )
    except Exception as e:
        logger.warning(f"RQ enqueue failed for report {report_id}, running in-process: {e}")
        return _run_in_process("RQ enqueue failed")

    return {
        "job_id": job.id,
        "backend": "rq",
        "status": "queued",
        "queue": queue.name,
        "enqueued_at": datetime.now(timezone.utc).isoformat(),
    }
