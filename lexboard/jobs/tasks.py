"""
Job Tasks
=========

Entry points executed by the RQ worker. Each task builds its own resources
from the environment and releases them when it returns.
"""

import logging
from datetime import timedelta
from typing import Optional

from ..config import get_settings
from ..report_jobs import ReportJobManager
from ..resources import open_resources

logger = logging.getLogger(__name__)


def task_generate_report(report_id: str) -> Optional[str]:
    """
    Render and store a report job.

    Returns the terminal status reached, or None if another worker had
    already claimed the job.
    """
    with open_resources(get_settings()) as resources:
        with resources.database.session() as db:
            status = ReportJobManager(db, resources.storage).process(report_id)
    return status.value if status else None


def task_sweep_stale_reports(max_age_minutes: Optional[int] = None) -> int:
    """Fail jobs stuck in pending/processing for longer than the configured age."""
    settings = get_settings()
    minutes = max_age_minutes if max_age_minutes is not None else settings.report_stale_after_minutes
    with open_resources(settings) as resources:
        with resources.database.session() as db:
            return ReportJobManager(db, resources.storage).fail_stale_jobs(timedelta(minutes=minutes))
