"""
Job Queue Package
=================

Async report generation with Redis Queue (RQ).
"""

from .queue import enqueue_report, run_report_inline
from .tasks import task_generate_report, task_sweep_stale_reports

__all__ = [
    # Queue management
    "enqueue_report", "run_report_inline",
    # Tasks
    "task_generate_report",
    "task_sweep_stale_reports",
]
