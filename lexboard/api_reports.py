"""
Report API Endpoints
====================

- POST   /reports                 - Request a report (201, status=pending)
- GET    /reports                 - Caller's report jobs, newest first
- GET    /reports/summary         - Dashboard counters (role-scoped)
- GET    /reports/charts          - Dashboard series (role-scoped)
- GET    /reports/{id}            - Poll job status
- PUT    /reports/{id}            - Rename / re-describe
- GET    /reports/{id}/download   - Bytes, only once status=ready
- DELETE /reports/{id}            - Remove job and its stored file
"""

import io
import logging
from datetime import datetime
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy import and_, func
from sqlalchemy.orm import Session

from .auth import AuthContext
from .db.models import Case, CaseStatus, Task, TaskStatus, utcnow
from .db.session import get_db
from .deps import get_resources, require_auth
from .jobs.queue import enqueue_report
from .report_jobs import ReportJobManager
from .resources import AppResources
from .schemas import (
    ChartsOut, MonthlyCasePoint, ReportCreate, ReportOut, ReportUpdate, StatusPoint,
    SuccessResponse, SummaryOut,
)
from .scoping import ResourceType, scoped_query

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["Reports"])

CHART_MONTHS = 6


def get_report_manager(
    db: Session = Depends(get_db),
    resources: AppResources = Depends(get_resources),
) -> ReportJobManager:
    return ReportJobManager(db, resources.storage)


@router.post("", response_model=ReportOut, status_code=201)
async def create_report(
    request: ReportCreate,
    background_tasks: BackgroundTasks,
    auth: AuthContext = Depends(require_auth),
    manager: ReportJobManager = Depends(get_report_manager),
    resources: AppResources = Depends(get_resources),
):
    """Create a pending report job and hand it to the worker; never blocks on rendering."""
    job = manager.create(auth, request.title, request.case_id, request.description, request.format)
    out = ReportOut.model_validate(job)
    enqueue_report(resources, job.id, background_tasks)
    return out


@router.get("", response_model=List[ReportOut])
async def list_reports(
    auth: AuthContext = Depends(require_auth),
    manager: ReportJobManager = Depends(get_report_manager),
):
    return manager.list(auth)


def _month_starts(now: datetime, count: int) -> List[datetime]:
    """First instant of each of the last `count` months, oldest first."""
    year, month = now.year, now.month
    starts = []
    for _ in range(count):
        starts.append(datetime(year, month, 1))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(starts))


@router.get("/summary", response_model=SummaryOut)
async def report_summary(auth: AuthContext = Depends(require_auth), db: Session = Depends(get_db)):
    now = utcnow()
    open_tasks = scoped_query(db, ResourceType.TASK, auth).filter(Task.status != TaskStatus.DONE)
    return SummaryOut(
        total_cases=scoped_query(db, ResourceType.CASE, auth).count(),
        total_clients=scoped_query(db, ResourceType.CLIENT, auth).count(),
        open_tasks=open_tasks.count(),
        overdue_tasks=open_tasks.filter(and_(Task.due_date.isnot(None), Task.due_date < now)).count(),
    )


@router.get("/charts", response_model=ChartsOut)
async def report_charts(auth: AuthContext = Depends(require_auth), db: Session = Depends(get_db)):
    """New/closed cases per month for the last six months, plus the status split."""
    starts = _month_starts(utcnow(), CHART_MONTHS)
    bounds = list(zip(starts, starts[1:] + [None]))

    monthly = []
    for start, end in bounds:
        created = scoped_query(db, ResourceType.CASE, auth).filter(Case.created_at >= start)
        closed = scoped_query(db, ResourceType.CASE, auth).filter(
            Case.status == CaseStatus.DONE, Case.updated_at >= start,
        )
        if end is not None:
            created = created.filter(Case.created_at < end)
            closed = closed.filter(Case.updated_at < end)
        monthly.append(MonthlyCasePoint(
            name=start.strftime("%b %Y"),
            new_cases=created.count(),
            closed_cases=closed.count(),
        ))

    counts = dict(
        scoped_query(db, ResourceType.CASE, auth)
        .with_entities(Case.status, func.count(Case.id))
        .group_by(Case.status)
        .all()
    )
    status_data = [StatusPoint(name=status.value, value=counts.get(status, 0)) for status in CaseStatus]

    return ChartsOut(monthly_case_data=monthly, case_status_data=status_data)


@router.get("/{report_id}", response_model=ReportOut)
async def get_report(
    report_id: str,
    auth: AuthContext = Depends(require_auth),
    manager: ReportJobManager = Depends(get_report_manager),
):
    return manager.get(report_id, auth)


@router.put("/{report_id}", response_model=ReportOut)
async def update_report(
    report_id: str,
    request: ReportUpdate,
    auth: AuthContext = Depends(require_auth),
    manager: ReportJobManager = Depends(get_report_manager),
):
    return manager.update(report_id, auth, title=request.title, description=request.description)


@router.get("/{report_id}/download")
async def download_report(
    report_id: str,
    auth: AuthContext = Depends(require_auth),
    manager: ReportJobManager = Depends(get_report_manager),
):
    data, content_type, filename = manager.download(report_id, auth)
    return StreamingResponse(
        io.BytesIO(data),
        media_type=content_type,
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Content-Length": str(len(data)),
        },
    )


@router.delete("/{report_id}", response_model=SuccessResponse)
async def delete_report(
    report_id: str,
    auth: AuthContext = Depends(require_auth),
    manager: ReportJobManager = Depends(get_report_manager),
):
    manager.delete(report_id, auth)
    return SuccessResponse()
