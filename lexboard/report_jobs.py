"""
Report Job Manager
==================

Lifecycle of a report generation request:

    pending -> processing -> ready
                          -> failed

`create` only persists a pending job; rendering happens later in `process`,
called by a worker (RQ task or in-process background task). Every status
write is a conditional UPDATE keyed on the current status, so a duplicate
pickup or a late writer can never move a job backwards or complete it twice.
Failures are recorded on the job and never retried automatically.
"""

import logging
import re
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, or_, update
from sqlalchemy.orm import Session

from .auth import AuthContext
from .db.models import ReportJob, ReportStatus, ReportFormat, User, utcnow
from .errors import ValidationFailed, NotFoundOrForbidden, NotReady, UpstreamFailure
from .report_renderer import ReportRenderer
from .scoping import ResourceType, get_scoped
from .storage import BlobStore, StorageError

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 1000
STALE_JOB_ERROR = "Report generation timed out"


def report_filename(title: str, extension: str) -> str:
    stem = re.sub(r"[^A-Za-z0-9]+", "-", title or "").strip("-")[:100]
    return f"{stem or 'report'}.{extension}"


class ReportJobManager:
    def __init__(self, db: Session, storage: BlobStore, renderer: Optional[ReportRenderer] = None):
        self.db = db
        self.storage = storage
        self.renderer = renderer or ReportRenderer()

    # -------------------------------------------------------------------------
    # Request side
    # -------------------------------------------------------------------------

    def create(
        self,
        auth: AuthContext,
        title: Optional[str],
        case_id: Optional[str],
        description: Optional[str] = None,
        fmt: ReportFormat = ReportFormat.PDF,
    ) -> ReportJob:
        title = (title or "").strip()
        case_id = (case_id or "").strip()
        if not title:
            raise ValidationFailed("Report title is required")
        if not case_id:
            raise ValidationFailed("Report case reference is required")
        if not get_scoped(self.db, ResourceType.CASE, auth, case_id):
            raise NotFoundOrForbidden("Case not found")

        job = ReportJob(
            title=title,
            description=(description or "").strip() or None,
            user_id=auth.user_id,
            case_id=case_id,
            format=ReportFormat(fmt),
            status=ReportStatus.PENDING,
        )
        self.db.add(job)
        self.db.commit()
        self.db.refresh(job)
        logger.info(f"Report job {job.id} created by {auth.user_id} ({job.format.value})")
        return job

    def get(self, job_id: str, auth: AuthContext) -> ReportJob:
        job = get_scoped(self.db, ResourceType.REPORT, auth, job_id)
        if not job:
            raise NotFoundOrForbidden("Report not found")
        return job

    def list(self, auth: AuthContext) -> List[ReportJob]:
        return (
            self.db.query(ReportJob)
            .filter(ReportJob.user_id == auth.user_id)
            .order_by(ReportJob.created_at.desc())
            .all()
        )

    def update(self, job_id: str, auth: AuthContext, title: Optional[str] = None,
               description: Optional[str] = None) -> ReportJob:
        job = self.get(job_id, auth)
        if title is not None:
            if not title.strip():
                raise ValidationFailed("Report title is required")
            job.title = title.strip()
        if description is not None:
            job.description = description.strip() or None
        self.db.commit()
        self.db.refresh(job)
        return job

    def download(self, job_id: str, auth: AuthContext) -> Tuple[bytes, str, str]:
        """Return (data, content_type, filename) for a ready job."""
        job = self.get(job_id, auth)
        if job.status != ReportStatus.READY:
            raise NotReady(f"Report is {job.status.value}", details={"status": job.status.value})
        try:
            data = self.storage.get(job.result_key)
        except StorageError as e:
            logger.error(f"Report {job.id} blob unavailable: {e}")
            raise UpstreamFailure("Report file is unavailable")
        extension = "csv" if job.format == ReportFormat.CSV else "pdf"
        return data, job.content_type or "application/octet-stream", report_filename(job.title, extension)

    def delete(self, job_id: str, auth: AuthContext) -> None:
        job = self.get(job_id, auth)
        result_key = job.result_key
        self.db.delete(job)
        self.db.commit()
        logger.info(f"Report job {job_id} deleted by {auth.user_id}")
        if result_key:
            self._release_blob(result_key, job_id)

    def _release_blob(self, key: str, job_id: str) -> None:
        try:
            self.storage.delete(key)
        except Exception as e:
            logger.warning(f"Failed to delete blob {key} for report {job_id}: {e}")

    # -------------------------------------------------------------------------
    # Worker side
    # -------------------------------------------------------------------------

    def _transition(self, job_id: str, from_status: ReportStatus, to_status: ReportStatus, **values) -> bool:
        """Move a job from one status to another only if it is still in `from_status`."""
        result = self.db.execute(
            update(ReportJob)
            .where(ReportJob.id == job_id, ReportJob.status == from_status)
            .values(status=to_status, **values)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount == 1

    def build_payload(self, job: ReportJob) -> Dict[str, Any]:
        requester = self.db.get(User, job.user_id)
        payload: Dict[str, Any] = {
            "title": job.title,
            "description": job.description,
            "requested_by": requester.name if requester else None,
            "generated_at": utcnow(),
            "case": None,
            "documents": [],
            "comments": [],
        }
        case = job.case
        if case is not None:
            payload["case"] = {
                "id": case.id,
                "title": case.title,
                "description": case.description,
                "status": case.status.value,
                "created_at": case.created_at,
            }
            payload["documents"] = [
                {"filename": d.filename, "mimetype": d.mimetype, "uploaded_at": d.uploaded_at}
                for d in case.documents
            ]
            payload["comments"] = [
                {"author": c.author_name, "text": c.text, "created_at": c.created_at}
                for c in case.comments
            ]
        return payload

    def process(self, job_id: str) -> Optional[ReportStatus]:
        """
        Render and store one job.

        Returns the terminal status written by this call, or None when the
        job was already claimed, deleted, or finished by someone else.
        """
        if not self._transition(job_id, ReportStatus.PENDING, ReportStatus.PROCESSING, started_at=utcnow()):
            logger.info(f"Report job {job_id} is not pending, skipping")
            return None

        job = self.db.get(ReportJob, job_id)
        if job is None:
            logger.info(f"Report job {job_id} was deleted before processing")
            return None
        logger.info(f"Report job {job_id} processing")

        try:
            payload = self.build_payload(job)
            rendered = self.renderer.render(payload, job.format)
            key = self.storage.generate_key("reports", job.id, f"{job.id}.{rendered.extension}")
            stored = self.storage.put(key, rendered.data, rendered.content_type)
        except Exception as e:
            logger.exception(f"Report job {job_id} failed")
            self.db.rollback()
            error = (str(e) or e.__class__.__name__)[:MAX_ERROR_LENGTH]
            if self._transition(job_id, ReportStatus.PROCESSING, ReportStatus.FAILED,
                                error=error, completed_at=utcnow()):
                return ReportStatus.FAILED
            return None

        if self._transition(
            job_id, ReportStatus.PROCESSING, ReportStatus.READY,
            result_key=stored.key,
            size_bytes=stored.size_bytes,
            content_type=rendered.content_type,
            completed_at=utcnow(),
        ):
            logger.info(f"Report job {job_id} ready ({stored.size_bytes} bytes)")
            return ReportStatus.READY

        # Deleted or swept while rendering; nothing references the blob now
        logger.warning(f"Report job {job_id} left processing before completion, discarding result")
        self._release_blob(stored.key, job_id)
        return None

    def fail_stale_jobs(self, max_age: timedelta, now: Optional[datetime] = None) -> int:
        """
        Mark jobs stuck for longer than `max_age` as failed.

        Pending jobs age from creation, processing jobs from pickup, so a job
        that waited in the queue backlog is not failed mid-render.
        """
        now = now or utcnow()
        cutoff = now - max_age
        result = self.db.execute(
            update(ReportJob)
            .where(
                or_(
                    and_(ReportJob.status == ReportStatus.PENDING, ReportJob.created_at < cutoff),
                    and_(ReportJob.status == ReportStatus.PROCESSING, ReportJob.started_at < cutoff),
                ),
            )
            .values(status=ReportStatus.FAILED, error=STALE_JOB_ERROR, completed_at=now)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        if result.rowcount:
            logger.warning(f"Marked {result.rowcount} stale report job(s) as failed")
        return result.rowcount
