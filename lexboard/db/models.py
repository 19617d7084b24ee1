"""
SQLAlchemy Models for Database
==============================

Schema for the case-management service:
- Users (advocates and paralegals)
- Cases with uploaded documents and comments
- Clients and tasks
- Report generation jobs

Every tenant-owned row carries `created_by_user_id`, the owner used by the
role-scoped query filter. Supports both PostgreSQL and SQLite via SQLAlchemy.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column, String, Text, Integer, DateTime, Enum, ForeignKey, Index,
)
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()


def generate_uuid():
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp (columns are stored without tz info)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# =============================================================================
# ENUMS
# =============================================================================

class UserRole(str, enum.Enum):
    """Account role"""
    ADVOCATE = "advocate"
    PARALEGAL = "paralegal"


class CaseStatus(str, enum.Enum):
    """Case and task lifecycle status"""
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    DONE = "Done"


# Tasks share the case workflow
TaskStatus = CaseStatus


class ClientStatus(str, enum.Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class ReportFormat(str, enum.Enum):
    PDF = "PDF"
    CSV = "CSV"


class ReportStatus(str, enum.Enum):
    """Report job state machine: pending -> processing -> ready | failed"""
    PENDING = "pending"
    PROCESSING = "processing"
    READY = "ready"
    FAILED = "failed"


# =============================================================================
# USERS
# =============================================================================

class User(Base):
    """User account"""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)  # stored lower-cased
    password_hash = Column(String(255), nullable=False)
    role = Column(Enum(UserRole), default=UserRole.PARALEGAL, nullable=False)

    # Legacy one-time passcode login, unused by the token flow
    otp_code = Column(String(16), nullable=True)
    otp_expires_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @staticmethod
    def normalize_email(email: str) -> str:
        return (email or "").strip().lower()

    @property
    def password(self):
        raise AttributeError("password is write-only")

    @password.setter
    def password(self, plain: str) -> None:
        # Local import: auth imports this module
        from ..auth import get_password_hash
        self.password_hash = get_password_hash(plain)


# =============================================================================
# CASES
# =============================================================================

class Case(Base):
    """Legal case"""
    __tablename__ = "cases"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(Enum(CaseStatus, values_callable=lambda e: [m.value for m in e]),
                    default=CaseStatus.PENDING, nullable=False)
    assigned_to_user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_by_user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_case_owner_created", "created_by_user_id", "created_at"),
    )

    # Relationships
    created_by = relationship("User", foreign_keys=[created_by_user_id])
    assigned_to = relationship("User", foreign_keys=[assigned_to_user_id])
    documents = relationship(
        "CaseDocument", back_populates="case", cascade="all, delete-orphan",
        order_by="CaseDocument.uploaded_at",
    )
    comments = relationship(
        "CaseComment", back_populates="case", cascade="all, delete-orphan",
        order_by="CaseComment.created_at",
    )
    # Jobs outlive their case; deleting the case clears case_id
    report_jobs = relationship("ReportJob", back_populates="case")


class CaseDocument(Base):
    """File uploaded to a case; bytes live in the blob store"""
    __tablename__ = "case_documents"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    case_id = Column(String(36), ForeignKey("cases.id", ondelete="CASCADE"), nullable=False)
    filename = Column(String(255), nullable=False)
    storage_key = Column(String(512), nullable=False)
    mimetype = Column(String(100), nullable=False)
    size_bytes = Column(Integer, nullable=False, default=0)
    uploaded_by_user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    uploaded_at = Column(DateTime, default=utcnow)

    case = relationship("Case", back_populates="documents")


class CaseComment(Base):
    __tablename__ = "case_comments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    case_id = Column(String(36), ForeignKey("cases.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    text = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    case = relationship("Case", back_populates="comments")
    user = relationship("User")

    @property
    def author_name(self):
        return self.user.name if self.user else None


# =============================================================================
# CLIENTS & TASKS
# =============================================================================

class Client(Base):
    __tablename__ = "clients"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    contact = Column(String(255), nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(Enum(ClientStatus, values_callable=lambda e: [m.value for m in e]),
                    default=ClientStatus.ACTIVE, nullable=False)
    created_by_user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class Task(Base):
    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(Enum(TaskStatus, values_callable=lambda e: [m.value for m in e]),
                    default=TaskStatus.PENDING, nullable=False)
    due_date = Column(DateTime, nullable=True)
    created_by_user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


# =============================================================================
# REPORT JOBS
# =============================================================================

class ReportJob(Base):
    """One report generation request and its async lifecycle"""
    __tablename__ = "report_jobs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    case_id = Column(String(36), ForeignKey("cases.id", ondelete="SET NULL"), nullable=True)
    format = Column(Enum(ReportFormat), default=ReportFormat.PDF, nullable=False)
    status = Column(Enum(ReportStatus), default=ReportStatus.PENDING, nullable=False)

    # Set only when status == ready
    result_key = Column(String(512), nullable=True)
    size_bytes = Column(Integer, nullable=True)
    content_type = Column(String(100), nullable=True)

    # Set only when status == failed
    error = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_report_job_user_created", "user_id", "created_at"),
        Index("ix_report_job_status", "status"),
    )

    case = relationship("Case", back_populates="report_jobs")
