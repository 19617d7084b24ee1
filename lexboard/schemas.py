"""
Pydantic Schemas for Lexboard
=============================

Request and response bodies. JSON field names are camelCase (`caseId`,
`createdAt`); snake_case input is accepted too.
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

from .db.models import (
    UserRole, CaseStatus, TaskStatus, ClientStatus, ReportFormat, ReportStatus,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
    )


def _to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Stored timestamps are naive UTC."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# =============================================================================
# AUTH & USERS
# =============================================================================

class RegisterRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: UserRole = UserRole.PARALEGAL


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserOut(CamelModel):
    id: str
    name: str
    email: str
    role: UserRole


class AuthResponse(CamelModel):
    token: str
    expires_at: datetime
    user: UserOut


class ProfileUpdate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr


class PasswordChange(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)


class MessageResponse(CamelModel):
    message: str


class SuccessResponse(CamelModel):
    success: bool = True


# =============================================================================
# CASES
# =============================================================================

class CaseCreate(CamelModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=10, max_length=2000)
    status: CaseStatus = CaseStatus.PENDING
    assigned_to_user_id: Optional[str] = None


class CaseUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, min_length=10, max_length=2000)
    status: Optional[CaseStatus] = None
    assigned_to_user_id: Optional[str] = None


class DocumentOut(CamelModel):
    id: str
    case_id: str
    filename: str
    mimetype: str
    size_bytes: int
    uploaded_at: datetime

    @computed_field
    @property
    def url(self) -> str:
        return f"/cases/{self.case_id}/documents/{self.id}"


class CommentCreate(CamelModel):
    text: str = Field(..., min_length=1, max_length=1000)


class CommentOut(CamelModel):
    id: str
    text: str
    user_id: Optional[str] = None
    author_name: Optional[str] = None
    created_at: datetime


class CaseOut(CamelModel):
    id: str
    title: str
    description: str
    status: CaseStatus
    assigned_to_user_id: Optional[str] = None
    created_by_user_id: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    documents: List[DocumentOut] = []
    comments: List[CommentOut] = []


class UploadResponse(CamelModel):
    message: str
    document: DocumentOut


# =============================================================================
# CLIENTS & TASKS
# =============================================================================

class ClientCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    contact: str = Field(..., min_length=1, max_length=255)
    notes: Optional[str] = Field(None, max_length=2000)
    status: ClientStatus = ClientStatus.ACTIVE


class ClientUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    contact: Optional[str] = Field(None, min_length=1, max_length=255)
    notes: Optional[str] = Field(None, max_length=2000)
    status: Optional[ClientStatus] = None


class ClientOut(CamelModel):
    id: str
    name: str
    contact: str
    notes: Optional[str] = None
    status: ClientStatus
    created_by_user_id: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class TaskCreate(CamelModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    status: TaskStatus = TaskStatus.PENDING
    due_date: Optional[datetime] = None

    @field_validator("due_date")
    @classmethod
    def naive_due_date(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _to_naive_utc(value)


class TaskUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    status: Optional[TaskStatus] = None
    due_date: Optional[datetime] = None

    @field_validator("due_date")
    @classmethod
    def naive_due_date(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _to_naive_utc(value)


class TaskOut(CamelModel):
    id: str
    title: str
    description: Optional[str] = None
    status: TaskStatus
    due_date: Optional[datetime] = None
    created_by_user_id: str
    created_at: datetime
    updated_at: Optional[datetime] = None


# =============================================================================
# REPORTS
# =============================================================================

class ReportCreate(CamelModel):
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    case_id: Optional[str] = None
    format: ReportFormat = ReportFormat.PDF


class ReportUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)


class ReportOut(CamelModel):
    id: str
    title: str
    description: Optional[str] = None
    case_id: Optional[str] = None
    format: ReportFormat
    status: ReportStatus
    size_bytes: Optional[int] = None
    content_type: Optional[str] = None
    error: Optional[str] = None
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @computed_field
    @property
    def download_url(self) -> Optional[str]:
        if self.status != ReportStatus.READY:
            return None
        return f"/reports/{self.id}/download"


class SummaryOut(CamelModel):
    total_cases: int
    total_clients: int
    open_tasks: int
    overdue_tasks: int


class MonthlyCasePoint(CamelModel):
    name: str
    new_cases: int
    closed_cases: int


class StatusPoint(CamelModel):
    name: str
    value: int


class ChartsOut(CamelModel):
    monthly_case_data: List[MonthlyCasePoint]
    case_status_data: List[StatusPoint]


class HealthResponse(CamelModel):
    """Health check response"""
    status: str = Field(..., description="Service status")
    version: str = Field(..., description="Service version")
    timestamp: datetime = Field(..., description="Current timestamp")
