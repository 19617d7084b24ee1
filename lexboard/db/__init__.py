"""
Database Package - SQLAlchemy
=============================

Persistence layer for users, cases, clients, tasks and report jobs.
"""

from .models import (
    Base,
    User, Case, CaseDocument, CaseComment, Client, Task, ReportJob,
    UserRole, CaseStatus, TaskStatus, ClientStatus, ReportFormat, ReportStatus,
    utcnow,
)
from .session import Database, get_db

__all__ = [
    # Base
    "Base",
    # Tables
    "User", "Case", "CaseDocument", "CaseComment", "Client", "Task", "ReportJob",
    # Enums
    "UserRole", "CaseStatus", "TaskStatus", "ClientStatus", "ReportFormat", "ReportStatus",
    "utcnow",
    # Session
    "Database", "get_db",
]
