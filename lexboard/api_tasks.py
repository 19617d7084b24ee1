"""
Task API Endpoints
==================
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .auth import AuthContext
from .crud import create_record, delete_record, get_record, list_records, update_record
from .db.models import TaskStatus
from .db.session import get_db
from .deps import require_auth
from .errors import ValidationFailed
from .schemas import SuccessResponse, TaskCreate, TaskOut, TaskUpdate
from .scoping import ResourceType

router = APIRouter(prefix="/tasks", tags=["Tasks"])


@router.get("", response_model=List[TaskOut])
async def list_tasks(
    search: Optional[str] = Query(None, max_length=200),
    status: Optional[TaskStatus] = None,
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return list_records(db, ResourceType.TASK, auth, search=search, status=status,
                        search_fields=("title", "description"))


@router.post("", response_model=TaskOut, status_code=201)
async def create_task(request: TaskCreate, auth: AuthContext = Depends(require_auth), db: Session = Depends(get_db)):
    return create_record(db, ResourceType.TASK, auth, request.model_dump())


@router.get("/{task_id}", response_model=TaskOut)
async def get_task(task_id: str, auth: AuthContext = Depends(require_auth), db: Session = Depends(get_db)):
    return get_record(db, ResourceType.TASK, auth, task_id)


@router.put("/{task_id}", response_model=TaskOut)
async def update_task(
    task_id: str,
    request: TaskUpdate,
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    values = request.model_dump(exclude_unset=True)
    for field in ("title", "status"):
        if field in values and values[field] is None:
            raise ValidationFailed(f"{field} cannot be empty")
    return update_record(db, ResourceType.TASK, auth, task_id, values)


@router.delete("/{task_id}", response_model=SuccessResponse)
async def delete_task(task_id: str, auth: AuthContext = Depends(require_auth), db: Session = Depends(get_db)):
    delete_record(db, ResourceType.TASK, auth, task_id)
    return SuccessResponse()
