"""
Case API Endpoints
==================

CRUD for cases plus document upload and comments. Every route is
role-scoped: advocates only reach cases they created, paralegals reach all.
"""

import io
import logging
import time
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from .auth import AuthContext
from .crud import create_record, delete_record, get_record, list_records, update_record
from .db.models import CaseComment, CaseDocument, CaseStatus, User
from .db.session import get_db
from .deps import get_resources, require_auth
from .errors import NotFoundOrForbidden, PayloadTooLarge, UpstreamFailure, ValidationFailed
from .resources import AppResources
from .schemas import (
    CaseCreate, CaseOut, CaseUpdate, CommentCreate, CommentOut, DocumentOut,
    SuccessResponse, UploadResponse,
)
from .scoping import ResourceType
from .storage import StorageError, safe_filename

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cases", tags=["Cases"])

ALLOWED_UPLOAD_TYPES = {
    "application/pdf": ".pdf",
    "image/jpeg": ".jpg",
    "image/png": ".png",
}


def _check_assignee(db: Session, user_id: Optional[str]) -> None:
    if user_id and not db.get(User, user_id):
        raise ValidationFailed("Assigned user does not exist")


@router.get("", response_model=List[CaseOut])
async def list_cases(
    search: Optional[str] = Query(None, max_length=200),
    status: Optional[CaseStatus] = None,
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return list_records(db, ResourceType.CASE, auth, search=search, status=status,
                        search_fields=("title", "description"))


@router.post("", response_model=CaseOut, status_code=201)
async def create_case(
    request: CaseCreate,
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    _check_assignee(db, request.assigned_to_user_id)
    return create_record(db, ResourceType.CASE, auth, request.model_dump())


@router.get("/{case_id}", response_model=CaseOut)
async def get_case(case_id: str, auth: AuthContext = Depends(require_auth), db: Session = Depends(get_db)):
    return get_record(db, ResourceType.CASE, auth, case_id)


@router.put("/{case_id}", response_model=CaseOut)
async def update_case(
    case_id: str,
    request: CaseUpdate,
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    values = request.model_dump(exclude_unset=True)
    for field in ("title", "description", "status"):
        if field in values and values[field] is None:
            raise ValidationFailed(f"{field} cannot be empty")
    _check_assignee(db, values.get("assigned_to_user_id"))
    return update_record(db, ResourceType.CASE, auth, case_id, values)


@router.delete("/{case_id}", response_model=SuccessResponse)
async def delete_case(
    case_id: str,
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
    resources: AppResources = Depends(get_resources),
):
    case = get_record(db, ResourceType.CASE, auth, case_id)
    keys = [doc.storage_key for doc in case.documents]
    delete_record(db, ResourceType.CASE, auth, case_id)

    for key in keys:
        try:
            resources.storage.delete(key)
        except Exception as e:
            logger.warning(f"Failed to delete blob {key} for case {case_id}: {e}")

    return SuccessResponse()


@router.post("/{case_id}/upload", response_model=UploadResponse)
async def upload_case_document(
    case_id: str,
    file: UploadFile = File(...),
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
    resources: AppResources = Depends(get_resources),
):
    """
    Attach a file to a case.

    Only PDF, JPEG and PNG are accepted, up to MAX_UPLOAD_BYTES.
    """
    case = get_record(db, ResourceType.CASE, auth, case_id)

    mimetype = (file.content_type or "").split(";")[0].strip().lower()
    if mimetype not in ALLOWED_UPLOAD_TYPES:
        raise ValidationFailed("Only PDF, JPEG and PNG files are allowed")

    max_bytes = resources.settings.max_upload_bytes
    data = await file.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise PayloadTooLarge(f"File exceeds the {max_bytes // (1024 * 1024)}MB upload limit")
    if not data:
        raise ValidationFailed("Uploaded file is empty")

    filename = safe_filename(file.filename, default=f"upload{ALLOWED_UPLOAD_TYPES[mimetype]}")
    key = resources.storage.generate_key("cases", case.id, f"{int(time.time() * 1000)}-{filename}")
    try:
        stored = resources.storage.put(key, data, mimetype)
    except StorageError as e:
        logger.error(f"Upload to case {case.id} failed: {e}")
        raise UpstreamFailure("Failed to store uploaded file")

    document = CaseDocument(
        case_id=case.id,
        filename=filename,
        storage_key=stored.key,
        mimetype=mimetype,
        size_bytes=stored.size_bytes,
        uploaded_by_user_id=auth.user_id,
    )
    db.add(document)
    db.commit()
    db.refresh(document)
    logger.info(f"Document {document.id} uploaded to case {case.id} ({stored.size_bytes} bytes)")

    return UploadResponse(message="File uploaded successfully", document=DocumentOut.model_validate(document))


@router.get("/{case_id}/documents/{document_id}")
async def download_case_document(
    case_id: str,
    document_id: str,
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
    resources: AppResources = Depends(get_resources),
):
    case = get_record(db, ResourceType.CASE, auth, case_id)
    document = next((d for d in case.documents if d.id == document_id), None)
    if not document:
        raise NotFoundOrForbidden("Document not found")

    try:
        data = resources.storage.get(document.storage_key)
    except StorageError as e:
        logger.error(f"Document {document.id} blob unavailable: {e}")
        raise UpstreamFailure("Document file is unavailable")

    return StreamingResponse(
        io.BytesIO(data),
        media_type=document.mimetype,
        headers={"Content-Disposition": f'attachment; filename="{document.filename}"'},
    )


@router.post("/{case_id}/comments", response_model=CommentOut, status_code=201)
async def add_case_comment(
    case_id: str,
    request: CommentCreate,
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    case = get_record(db, ResourceType.CASE, auth, case_id)
    comment = CaseComment(case_id=case.id, user_id=auth.user_id, text=request.text)
    db.add(comment)
    db.commit()
    db.refresh(comment)
    return comment
