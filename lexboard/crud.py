"""
Role-scoped CRUD helpers shared by the case, client and task routers.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from .auth import AuthContext
from .errors import NotFoundOrForbidden
from .scoping import MODEL_FOR_RESOURCE, ResourceType, get_scoped, scoped_query

logger = logging.getLogger(__name__)


def _label(resource_type: ResourceType) -> str:
    return ResourceType(resource_type).value.capitalize()


def list_records(
    db: Session,
    resource_type: ResourceType,
    auth: AuthContext,
    search: Optional[str] = None,
    status: Optional[Any] = None,
    search_fields: Iterable[str] = (),
) -> List[Any]:
    """Visible records, newest first, optionally filtered by text and status."""
    model = MODEL_FOR_RESOURCE[ResourceType(resource_type)]
    query = scoped_query(db, resource_type, auth)
    search = (search or "").strip()
    if search and search_fields:
        query = query.filter(or_(*[
            getattr(model, field).icontains(search, autoescape=True) for field in search_fields
        ]))
    if status is not None:
        query = query.filter(model.status == status)
    return query.order_by(model.created_at.desc()).all()


def get_record(db: Session, resource_type: ResourceType, auth: AuthContext, record_id: str):
    record = get_scoped(db, resource_type, auth, record_id)
    if record is None:
        raise NotFoundOrForbidden(f"{_label(resource_type)} not found")
    return record


def create_record(db: Session, resource_type: ResourceType, auth: AuthContext, values: Dict[str, Any]):
    """Insert a record owned by the caller, whatever the payload says."""
    model = MODEL_FOR_RESOURCE[ResourceType(resource_type)]
    values = dict(values)
    values["created_by_user_id"] = auth.user_id
    record = model(**values)
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info(f"{_label(resource_type)} {record.id} created by {auth.user_id}")
    return record


def update_record(
    db: Session,
    resource_type: ResourceType,
    auth: AuthContext,
    record_id: str,
    values: Dict[str, Any],
):
    record = get_scoped(db, resource_type, auth, record_id)
    if record is None:
        raise NotFoundOrForbidden(f"{_label(resource_type)} not found or no permission")
    for field, value in values.items():
        setattr(record, field, value)
    db.commit()
    db.refresh(record)
    return record


def delete_record(db: Session, resource_type: ResourceType, auth: AuthContext, record_id: str) -> None:
    record = get_scoped(db, resource_type, auth, record_id)
    if record is None:
        raise NotFoundOrForbidden(f"{_label(resource_type)} not found or no permission")
    db.delete(record)
    db.commit()
    logger.info(f"{_label(resource_type)} {record_id} deleted by {auth.user_id}")
