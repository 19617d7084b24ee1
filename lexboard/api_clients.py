"""
Client API Endpoints
====================
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .auth import AuthContext
from .crud import create_record, delete_record, get_record, list_records, update_record
from .db.models import ClientStatus
from .db.session import get_db
from .deps import require_auth
from .errors import ValidationFailed
from .schemas import ClientCreate, ClientOut, ClientUpdate, SuccessResponse
from .scoping import ResourceType

router = APIRouter(prefix="/clients", tags=["Clients"])


@router.get("", response_model=List[ClientOut])
async def list_clients(
    search: Optional[str] = Query(None, max_length=200),
    status: Optional[ClientStatus] = None,
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return list_records(db, ResourceType.CLIENT, auth, search=search, status=status,
                        search_fields=("name", "contact", "notes"))


@router.post("", response_model=ClientOut, status_code=201)
async def create_client(request: ClientCreate, auth: AuthContext = Depends(require_auth), db: Session = Depends(get_db)):
    return create_record(db, ResourceType.CLIENT, auth, request.model_dump())


@router.get("/{client_id}", response_model=ClientOut)
async def get_client(client_id: str, auth: AuthContext = Depends(require_auth), db: Session = Depends(get_db)):
    return get_record(db, ResourceType.CLIENT, auth, client_id)


@router.put("/{client_id}", response_model=ClientOut)
async def update_client(
    client_id: str,
    request: ClientUpdate,
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    values = request.model_dump(exclude_unset=True)
    for field in ("name", "contact", "status"):
        if field in values and values[field] is None:
            raise ValidationFailed(f"{field} cannot be empty")
    return update_record(db, ResourceType.CLIENT, auth, client_id, values)


@router.delete("/{client_id}", response_model=SuccessResponse)
async def delete_client(client_id: str, auth: AuthContext = Depends(require_auth), db: Session = Depends(get_db)):
    delete_record(db, ResourceType.CLIENT, auth, client_id)
    return SuccessResponse()
