"""
Request Dependencies
====================

FastAPI dependencies shared by the routers, including the access guard.
"""

import logging
from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from .auth import AuthContext, AuthService, TokenFailure
from .db.models import User
from .db.session import get_db
from .errors import Unauthenticated
from .resources import AppResources

logger = logging.getLogger(__name__)


def get_resources(request: Request) -> AppResources:
    return request.app.state.resources


def get_auth_service(db: Session = Depends(get_db)) -> AuthService:
    return AuthService(db)


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def require_auth(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    resources: AppResources = Depends(get_resources),
    db: Session = Depends(get_db),
) -> AuthContext:
    """
    Resolve the caller from `Authorization: Bearer <jwt>`.

    Raises Unauthenticated when the header is missing, the token fails
    verification, or the user it names no longer exists. Expired tokens get
    their own code so clients can prompt a re-login.
    """
    token = _bearer_token(authorization)
    if not token:
        raise Unauthenticated("Not authorized, no token")

    result = resources.token_service.verify(token)
    if isinstance(result, TokenFailure):
        logger.warning(f"Auth failed: token {result.kind.value}")
        if result.expired:
            raise Unauthenticated("Session expired, please log in again", code="token_expired")
        raise Unauthenticated("Not authorized, token failed")

    user = db.get(User, result.subject_id)
    if not user:
        logger.warning(f"Auth failed: user {result.subject_id} no longer exists")
        raise Unauthenticated("Not authorized, user not found")

    return AuthContext.from_user(user)
