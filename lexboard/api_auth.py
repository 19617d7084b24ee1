"""
Auth & User API Endpoints
=========================

- POST /auth/register   - Create account, returns token
- POST /auth/login      - Exchange credentials for a token
- GET  /auth/me         - Current user
- POST /auth/logout     - Stateless; client discards its token
- GET  /users/profile   - Current user's profile
- PUT  /users/profile   - Update name/email
- PUT  /users/password  - Change password (requires current password)
"""

import logging

from fastapi import APIRouter, Depends

from .auth import AuthContext, AuthService
from .db.models import User
from .deps import get_auth_service, get_resources, require_auth
from .errors import NotFoundOrForbidden, Unauthenticated
from .resources import AppResources
from .schemas import (
    AuthResponse, LoginRequest, MessageResponse, PasswordChange, ProfileUpdate,
    RegisterRequest, UserOut,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


def _auth_response(resources: AppResources, user: User) -> AuthResponse:
    issued = resources.token_service.issue(user.id, user.role)
    return AuthResponse(token=issued.token, expires_at=issued.expires_at, user=UserOut.model_validate(user))


@router.post("/auth/register", response_model=AuthResponse, status_code=201)
async def register(
    request: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
    resources: AppResources = Depends(get_resources),
):
    """Register a new user with email and password."""
    user = auth_service.register(request.name, request.email, request.password, request.role)
    return _auth_response(resources, user)


@router.post("/auth/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
    resources: AppResources = Depends(get_resources),
):
    """
    Login with email and password.
    Returns a JWT; failures never lock the account.
    """
    user = auth_service.authenticate_user(request.email, request.password)
    if not user:
        raise Unauthenticated("Invalid credentials", code="invalid_credentials")
    return _auth_response(resources, user)


@router.get("/auth/me", response_model=UserOut)
async def auth_me(auth: AuthContext = Depends(require_auth)):
    """Get current authenticated user info from token"""
    return UserOut(id=auth.user_id, name=auth.name, email=auth.email, role=auth.role)


@router.post("/auth/logout", response_model=MessageResponse)
async def logout():
    return MessageResponse(message="Logged out")


@router.get("/users/profile", response_model=UserOut, tags=["Users"])
async def get_profile(
    auth: AuthContext = Depends(require_auth),
    auth_service: AuthService = Depends(get_auth_service),
):
    user = auth_service.db.get(User, auth.user_id)
    if not user:
        raise NotFoundOrForbidden("User not found")
    return user


@router.put("/users/profile", response_model=UserOut, tags=["Users"])
async def update_profile(
    request: ProfileUpdate,
    auth: AuthContext = Depends(require_auth),
    auth_service: AuthService = Depends(get_auth_service),
):
    return auth_service.update_profile(auth.user_id, request.name, request.email)


@router.put("/users/password", response_model=MessageResponse, tags=["Users"])
async def change_password(
    request: PasswordChange,
    auth: AuthContext = Depends(require_auth),
    auth_service: AuthService = Depends(get_auth_service),
):
    auth_service.change_password(auth.user_id, request.current_password, request.new_password)
    return MessageResponse(message="Password updated successfully")
