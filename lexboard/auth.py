"""
Authentication Module with JWT Support
======================================

Roles:
- advocate: sees and edits only the cases, clients and tasks they created
- paralegal: sees and edits every case, client and task

Authentication Flow:
1. Register or log in with email + password (bcrypt via passlib)
2. TokenService issues a signed JWT carrying `sub` (user id) and `role`
3. Every request sends `Authorization: Bearer <jwt>`; the access guard in
   `deps.py` verifies it and resolves an AuthContext
"""

import enum
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

import jwt
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .db.models import User, UserRole
from .errors import Conflict, Unauthenticated, ValidationFailed, NotFoundOrForbidden

logger = logging.getLogger(__name__)


# =============================================================================
# PASSWORD HASHING
# =============================================================================

# bcrypt truncates passwords at 72 bytes; enforce to avoid 500s.
MAX_PASSWORD_BYTES = 72
MIN_PASSWORD_LENGTH = 6

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=10)


def is_password_too_long(password: str) -> bool:
    """Return True if password exceeds bcrypt 72-byte limit."""
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash"""
    if is_password_too_long(plain_password):
        logger.warning("Auth failed: password exceeds bcrypt 72-byte limit")
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError as e:
        logger.warning(f"Auth failed: invalid password format ({e})")
        return False


def get_password_hash(password: str) -> str:
    """Hash a password"""
    if is_password_too_long(password):
        raise ValueError("Password exceeds bcrypt 72-byte limit")
    return pwd_context.hash(password)


# =============================================================================
# JWT TOKEN HANDLING
# =============================================================================

class TokenFailureKind(str, enum.Enum):
    MALFORMED = "malformed"
    INVALID_SIGNATURE = "invalid_signature"
    EXPIRED = "expired"


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime


@dataclass(frozen=True)
class TokenClaims:
    subject_id: str
    role: UserRole
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class TokenFailure:
    kind: TokenFailureKind

    @property
    def expired(self) -> bool:
        return self.kind == TokenFailureKind.EXPIRED


class TokenService:
    """
    Issues and verifies stateless session tokens.

    `verify` never raises: every failure comes back as a TokenFailure so
    callers can branch on the kind (e.g. prompt re-login on EXPIRED).
    There is no server-side revocation; a token stays valid until `exp`.
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256", expires: timedelta = timedelta(days=7)):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expires = expires

    def issue(self, subject_id: str, role: UserRole, now: Optional[datetime] = None) -> IssuedToken:
        issued_at = (now or datetime.now(timezone.utc)).replace(microsecond=0)
        expires_at = issued_at + self.expires
        payload = {
            "sub": str(subject_id),
            "role": UserRole(role).value,
            "iat": issued_at,
            "exp": expires_at,
            "jti": uuid.uuid4().hex,
        }
        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        return IssuedToken(token=token, expires_at=expires_at)

    def verify(self, token) -> Union[TokenClaims, TokenFailure]:
        if not isinstance(token, str) or not token.strip():
            return TokenFailure(TokenFailureKind.MALFORMED)

        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            return TokenFailure(TokenFailureKind.EXPIRED)
        except jwt.InvalidSignatureError:
            return TokenFailure(TokenFailureKind.INVALID_SIGNATURE)
        except jwt.InvalidTokenError:
            return TokenFailure(TokenFailureKind.MALFORMED)

        subject_id = payload.get("sub")
        try:
            role = UserRole(payload.get("role"))
        except ValueError:
            return TokenFailure(TokenFailureKind.MALFORMED)
        if not isinstance(subject_id, str) or not subject_id:
            return TokenFailure(TokenFailureKind.MALFORMED)

        return TokenClaims(
            subject_id=subject_id,
            role=role,
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )


# =============================================================================
# AUTH CONTEXT
# =============================================================================

@dataclass(frozen=True)
class AuthContext:
    """Authorization context for a request"""
    user_id: str
    role: UserRole
    name: str = ""
    email: str = ""

    @property
    def is_paralegal(self) -> bool:
        return self.role == UserRole.PARALEGAL

    @classmethod
    def from_user(cls, user: User) -> "AuthContext":
        return cls(user_id=user.id, role=user.role, name=user.name, email=user.email)


# =============================================================================
# CREDENTIAL STORE
# =============================================================================

class AuthService:
    """User registration, login and profile changes."""

    def __init__(self, db: Session):
        self.db = db

    def _validate_password(self, password: str) -> None:
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationFailed(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        if is_password_too_long(password):
            raise ValidationFailed(f"Password too long (max {MAX_PASSWORD_BYTES} bytes)")

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == User.normalize_email(email)).first()

    def register(self, name: str, email: str, password: str, role: UserRole = UserRole.PARALEGAL) -> User:
        self._validate_password(password)
        email = User.normalize_email(email)
        if self.get_user_by_email(email):
            raise Conflict("User already exists", code="email_taken")

        user = User(name=name.strip(), email=email, role=role)
        user.password = password
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race against a concurrent registration
            self.db.rollback()
            raise Conflict("User already exists", code="email_taken")
        self.db.refresh(user)
        logger.info(f"Registered user {user.id} ({user.role.value})")
        return user

    def authenticate_user(self, email: str, password: str) -> Optional[User]:
        """Return the user if the credentials match. No lockout is applied."""
        user = self.get_user_by_email(email)
        if not user:
            logger.warning("Auth failed: unknown email")
            return None
        if not verify_password(password, user.password_hash):
            logger.warning(f"Auth failed: bad password for user {user.id}")
            return None
        return user

    def get_auth_context(self, user_id: str) -> Optional[AuthContext]:
        user = self.db.get(User, user_id)
        if not user:
            return None
        return AuthContext.from_user(user)

    def update_profile(self, user_id: str, name: str, email: str) -> User:
        user = self.db.get(User, user_id)
        if not user:
            raise NotFoundOrForbidden("User not found")
        email = User.normalize_email(email)
        if email != user.email:
            other = self.get_user_by_email(email)
            if other and other.id != user.id:
                raise Conflict("Email already in use", code="email_taken")
        user.name = name.strip()
        user.email = email
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise Conflict("Email already in use", code="email_taken")
        self.db.refresh(user)
        return user

    def change_password(self, user_id: str, current_password: str, new_password: str) -> None:
        user = self.db.get(User, user_id)
        if not user:
            raise NotFoundOrForbidden("User not found")
        if not verify_password(current_password, user.password_hash):
            logger.warning(f"Password change rejected for user {user.id}: wrong current password")
            raise Unauthenticated("Current password is incorrect", code="invalid_credentials")
        self._validate_password(new_password)
        user.password = new_password
        self.db.commit()
        logger.info(f"Password changed for user {user.id}")
