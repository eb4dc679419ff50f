from __future__ import annotations  # Registration, login and token verification

import datetime as dt
import hashlib
import hmac
import logging
import re
from typing import Any, Dict, Optional, Tuple

import jwt
from pydantic import BaseModel

from config.settings import settings
from errors import AuthError, InputValidationError
from storage.users import DuplicateUserError, UserRecord, find_user_by_email, find_user_by_id, insert_user

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
PBKDF2_ITERATIONS = 10_000

_EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
_LOCAL_PART_RE = re.compile(r"^[a-zA-Z0-9._%+-]+$")
_NAME_RE = re.compile(r"^[a-zA-Z\s'-]+$")


class PublicUser(BaseModel):  # User fields safe to return to clients
    id: str
    email: str
    name: str


class AuthResult(BaseModel):
    token: str
    user: PublicUser


def validate_email(email: Any) -> Tuple[bool, Optional[str]]:
    """Return ``(valid, error message)`` for a candidate email address."""

    if not isinstance(email, str):
        return False, "Please enter a valid email format (e.g., user@example.com)"
    trimmed = email.strip().lower()
    if not _EMAIL_RE.match(trimmed):
        return False, "Please enter a valid email format (e.g., user@example.com)"
    if len(trimmed) < 5 or len(trimmed) > 254:
        return False, "Email must be between 5 and 254 characters"
    parts = trimmed.split("@")
    if len(parts) != 2:
        return False, "Email must contain exactly one @ symbol"
    local_part, domain = parts
    if not local_part or not domain:
        return False, "Email must have both local and domain parts"
    if "." not in domain or domain.startswith(".") or domain.endswith("."):
        return False, "Domain must be valid (e.g., example.com)"
    if ".." in trimmed:
        return False, "Email cannot contain consecutive dots"
    if not _LOCAL_PART_RE.match(local_part):
        return False, "Email contains invalid characters"
    return True, None


def hash_password(password: str) -> str:
    digest = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        settings.HASH_SECRET.encode("utf-8"),
        PBKDF2_ITERATIONS,
    )
    return digest.hex()


def verify_password(password: str, password_hash: str) -> bool:
    return hmac.compare_digest(hash_password(password), password_hash)


def issue_token(user: UserRecord) -> str:
    now = dt.datetime.now(dt.timezone.utc)
    claims: Dict[str, Any] = {
        "userId": user.id,
        "email": user.email,
        "iat": now,
        "exp": now + dt.timedelta(days=settings.TOKEN_TTL_DAYS),
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=JWT_ALGORITHM)


def _public(user: UserRecord) -> PublicUser:
    return PublicUser(id=user.id, email=user.email, name=user.name)


def register(email: Any, password: Any, name: Any) -> AuthResult:
    if not email or not password or not name:
        raise InputValidationError("Email, password, and name are required")
    valid, error = validate_email(email)
    if not valid:
        raise InputValidationError(error or "Invalid email")
    if not isinstance(password, str) or len(password) < 6:
        raise InputValidationError("Password must be at least 6 characters long")
    if len(password) > 127:
        raise InputValidationError("Password must be less than 128 characters")
    trimmed_name = str(name).strip()
    if len(trimmed_name) < 2:
        raise InputValidationError("Name must be at least 2 characters long")
    if len(trimmed_name) > 50:
        raise InputValidationError("Name must be less than 50 characters")
    if not _NAME_RE.match(trimmed_name):
        raise InputValidationError("Name can only contain letters, spaces, hyphens, and apostrophes")

    clean_email = email.strip().lower()
    if find_user_by_email(clean_email) is not None:
        raise InputValidationError("User with this email already exists")
    try:
        user = insert_user(email=clean_email, name=trimmed_name, password_hash=hash_password(password))
    except DuplicateUserError as exc:
        raise InputValidationError("User with this email already exists") from exc
    logger.info("Registered user %s", user.id)
    return AuthResult(token=issue_token(user), user=_public(user))


def login(email: Any, password: Any) -> AuthResult:
    if not email or not password:
        raise InputValidationError("Email and password are required")
    valid, error = validate_email(email)
    if not valid:
        raise InputValidationError(error or "Invalid email")
    user = find_user_by_email(email.strip().lower())
    if user is None or not verify_password(str(password), user.password_hash):
        raise AuthError("Invalid email or password")
    logger.info("User %s logged in", user.id)
    return AuthResult(token=issue_token(user), user=_public(user))


def bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthError("No token provided")
    token = authorization.replace("Bearer ", "", 1).strip()
    if not token:
        raise AuthError("No token provided")
    return token


def verify(authorization: Optional[str]) -> PublicUser:
    """Resolve the user behind a ``Bearer`` header or raise AuthError."""

    token = bearer_token(authorization)
    try:
        claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise AuthError("Token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthError("Invalid token") from exc

    valid, _ = validate_email(claims.get("email"))
    if not valid:
        raise AuthError("Invalid token - email format invalid")
    user = find_user_by_id(str(claims.get("userId") or ""))
    if user is None:
        raise AuthError("Invalid token")
    db_valid, _ = validate_email(user.email)
    if not db_valid or user.email != str(claims.get("email")).strip().lower():
        raise AuthError("Invalid user data")
    return _public(user)


__all__ = [
    "AuthResult",
    "PublicUser",
    "bearer_token",
    "hash_password",
    "issue_token",
    "login",
    "register",
    "validate_email",
    "verify",
    "verify_password",
]
