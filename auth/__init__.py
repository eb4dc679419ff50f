from __future__ import annotations  # Auth package exports

from .service import AuthResult, PublicUser, login, register, validate_email, verify

__all__ = ["AuthResult", "PublicUser", "login", "register", "validate_email", "verify"]
