from __future__ import annotations  # Application error taxonomy

from typing import Any, Optional


class AppError(RuntimeError):  # Base error carrying an HTTP status
    status_code: int = 500

    def __init__(self, message: str, *, status_code: Optional[int] = None, detail: Any = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.detail = detail


class InputValidationError(AppError):  # Missing or malformed request fields
    status_code = 400


class AuthError(AppError):  # Bad credentials or invalid token
    status_code = 401


class VendorError(AppError):  # Upstream conversation or text-model failure
    status_code = 500


class StorageError(AppError):  # Object storage operation failure
    status_code = 500


class PayloadTooLarge(AppError):  # Artifact exceeds the storage tier ceiling
    status_code = 413


class NotFoundError(AppError):  # Unmatched route or missing resource
    status_code = 404


__all__ = [
    "AppError",
    "AuthError",
    "InputValidationError",
    "NotFoundError",
    "PayloadTooLarge",
    "StorageError",
    "VendorError",
]
