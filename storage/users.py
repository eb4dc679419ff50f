"""Persistence helpers for registered users."""
from __future__ import annotations

import datetime as dt
import sqlite3
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel

from .sqlite import get_conn


class UserRecord(BaseModel):
    id: str
    email: str
    name: str
    password_hash: str
    created_at: str


class DuplicateUserError(ValueError):
    pass


def _row_to_user(row: sqlite3.Row) -> UserRecord:
    return UserRecord(
        id=row["id"],
        email=row["email"],
        name=row["name"],
        password_hash=row["password_hash"],
        created_at=row["created_at"],
    )


def insert_user(*, email: str, name: str, password_hash: str) -> UserRecord:
    """Insert a user row; raise DuplicateUserError when the email is taken."""

    user_id = uuid4().hex
    now = dt.datetime.now(dt.timezone.utc).isoformat(timespec="seconds")
    try:
        with get_conn() as conn:
            conn.execute(
                """INSERT INTO users (id, email, name, password_hash, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (user_id, email, name, password_hash, now, now),
            )
    except sqlite3.IntegrityError as exc:
        raise DuplicateUserError(email) from exc
    return UserRecord(id=user_id, email=email, name=name, password_hash=password_hash, created_at=now)


def find_user_by_email(email: str) -> Optional[UserRecord]:
    with get_conn() as conn:
        row = conn.execute(
            "SELECT id, email, name, password_hash, created_at FROM users WHERE email = ?",
            (email,),
        ).fetchone()
    return _row_to_user(row) if row else None


def find_user_by_id(user_id: str) -> Optional[UserRecord]:
    with get_conn() as conn:
        row = conn.execute(
            "SELECT id, email, name, password_hash, created_at FROM users WHERE id = ?",
            (user_id,),
        ).fetchone()
    return _row_to_user(row) if row else None


__all__ = ["DuplicateUserError", "UserRecord", "find_user_by_email", "find_user_by_id", "insert_user"]
