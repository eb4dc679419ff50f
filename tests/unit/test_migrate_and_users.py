"""Tests for the SQLite migration and user persistence helpers."""
from __future__ import annotations

import os
import sqlite3
import tempfile

import pytest

from config.settings import settings
from storage.migrate import migrate
from storage.users import DuplicateUserError, find_user_by_email, find_user_by_id, insert_user


@pytest.fixture()
def temp_db(monkeypatch: pytest.MonkeyPatch):
    """Provide a temporary database path for each test."""

    with tempfile.TemporaryDirectory() as td:
        db_path = os.path.join(td, "nested", "users.db")
        monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
        yield db_path


def test_migrate_creates_users_table(temp_db: str):
    migrate(temp_db)
    migrate(temp_db)
    conn = sqlite3.connect(temp_db)
    try:
        tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    finally:
        conn.close()
    assert "users" in tables


def test_insert_and_find_user(temp_db: str):
    user = insert_user(email="a@b.com", name="Ann", password_hash="h")
    assert find_user_by_email("a@b.com") == user
    assert find_user_by_id(user.id) == user
    assert find_user_by_email("missing@b.com") is None


def test_duplicate_email_raises(temp_db: str):
    insert_user(email="a@b.com", name="Ann", password_hash="h")
    with pytest.raises(DuplicateUserError):
        insert_user(email="a@b.com", name="Other", password_hash="h2")
