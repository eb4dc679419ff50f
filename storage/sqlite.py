"""SQLite connection helper for the user table."""
from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from typing import Iterator

from config.settings import settings

from .migrate import migrate

_MIGRATED: set[str] = set()


@contextmanager
def get_conn() -> Iterator[sqlite3.Connection]:
    """Yield a row-factory connection to ``settings.DB_PATH``, migrating it on first use."""

    path = settings.DB_PATH
    if path not in _MIGRATED or not os.path.exists(path):
        migrate(path)
        _MIGRATED.add(path)
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()
