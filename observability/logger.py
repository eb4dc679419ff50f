"""Structured event log for webhooks, vendor calls, storage steps and the recorder.

``log_event`` writes one human line to stdout and, when file logging is on, a
JSON line plus a human line to rotating files. ``configure_logging`` attaches
the same console format to the root logger so module loggers share it.
"""
from __future__ import annotations

import json
import logging
import logging.handlers
import os
import sys
import time
import uuid
from typing import Any, Dict, List, Optional

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
ENABLE_FILE_LOGS = os.getenv("ENABLE_FILE_LOGS", "1") in ("1", "true", "True")
LOG_FILE = os.getenv("LOG_FILE", "logs/backend.log")
LOG_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", "5242880"))
LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "5"))

HUMAN_FIELDS = ("event_type", "step", "ok", "source", "bucket", "path", "size", "tracks", "ms", "reason")
MAX_FIELD_CHARS = 300

_HUMAN_FORMAT = "[%(asctime)s] %(levelname)s %(name)s :: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_events = logging.getLogger("backend.events")
_events.setLevel(LOG_LEVEL)
_events.propagate = False


class _JsonFilter(logging.Filter):  # Route records by their is_json marker
    def __init__(self, want_json: bool) -> None:
        super().__init__()
        self.want_json = want_json

    def filter(self, record: logging.LogRecord) -> bool:
        return (getattr(record, "is_json", False) is True) == self.want_json


def _human_formatter() -> logging.Formatter:
    return logging.Formatter(_HUMAN_FORMAT, datefmt=_DATE_FORMAT)


def _rotating(path: str, formatter: logging.Formatter, want_json: bool) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(path, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT)
    handler.setLevel(LOG_LEVEL)
    handler.setFormatter(formatter)
    handler.addFilter(_JsonFilter(want_json))
    return handler


def _human_log_path() -> str:
    base = LOG_FILE[:-4] if LOG_FILE.endswith(".log") else LOG_FILE
    return f"{base}-human.log"


def _ensure_handlers() -> None:
    if _events.handlers:
        return

    console = logging.StreamHandler(stream=sys.stdout)
    console.setLevel(LOG_LEVEL)
    console.setFormatter(_human_formatter())
    console.addFilter(_JsonFilter(False))
    _events.addHandler(console)

    if not ENABLE_FILE_LOGS:
        return
    log_dir = os.path.dirname(LOG_FILE)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    _events.addHandler(_rotating(LOG_FILE, logging.Formatter("%(message)s"), want_json=True))
    _events.addHandler(_rotating(_human_log_path(), _human_formatter(), want_json=False))


def configure_logging(level: Optional[str] = None) -> None:
    """Give the root logger a stdout handler in the event-log format (idempotent)."""

    root = logging.getLogger()
    root.setLevel((level or LOG_LEVEL).upper())
    if any(getattr(handler, "_backend_console", False) for handler in root.handlers):
        return
    console = logging.StreamHandler(stream=sys.stdout)
    console.setFormatter(_human_formatter())
    console._backend_console = True  # type: ignore[attr-defined]
    root.addHandler(console)


def _clip(value: Any) -> Any:
    if isinstance(value, str) and len(value) > MAX_FIELD_CHARS:
        return value[: MAX_FIELD_CHARS - 3] + "..."
    return value


def _format_human(evt: Dict[str, Any]) -> str:
    base = f"conversation={evt.get('conversation_id') or '-'} kind={evt.get('kind')}"
    extras: List[str] = [f"{key}={evt[key]}" for key in HUMAN_FIELDS if evt.get(key) is not None]
    return base + (" " + " ".join(extras) if extras else "")


def _emit(message: str, is_json: bool) -> None:
    record = _events.makeRecord(
        name=_events.name,
        level=logging.INFO,
        fn="",
        lno=0,
        msg=message,
        args=(),
        exc_info=None,
    )
    record.is_json = is_json  # type: ignore[attr-defined]
    _events.handle(record)


def log_event(kind: str, conversation_id: Optional[str], **fields: Any) -> None:
    """Record one event keyed by conversation id; ``None`` fields are dropped from the human line."""

    _ensure_handlers()
    payload: Dict[str, Any] = {
        "ts": time.time(),
        "trace": uuid.uuid4().hex,
        "kind": kind,
        "conversation_id": conversation_id,
    }
    payload.update({key: _clip(value) for key, value in fields.items()})

    _emit(_format_human(payload), is_json=False)
    if ENABLE_FILE_LOGS:
        _emit(json.dumps(payload, ensure_ascii=False, default=str), is_json=True)


__all__ = ["configure_logging", "log_event"]
