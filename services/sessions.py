"""Local key-value persistence for interview session records, transcripts and recording metadata."""
from __future__ import annotations

import json
import logging
import os
import uuid
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from config.settings import settings
from errors import InputValidationError
from webhooks import TranscriptEvent

logger = logging.getLogger(__name__)

STORAGE_PREFIX = "ascend_ai_"


class SessionStatus(str, Enum):
    GENERATING = "generating"
    READY = "ready"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({SessionStatus.COMPLETED, SessionStatus.FAILED})

_FORWARD = {
    SessionStatus.GENERATING: SessionStatus.READY,
    SessionStatus.READY: SessionStatus.IN_PROGRESS,
    SessionStatus.IN_PROGRESS: SessionStatus.COMPLETED,
}


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class SessionRecord(BaseModel):
    sessionId: str
    jobTitle: str
    company: Optional[str] = None
    userName: str
    conversationId: Optional[str] = None
    status: SessionStatus = SessionStatus.GENERATING
    createdAt: str = Field(default_factory=_utc_now)


class RecordingMeta(BaseModel):
    size: int
    type: str
    url: Optional[str] = None
    timestamp: str = Field(default_factory=_utc_now)


def can_transition(current: SessionStatus, target: SessionStatus) -> bool:
    if current in TERMINAL_STATUSES:
        return False
    if target is SessionStatus.FAILED:
        return True
    return _FORWARD.get(current) is target


def create_session(
    *,
    job_title: str,
    user_name: str,
    company: Optional[str] = None,
    session_id: Optional[str] = None,
) -> SessionRecord:
    """Create a new record in the ``generating`` state with a generated identifier."""

    return SessionRecord(
        sessionId=session_id or str(uuid.uuid4()),
        jobTitle=job_title,
        company=company,
        userName=user_name,
    )


def transition(record: SessionRecord, status: SessionStatus, *, conversation_id: Optional[str] = None) -> SessionRecord:
    """Return a copy of ``record`` moved to ``status``; invalid moves raise InputValidationError."""

    target = SessionStatus(status)
    if not can_transition(record.status, target):
        raise InputValidationError(f"Cannot move session from {record.status.value} to {target.value}")
    update: Dict[str, Any] = {"status": target}
    if conversation_id:
        update["conversationId"] = conversation_id
    return record.model_copy(update=update)


class LocalSessionStore:  # One JSON file per key under a base directory
    def __init__(self, base_dir: Optional[str] = None) -> None:
        self._base = Path(base_dir or settings.LOCAL_STORE_DIR)

    def _path(self, key: str) -> Path:
        return self._base / f"{STORAGE_PREFIX}{key}.json"

    def _write(self, key: str, value: Any) -> None:
        self._base.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as handle:
            json.dump(value, handle, ensure_ascii=False)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)

    def _read(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as handle:
                return json.load(handle)
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable entry %s", path.name)
            return None

    def _remove(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass

    def _entries(self) -> List[Path]:
        if not self._base.exists():
            return []
        return sorted(self._base.glob(f"{STORAGE_PREFIX}*.json"))

    def store_session(self, record: SessionRecord) -> None:
        self._write(f"session_{record.sessionId}", record.model_dump(mode="json"))
        logger.info("Session stored %s status=%s", record.sessionId, record.status.value)

    def get_session(self, session_id: str) -> Optional[SessionRecord]:
        data = self._read(f"session_{session_id}")
        return SessionRecord.model_validate(data) if data is not None else None

    def update_status(
        self,
        session_id: str,
        status: SessionStatus,
        *,
        conversation_id: Optional[str] = None,
    ) -> SessionRecord:  # Load, transition and persist
        record = self.get_session(session_id)
        if record is None:
            raise InputValidationError(f"Unknown session {session_id}")
        updated = transition(record, status, conversation_id=conversation_id)
        self.store_session(updated)
        return updated

    def store_transcript(self, session_id: str, events: Sequence[TranscriptEvent]) -> None:
        self._write(f"transcript_{session_id}", [event.model_dump(mode="json") for event in events])

    def get_transcript(self, session_id: str) -> List[TranscriptEvent]:
        data = self._read(f"transcript_{session_id}") or []
        return [TranscriptEvent.model_validate(item) for item in data]

    def store_recording_meta(self, session_id: str, meta: RecordingMeta) -> None:
        self._write(f"recording_meta_{session_id}", meta.model_dump(mode="json"))

    def get_recording_meta(self, session_id: str) -> Optional[RecordingMeta]:
        data = self._read(f"recording_meta_{session_id}")
        return RecordingMeta.model_validate(data) if data is not None else None

    def all_sessions(self) -> List[SessionRecord]:
        """Every stored session, newest first."""

        records: List[SessionRecord] = []
        prefix = f"{STORAGE_PREFIX}session_"
        for path in self._entries():
            if not path.name.startswith(prefix):
                continue
            data = self._read(path.stem[len(STORAGE_PREFIX):])
            if data is not None:
                records.append(SessionRecord.model_validate(data))
        return sorted(records, key=lambda record: record.createdAt, reverse=True)

    def delete_session(self, session_id: str) -> None:
        for key in (f"session_{session_id}", f"transcript_{session_id}", f"recording_meta_{session_id}"):
            self._remove(key)
        logger.info("Session data deleted for %s", session_id)

    def clear_all(self) -> int:
        removed = 0
        for path in self._entries():
            path.unlink(missing_ok=True)
            removed += 1
        logger.info("Cleared %d local session entries", removed)
        return removed

    def stats(self) -> Dict[str, int]:
        total_sessions = 0
        recordings = 0
        total_size = 0
        for path in self._entries():
            name = path.name[len(STORAGE_PREFIX):]
            total_size += path.stat().st_size
            if name.startswith("session_"):
                total_sessions += 1
            elif name.startswith("recording_meta_"):
                recordings += 1
        return {"totalSessions": total_sessions, "totalSize": total_size, "recordings": recordings}


__all__ = [
    "LocalSessionStore",
    "RecordingMeta",
    "STORAGE_PREFIX",
    "SessionRecord",
    "SessionStatus",
    "TERMINAL_STATUSES",
    "can_transition",
    "create_session",
    "transition",
]
