from __future__ import annotations  # Session cleanup saga across storage tiers

import datetime as dt
import time
from typing import Callable, List, Optional, Sequence

from pydantic import BaseModel, Field

from config.settings import settings
from observability import log_event
from services.outcomes import StepResult, attempt
from webhooks import TranscriptEvent, WebhookStore

from .object_storage import ObjectStorageGateway

PERSIST_STEP = "persist_user_transcript"
DELETE_RECORDING_STEP = "delete_recording"
DELETE_TRANSCRIPT_STEP = "delete_transcript"


class CleanupReport(BaseModel):  # Per-step record of one cleanup run
    conversationId: str
    success: bool
    steps: List[StepResult] = Field(default_factory=list)
    persistedUrl: Optional[str] = None
    startedAt: str
    finishedAt: str

    def step(self, name: str) -> Optional[StepResult]:
        return next((entry for entry in self.steps if entry.step == name), None)


class CleanupRegistry:  # Last cleanup report per conversation, bounded like the webhook stores
    def __init__(
        self,
        *,
        capacity: Optional[int] = None,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._reports: WebhookStore[CleanupReport] = WebhookStore(
            capacity=capacity or settings.WEBHOOK_CACHE_CAPACITY,
            ttl_seconds=ttl_seconds or settings.WEBHOOK_CACHE_TTL_SECONDS,
            clock=clock,
        )

    def record(self, report: CleanupReport) -> None:
        self._reports.put(report.conversationId, report)

    def get(self, conversation_id: str) -> Optional[CleanupReport]:
        return self._reports.get(conversation_id)

    def __len__(self) -> int:
        return len(self._reports)


def _utc_now() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def cleanup_session(
    storage: ObjectStorageGateway,
    *,
    conversation_id: str,
    user_id: str,
    events: Sequence[TranscriptEvent],
    job_title: str,
    company: Optional[str] = None,
    user_name: str = "",
    registry: Optional[CleanupRegistry] = None,
) -> CleanupReport:
    """Persist the transcript durably, then drop the temporary artifacts.

    Every step runs regardless of earlier failures and nothing is rolled
    back; ``success`` reports that the sequence ran to completion.
    """

    started = _utc_now()
    steps: List[StepResult] = []
    persisted_url: Optional[str] = None

    if events:
        result, persisted_url = attempt(
            PERSIST_STEP,
            lambda: storage.upload_user_transcript(
                user_id=user_id,
                conversation_id=conversation_id,
                events=events,
                job_title=job_title,
                company=company,
                user_name=user_name,
            ),
            conversation_id=conversation_id,
        )
    else:
        result = StepResult.skipped(PERSIST_STEP, "empty transcript")
    steps.append(result)

    delete_recording, _ = attempt(
        DELETE_RECORDING_STEP,
        lambda: storage.delete_recording(conversation_id),
        conversation_id=conversation_id,
    )
    steps.append(delete_recording)

    delete_transcript, _ = attempt(
        DELETE_TRANSCRIPT_STEP,
        lambda: storage.delete_transcript(conversation_id),
        conversation_id=conversation_id,
    )
    steps.append(delete_transcript)

    report = CleanupReport(
        conversationId=conversation_id,
        success=True,
        steps=steps,
        persistedUrl=persisted_url,
        startedAt=started,
        finishedAt=_utc_now(),
    )
    failed = [entry.step for entry in steps if not entry.ok]
    log_event("cleanup_finished", conversation_id, ok=not failed, reason=",".join(failed) or None)
    if registry is not None:
        registry.record(report)
    return report


__all__ = [
    "CleanupRegistry",
    "CleanupReport",
    "DELETE_RECORDING_STEP",
    "DELETE_TRANSCRIPT_STEP",
    "PERSIST_STEP",
    "cleanup_session",
]
