from __future__ import annotations  # Conversation lifecycle against the vendor and webhook stores

import logging
import time
from typing import List, Optional, Sequence

from config.settings import Settings, settings as default_settings
from errors import VendorError
from observability import log_event
from services.outcomes import attempt
from webhooks import RecordingInfo, TranscriptEvent, WebhookStore

from .models import (
    ConversationCreated,
    ConversationSnapshot,
    CreateConversationRequest,
    EndConversationResult,
)
from .persona import build_persona_prompt, greeting_for
from .vendor_client import TavusClient, extract_transcript

logger = logging.getLogger(__name__)

FETCH_TIMEOUT_S = 3.0
END_FETCH_TIMEOUT_S = 5.0
DELETE_TIMEOUT_S = 8.0

CALLBACK_PATH = "/interview/conversation-callback"

_SPEAKERS = {"assistant": "Interviewer", "user": "Candidate", "system": "System"}


def format_transcript(events: Sequence[TranscriptEvent]) -> str:
    """Render events as ``Speaker: text`` lines in delivery order."""

    lines: List[str] = []
    for event in events:
        content = (event.content or "").strip()
        if not content:
            continue
        speaker = _SPEAKERS.get(event.role, event.role.capitalize() or "Unknown")
        lines.append(f"{speaker}: {content}")
    return "\n".join(lines)


class ConversationGateway:
    """Create, observe and end vendor conversations.

    Reads from the webhook stores first; the vendor REST API is only a
    bounded fallback so polling clients never block on a slow vendor.
    """

    def __init__(
        self,
        *,
        vendor: TavusClient,
        transcripts: WebhookStore[List[TranscriptEvent]],
        recordings: WebhookStore[RecordingInfo],
        config: Optional[Settings] = None,
    ) -> None:
        self._vendor = vendor
        self._transcripts = transcripts
        self._recordings = recordings
        self._config = config or default_settings

    def create_conversation(self, request: CreateConversationRequest) -> ConversationCreated:
        request = request.validated()
        job_title = request.jobTitle.strip()
        user_name = request.userName.strip()
        cfg = self._config
        if not cfg.TAVUS_API_KEY or not cfg.TAVUS_REPLICA_ID:
            raise VendorError("Conversation vendor is not configured", status_code=500)

        persona_id = cfg.TAVUS_PERSONA_ID or None
        if persona_id is None:
            prompt = build_persona_prompt(
                job_title,
                user_name,
                request.customInstructions,
                request.customCriteria,
            )
            persona_id = self._vendor.create_persona(
                name=f"Interviewer - {job_title} - {int(time.time() * 1000)}",
                system_prompt=prompt,
            )
            logger.info("Created persona %s for %s", persona_id, job_title)

        data = self._vendor.create_conversation(
            replica_id=cfg.TAVUS_REPLICA_ID,
            persona_id=persona_id,
            callback_url=cfg.CALLBACK_BASE_URL.rstrip("/") + CALLBACK_PATH,
            conversation_name=f"Mock interview - {user_name} - {job_title}",
            custom_greeting=greeting_for(job_title, user_name),
        )
        created = ConversationCreated(
            conversation_id=str(data["conversation_id"]),
            conversation_url=str(data.get("conversation_url") or ""),
            persona_id=persona_id,
            status=data.get("status"),
        )
        log_event("conversation_created", created.conversation_id, source="vendor")
        return created

    def get_conversation(self, conversation_id: str) -> ConversationSnapshot:
        recording = self._recordings.get(conversation_id)
        recording_url = recording.recording_url if recording else None

        stored = self._transcripts.get(conversation_id)
        if stored:
            return ConversationSnapshot(
                transcript=format_transcript(stored),
                transcriptEvents=list(stored),
                hasWebhookData=True,
                dataSource="webhook",
                recordingUrl=recording_url,
            )

        events = self.vendor_transcript(conversation_id)
        if events:
            return ConversationSnapshot(
                transcript=format_transcript(events),
                transcriptEvents=events,
                hasWebhookData=False,
                dataSource="api_fallback",
                recordingUrl=recording_url,
            )
        return ConversationSnapshot(dataSource="none", recordingUrl=recording_url)

    def webhook_transcript(self, conversation_id: str) -> Optional[List[TranscriptEvent]]:
        return self._transcripts.get(conversation_id) or None

    def vendor_transcript(self, conversation_id: str) -> List[TranscriptEvent]:
        """Vendor REST transcript with the polling timeout; empty on any failure."""

        try:
            data = self._vendor.get_conversation(conversation_id, timeout=FETCH_TIMEOUT_S)
        except VendorError as exc:
            logger.info("Vendor transcript unavailable for %s: %s", conversation_id, exc)
            return []
        return extract_transcript(data)

    def wait_for_transcript(self, conversation_id: str, timeout: float) -> Optional[List[TranscriptEvent]]:
        return self._transcripts.wait_for(conversation_id, timeout)

    def end_conversation(self, conversation_id: str) -> EndConversationResult:
        fetch_result, data = attempt(
            "fetch_final_state",
            lambda: self._vendor.get_conversation(conversation_id, timeout=END_FETCH_TIMEOUT_S),
            conversation_id=conversation_id,
        )
        delete_result, _ = attempt(
            "delete_conversation",
            lambda: self._vendor.delete_conversation(conversation_id, timeout=DELETE_TIMEOUT_S),
            conversation_id=conversation_id,
        )
        return EndConversationResult(conversationData=data, steps=[fetch_result, delete_result])


__all__ = [
    "CALLBACK_PATH",
    "ConversationGateway",
    "DELETE_TIMEOUT_S",
    "END_FETCH_TIMEOUT_S",
    "FETCH_TIMEOUT_S",
    "format_transcript",
]
