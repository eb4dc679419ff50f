"""Vendor webhook ingestion into the webhook stores."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from observability import log_event

from .models import RecordingInfo, TranscriptEvent, WebhookAck, WebhookEvent, coerce_events
from .store import WebhookStore

logger = logging.getLogger(__name__)

TRANSCRIPTION_READY = "transcription_ready"
RECORDING_READY = "recording_ready"


def event_kind(event_type: Optional[str]) -> str:
    """Normalise ``application.transcription_ready`` style names to their suffix."""

    value = (event_type or "").strip()
    if "." in value:
        value = value.rsplit(".", 1)[-1]
    return value


def _recording_url(properties: Dict[str, Any]) -> Optional[str]:
    url = properties.get("recording_url")
    if isinstance(url, str) and url:
        return url
    bucket = properties.get("bucket_name")
    key = properties.get("s3_key")
    if bucket and key:
        return f"https://{bucket}.s3.amazonaws.com/{key}"
    return None


class WebhookReceiver:
    """Sole writer of the transcript and recording stores."""

    def __init__(
        self,
        transcripts: WebhookStore[List[TranscriptEvent]],
        recordings: WebhookStore[RecordingInfo],
    ) -> None:
        self._transcripts = transcripts
        self._recordings = recordings

    def receive(self, payload: Any) -> WebhookAck:
        """Store the event when recognised; never raise to the caller."""

        event_type = payload.get("event_type") if isinstance(payload, dict) else None
        try:
            event = WebhookEvent.model_validate(payload)
        except ValidationError as exc:
            logger.warning("Ignoring malformed webhook payload: %s", exc.errors()[:1])
            log_event("webhook_rejected", None, event_type=event_type, reason="malformed")
            return WebhookAck(stored=False, event_type=event_type)

        kind = event_kind(event.event_type)
        try:
            if kind == TRANSCRIPTION_READY:
                events = coerce_events(event.properties.get("transcript"))
                self._transcripts.put(event.conversation_id, events)
                log_event(
                    "webhook_stored",
                    event.conversation_id,
                    event_type=event.event_type,
                    size=len(events),
                )
                return WebhookAck(stored=True, event_type=event.event_type)
            if kind == RECORDING_READY:
                info = RecordingInfo(
                    recording_url=_recording_url(event.properties),
                    timestamp=event.timestamp,
                    event_type=event.event_type,
                )
                self._recordings.put(event.conversation_id, info)
                log_event("webhook_stored", event.conversation_id, event_type=event.event_type)
                return WebhookAck(stored=True, event_type=event.event_type)
        except (ValueError, ValidationError) as exc:
            logger.warning(
                "Webhook %s for %s could not be stored: %s",
                event.event_type,
                event.conversation_id,
                exc,
            )
            log_event("webhook_rejected", event.conversation_id, event_type=event.event_type, reason=str(exc)[:120])
            return WebhookAck(stored=False, event_type=event.event_type)

        log_event("webhook_ignored", event.conversation_id, event_type=event.event_type)
        return WebhookAck(stored=False, event_type=event.event_type)


__all__ = ["RECORDING_READY", "TRANSCRIPTION_READY", "WebhookReceiver", "event_kind"]
