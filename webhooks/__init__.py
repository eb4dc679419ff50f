from __future__ import annotations  # Webhook package exports

from .models import RecordingInfo, TranscriptEvent, WebhookAck, WebhookEvent, coerce_events
from .receiver import RECORDING_READY, TRANSCRIPTION_READY, WebhookReceiver, event_kind
from .store import WebhookStore

__all__ = [
    "RECORDING_READY",
    "TRANSCRIPTION_READY",
    "RecordingInfo",
    "TranscriptEvent",
    "WebhookAck",
    "WebhookEvent",
    "WebhookReceiver",
    "WebhookStore",
    "coerce_events",
    "event_kind",
]
