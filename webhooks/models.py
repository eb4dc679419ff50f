from __future__ import annotations  # Webhook and transcript domain models

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TranscriptEvent(BaseModel):  # One turn of dialogue as delivered by the vendor
    model_config = ConfigDict(extra="allow")

    role: str
    content: str = ""
    timestamp: Optional[str] = None


class WebhookEvent(BaseModel):  # Vendor callback envelope
    model_config = ConfigDict(extra="allow")

    event_type: str
    conversation_id: str
    properties: Dict[str, Any] = Field(default_factory=dict)
    timestamp: Optional[str] = None


class RecordingInfo(BaseModel):  # Stored recording_ready payload
    recording_url: Optional[str] = None
    timestamp: Optional[str] = None
    event_type: str


class WebhookAck(BaseModel):  # Acknowledgement returned to the vendor
    success: bool = True
    received: bool = True
    stored: bool = False
    event_type: Optional[str] = None


def coerce_events(raw: Any) -> List[TranscriptEvent]:
    """Validate a list of transcript entries; raise ValueError when it is not a list."""

    if not isinstance(raw, list):
        raise ValueError("transcript must be a list of events")
    events: List[TranscriptEvent] = []
    for item in raw:
        if isinstance(item, TranscriptEvent):
            events.append(item)
        else:
            events.append(TranscriptEvent.model_validate(item))
    return events


__all__ = ["RecordingInfo", "TranscriptEvent", "WebhookAck", "WebhookEvent", "coerce_events"]
