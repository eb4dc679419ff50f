from __future__ import annotations  # Conversation gateway package exports

from .gateway import ConversationGateway, format_transcript
from .models import (
    ConversationCreated,
    ConversationSnapshot,
    CreateConversationRequest,
    EndConversationResult,
)
from .vendor_client import TavusClient, extract_transcript

__all__ = [
    "ConversationCreated",
    "ConversationGateway",
    "ConversationSnapshot",
    "CreateConversationRequest",
    "EndConversationResult",
    "TavusClient",
    "extract_transcript",
    "format_transcript",
]
