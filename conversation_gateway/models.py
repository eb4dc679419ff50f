from __future__ import annotations  # Conversation gateway request/response models

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from errors import InputValidationError
from services.outcomes import StepResult
from webhooks import TranscriptEvent

DataSource = Literal["webhook", "api_fallback", "none"]

MAX_JOB_TITLE = 100
MAX_USER_NAME = 50
MAX_INSTRUCTIONS = 5000
MAX_CRITERIA = 2000


class CreateConversationRequest(BaseModel):  # Payload from the setup screen
    jobTitle: Optional[Any] = None
    userName: Optional[Any] = None
    customInstructions: Optional[str] = None
    customCriteria: Optional[str] = None
    company: Optional[str] = None

    def validated(self) -> "CreateConversationRequest":  # Reject before any vendor call
        if not isinstance(self.jobTitle, str) or not self.jobTitle.strip():
            raise InputValidationError("Job title is required and must be a non-empty string")
        if not isinstance(self.userName, str) or not self.userName.strip():
            raise InputValidationError("User name is required and must be a non-empty string")
        if len(self.jobTitle) > MAX_JOB_TITLE:
            raise InputValidationError(f"Job title must be {MAX_JOB_TITLE} characters or less")
        if len(self.userName) > MAX_USER_NAME:
            raise InputValidationError(f"User name must be {MAX_USER_NAME} characters or less")
        if self.customInstructions and len(self.customInstructions) > MAX_INSTRUCTIONS:
            raise InputValidationError(f"Custom instructions must be {MAX_INSTRUCTIONS} characters or less")
        if self.customCriteria and len(self.customCriteria) > MAX_CRITERIA:
            raise InputValidationError(f"Custom criteria must be {MAX_CRITERIA} characters or less")
        return self


class ConversationCreated(BaseModel):  # Vendor conversation handle
    conversation_id: str
    conversation_url: str
    persona_id: Optional[str] = None
    status: Optional[str] = None


class ConversationSnapshot(BaseModel):  # Best-available transcript for a conversation
    transcript: str = ""
    transcriptEvents: List[TranscriptEvent] = Field(default_factory=list)
    hasWebhookData: bool = False
    dataSource: DataSource = "none"
    recordingUrl: Optional[str] = None


class EndConversationResult(BaseModel):  # Outcome of ending a conversation
    conversationData: Optional[Dict[str, Any]] = None
    steps: List[StepResult] = Field(default_factory=list)


__all__ = [
    "ConversationCreated",
    "ConversationSnapshot",
    "CreateConversationRequest",
    "DataSource",
    "EndConversationResult",
]
