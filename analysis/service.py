from __future__ import annotations  # Interview analysis with model scoring and deterministic fallback

import logging
from dataclasses import dataclass, field
from textwrap import dedent
from typing import List, Optional, Protocol

from config.registry import SCORER_KEY
from config.settings import settings
from conversation_gateway import format_transcript
from llm_gateway import LlmGatewayError, generate_json, generator_for
from services.scoring import Exchange, score_exchanges
from webhooks import TranscriptEvent

from .models import AnalysisReport, AnalyzeRequest, AnswerInput, ReportSource, ScoredAnalysis

logger = logging.getLogger(__name__)

_QUESTION_PREFIXES = ("interviewer:", "assistant:", "ai:", "q:")
_ANSWER_PREFIXES = ("candidate:", "user:", "me:", "a:")


class TranscriptSource(Protocol):  # Read side of the conversation gateway
    def webhook_transcript(self, conversation_id: str) -> Optional[List[TranscriptEvent]]: ...

    def vendor_transcript(self, conversation_id: str) -> List[TranscriptEvent]: ...


@dataclass
class ResolvedTranscript:
    text: str
    exchanges: List[Exchange] = field(default_factory=list)
    source: Optional[ReportSource] = None


def exchanges_from_events(events: List[TranscriptEvent]) -> List[Exchange]:
    """Pair each candidate turn with the interviewer turn before it."""

    exchanges: List[Exchange] = []
    question: Optional[str] = None
    for event in events:
        content = (event.content or "").strip()
        if not content:
            continue
        if event.role == "user":
            if question is None and exchanges:
                # consecutive candidate turns belong to the same answer
                exchanges[-1].answer = f"{exchanges[-1].answer} {content}"
                continue
            exchanges.append(Exchange(question=question or "Open response", answer=content))
            question = None
        elif event.role == "assistant":
            question = content
    return exchanges


def exchanges_from_text(text: str) -> List[Exchange]:
    exchanges: List[Exchange] = []
    question = ""
    saw_prefix = False
    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            continue
        lowered = line.lower()
        if lowered.startswith(_QUESTION_PREFIXES):
            saw_prefix = True
            question = line.split(":", 1)[1].strip()
        elif lowered.startswith(_ANSWER_PREFIXES):
            saw_prefix = True
            exchanges.append(Exchange(question=question or "Open response", answer=line.split(":", 1)[1].strip()))
            question = ""
    if not saw_prefix and text.strip():
        return [Exchange(question="Open response", answer=text.strip())]
    return exchanges


def exchanges_from_answers(answers: List[object]) -> List[Exchange]:
    exchanges: List[Exchange] = []
    for index, item in enumerate(answers, start=1):
        if isinstance(item, AnswerInput):
            if item.answer.strip() or item.question.strip():
                exchanges.append(Exchange(question=item.question or f"Question {index}", answer=item.answer))
        elif isinstance(item, str) and item.strip():
            exchanges.append(Exchange(question=f"Question {index}", answer=item.strip()))
    return exchanges


def _exchanges_text(exchanges: List[Exchange]) -> str:
    return "\n".join(f"Interviewer: {entry.question}\nCandidate: {entry.answer}" for entry in exchanges)


def resolve_transcript(request: AnalyzeRequest, source: Optional[TranscriptSource]) -> ResolvedTranscript:
    """Pick the best transcript: webhook store, then vendor API, then caller data."""

    if request.conversationId and source is not None:
        webhook = source.webhook_transcript(request.conversationId)
        if webhook:
            return ResolvedTranscript(format_transcript(webhook), exchanges_from_events(webhook), "real_conversation")
        vendor = source.vendor_transcript(request.conversationId)
        if vendor:
            return ResolvedTranscript(format_transcript(vendor), exchanges_from_events(vendor), "api_conversation")

    provided = request.transcript
    if isinstance(provided, list) and provided:
        return ResolvedTranscript(format_transcript(provided), exchanges_from_events(provided), "provided_data")
    if isinstance(provided, str) and provided.strip():
        return ResolvedTranscript(provided.strip(), exchanges_from_text(provided), "provided_data")
    answers = exchanges_from_answers(list(request.answers))
    if answers:
        return ResolvedTranscript(_exchanges_text(answers), answers, "provided_data")
    return ResolvedTranscript("")


def _build_task(transcript: str, job_title: str, user_name: str) -> str:  # Compose scoring prompt
    return dedent(
        f"""
        You are an expert interview coach reviewing a mock interview.
        Role: {job_title}
        Candidate: {user_name}
        Transcript:
        {{transcript}}

        Respond with a JSON object following this contract:
        - overallScore, pace, fillerWords, clarity, eyeContact, posture: numbers from 0 to 100.
        - answerAnalysis: array with one item per question the candidate answered.
            Each item must contain question, answer, score (0-100), feedback,
            strengths (list of short phrases) and improvements (list of short phrases).
        - summary: two to four sentences of overall feedback.
        - recommendations: three to five concrete next steps.
        Return only JSON without markdown fences, text, or commentary.
        """
    ).strip().replace("{transcript}", transcript)


def analyze(request: AnalyzeRequest, *, source: Optional[TranscriptSource] = None) -> AnalysisReport:
    resolved = resolve_transcript(request, source)
    job_title = request.jobTitle.strip() or "the role"
    user_name = request.userName.strip() or "Candidate"

    if resolved.source and len(resolved.text.strip()) >= settings.MIN_TRANSCRIPT_CHARS:
        try:
            generate = generator_for(SCORER_KEY)
            scored = generate_json(_build_task(resolved.text, job_title, user_name), ScoredAnalysis, generate=generate)
            logger.info("Model analysis complete source=%s", resolved.source)
            return AnalysisReport(**scored.model_dump(), dataSource=resolved.source)
        except LlmGatewayError as exc:
            logger.warning("Model analysis failed, using deterministic scorer: %s", exc)
    else:
        logger.info("Transcript too short for model analysis (%d chars)", len(resolved.text))

    return score_exchanges(resolved.exchanges, job_title=job_title, user_name=user_name)


__all__ = [
    "ResolvedTranscript",
    "TranscriptSource",
    "analyze",
    "exchanges_from_answers",
    "exchanges_from_events",
    "exchanges_from_text",
    "resolve_transcript",
]
