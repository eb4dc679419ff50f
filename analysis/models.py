from __future__ import annotations  # Analysis report domain models

from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, BeforeValidator, Field

from webhooks import TranscriptEvent

ReportSource = Literal["real_conversation", "api_conversation", "provided_data", "fallback_enhanced"]


def _whole_number(value: Any) -> Any:  # Model replies may carry fractional scores
    if isinstance(value, float):
        return int(round(value))
    return value


Score = Annotated[int, BeforeValidator(_whole_number), Field(ge=0, le=100)]


class AnswerAnalysis(BaseModel):  # Feedback for one question/answer pair
    question: str
    answer: str = ""
    score: Score
    feedback: str
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)


class ScoredAnalysis(BaseModel):  # Report body produced by a scorer
    overallScore: Score
    pace: Score
    fillerWords: Score
    clarity: Score
    eyeContact: Score
    posture: Score
    answerAnalysis: List[AnswerAnalysis] = Field(min_length=1)
    summary: str
    recommendations: List[str] = Field(default_factory=list)


class AnalysisReport(ScoredAnalysis):  # Report returned to the feedback view
    dataSource: ReportSource


class AnswerInput(BaseModel):  # Caller-supplied question/answer pair
    question: str = ""
    answer: str = ""


class AnalyzeRequest(BaseModel):  # Payload for POST /interview/analyze
    sessionId: Optional[str] = None
    conversationId: Optional[str] = None
    transcript: Union[str, List[TranscriptEvent], None] = None
    answers: List[Union[str, AnswerInput]] = Field(default_factory=list)
    jobTitle: str
    userName: str = "Candidate"


__all__ = [
    "AnalysisReport",
    "AnalyzeRequest",
    "AnswerAnalysis",
    "AnswerInput",
    "ReportSource",
    "ScoredAnalysis",
]
