"""Deterministic interview scoring used when the text model is unavailable."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Sequence

from analysis.models import AnalysisReport, AnswerAnalysis

FILLER_PHRASES = ("you know", "sort of", "kind of", "i mean")
FILLER_WORDS = frozenset({"um", "uh", "er", "ah", "erm", "like", "basically", "actually", "literally"})

DEFAULT_QUESTIONS = (
    "Tell me about yourself and why you're interested in this role.",
    "Describe a challenging project you worked on and how you handled it.",
    "Where do you see yourself growing in the next few years?",
)

_WORD_RE = re.compile(r"[a-zA-Z']+")
_SENTENCE_RE = re.compile(r"[.!?]+")


@dataclass
class Exchange:
    question: str
    answer: str


@dataclass
class TranscriptStats:
    exchanges: List[Exchange] = field(default_factory=list)
    total_words: int = 0
    filler_count: int = 0
    unique_words: int = 0
    sentence_count: int = 0

    @property
    def answered(self) -> List[Exchange]:
        return [entry for entry in self.exchanges if entry.answer.strip()]


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> int:
    """Clamp and round to an integer score."""
    return int(round(min(high, max(low, value))))


def _words(text: str) -> List[str]:
    return [word.lower() for word in _WORD_RE.findall(text)]


def count_fillers(text: str) -> int:
    lowered = f" {text.lower()} "
    phrases = sum(lowered.count(f" {phrase} ") for phrase in FILLER_PHRASES)
    return phrases + sum(1 for word in _words(text) if word in FILLER_WORDS)


def collect_stats(exchanges: Sequence[Exchange]) -> TranscriptStats:
    stats = TranscriptStats(exchanges=list(exchanges))
    vocabulary: set[str] = set()
    for entry in stats.answered:
        words = _words(entry.answer)
        stats.total_words += len(words)
        vocabulary.update(words)
        stats.filler_count += count_fillers(entry.answer)
        stats.sentence_count += max(1, len([part for part in _SENTENCE_RE.split(entry.answer) if part.strip()]))
    stats.unique_words = len(vocabulary)
    return stats


def _pace_score(stats: TranscriptStats) -> int:
    answered = stats.answered
    if not answered:
        return 60
    avg_words = stats.total_words / len(answered)
    if avg_words < 60:
        return _clamp(55 + avg_words / 60 * 30)
    if avg_words <= 180:
        return 85
    return _clamp(85 - (avg_words - 180) / 10, low=50)


def _filler_score(stats: TranscriptStats) -> int:
    if not stats.total_words:
        return 70
    ratio = stats.filler_count / stats.total_words
    return _clamp(95 - ratio * 400, low=40, high=95)


def _clarity_score(stats: TranscriptStats) -> int:
    if not stats.total_words:
        return 60
    avg_sentence = stats.total_words / max(1, stats.sentence_count)
    if avg_sentence < 12:
        structure = 60 + avg_sentence / 12 * 20
    elif avg_sentence <= 22:
        structure = 85
    else:
        structure = 85 - (avg_sentence - 22)
    diversity = stats.unique_words / stats.total_words
    return _clamp(structure * 0.7 + min(1.0, diversity * 1.6) * 100 * 0.3, low=40, high=95)


def _presence_score(stats: TranscriptStats, base: int) -> int:
    return _clamp(base + min(10, len(stats.answered) * 2))


def _answer_score(answer: str) -> int:
    words = _words(answer)
    if not words:
        return 40
    length = min(1.0, len(words) / 80)
    fillers = count_fillers(answer) / len(words)
    return _clamp(55 + length * 35 - fillers * 100, low=30, high=95)


def _answer_feedback(entry: Exchange, score: int) -> AnswerAnalysis:
    words = _words(entry.answer)
    strengths: List[str] = []
    improvements: List[str] = []
    if not words:
        return AnswerAnalysis(
            question=entry.question,
            answer="",
            score=score,
            feedback="No answer was captured for this question.",
            strengths=["Question was presented"],
            improvements=["Answer every question, even briefly", "Use the STAR method to structure responses"],
        )
    if len(words) >= 60:
        strengths.append("Provided a detailed response")
    else:
        improvements.append("Expand with a concrete example and its outcome")
    if count_fillers(entry.answer) / len(words) < 0.03:
        strengths.append("Spoke with few filler words")
    else:
        improvements.append("Reduce filler words such as 'um' and 'like'")
    if re.search(r"\b(result|outcome|impact|improved|increased|reduced|delivered)\b", entry.answer, re.I):
        strengths.append("Connected the answer to a measurable result")
    else:
        improvements.append("Close with the result or impact of your actions")
    feedback = (
        "Solid, well-developed answer." if score >= 75
        else "Reasonable answer with room to add structure and detail." if score >= 55
        else "Brief answer; add context, your actions, and the result."
    )
    return AnswerAnalysis(
        question=entry.question,
        answer=entry.answer,
        score=score,
        feedback=feedback,
        strengths=strengths or ["Engaged with the question"],
        improvements=improvements or ["Keep practicing concise, structured delivery"],
    )


def _recommendations(pace: int, fillers: int, clarity: int, answered: int) -> List[str]:
    recs: List[str] = []
    if answered == 0:
        recs.append("Complete a full practice session so your answers can be analyzed")
    if pace < 70:
        recs.append("Develop answers further: aim for one to two minutes per response")
    if fillers < 75:
        recs.append("Pause briefly instead of using filler words")
    if clarity < 70:
        recs.append("Structure answers with the STAR method (Situation, Task, Action, Result)")
    recs.append("Research the company and tie your examples to the role's requirements")
    return recs


def score_exchanges(exchanges: Sequence[Exchange], *, job_title: str, user_name: str) -> AnalysisReport:
    """Build a full report from transcript statistics; identical input yields identical output."""

    stats = collect_stats(exchanges)
    pace = _pace_score(stats)
    fillers = _filler_score(stats)
    clarity = _clarity_score(stats)
    eye_contact = _presence_score(stats, 70)
    posture = _presence_score(stats, 72)

    entries = list(stats.exchanges) or [Exchange(question=q, answer="") for q in DEFAULT_QUESTIONS]
    answer_analysis = [_answer_feedback(entry, _answer_score(entry.answer)) for entry in entries]
    answer_avg = sum(item.score for item in answer_analysis) / len(answer_analysis)

    overall = _clamp(
        answer_avg * 0.35 + pace * 0.15 + fillers * 0.15 + clarity * 0.2 + eye_contact * 0.075 + posture * 0.075
    )
    answered = len(stats.answered)
    name = user_name or "The candidate"
    if answered:
        summary = (
            f"{name} answered {answered} question{'s' if answered != 1 else ''} for the {job_title} role "
            f"using about {stats.total_words} words. Overall delivery scored {overall}/100; "
            "focus on the recommendations below to strengthen structure and impact."
        )
    else:
        summary = (
            f"Not enough conversation data was captured to analyze {name}'s {job_title} interview in depth. "
            "This report uses baseline scores; complete a full session for detailed feedback."
        )
    return AnalysisReport(
        overallScore=overall,
        pace=pace,
        fillerWords=fillers,
        clarity=clarity,
        eyeContact=eye_contact,
        posture=posture,
        answerAnalysis=answer_analysis,
        summary=summary,
        recommendations=_recommendations(pace, fillers, clarity, answered),
        dataSource="fallback_enhanced",
    )


__all__ = ["DEFAULT_QUESTIONS", "Exchange", "TranscriptStats", "collect_stats", "count_fillers", "score_exchanges"]
