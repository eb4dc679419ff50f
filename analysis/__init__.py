from __future__ import annotations  # Analysis package exports

from .models import AnalysisReport, AnalyzeRequest, AnswerAnalysis, AnswerInput, ReportSource, ScoredAnalysis

__all__ = [
    "AnalysisReport",
    "AnalyzeRequest",
    "AnswerAnalysis",
    "AnswerInput",
    "ReportSource",
    "ScoredAnalysis",
]
