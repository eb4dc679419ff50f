"""Pydantic schemas for the interview and auth HTTP API."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from analysis.models import AnalysisReport, AnalyzeRequest, ReportSource
from webhooks import TranscriptEvent


class RegisterReq(BaseModel):
    email: Optional[Any] = None
    password: Optional[Any] = None
    name: Optional[Any] = None


class LoginReq(BaseModel):
    email: Optional[Any] = None
    password: Optional[Any] = None


class EndConversationReq(BaseModel):
    conversationId: Optional[str] = None


class UploadTranscriptReq(BaseModel):
    conversationId: Optional[str] = None
    userName: str = ""
    transcript: List[TranscriptEvent] = Field(default_factory=list)


class CleanupSessionReq(BaseModel):
    conversationId: Optional[str] = None
    userId: Optional[str] = None
    userName: str = ""
    transcript: List[TranscriptEvent] = Field(default_factory=list)
    jobTitle: str = ""
    company: Optional[str] = None


class AnalysisPdfReq(AnalyzeRequest):
    analysis: Optional[AnalysisReport] = None


class AnalyzeResp(BaseModel):
    success: bool = True
    analysis: AnalysisReport
    dataSource: ReportSource


class UrlResp(BaseModel):
    success: bool = True
    url: str
    path: Optional[str] = None


class FileListResp(BaseModel):
    success: bool = True
    recordings: List[Dict[str, Any]] = Field(default_factory=list)
    transcripts: List[Dict[str, Any]] = Field(default_factory=list)
