"""FastAPI routes for conversations, recordings, transcripts and analysis."""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Iterator, Optional

from fastapi import APIRouter, File, Form, Query, Request, Response, UploadFile
from fastapi.responses import StreamingResponse

from analysis.models import AnalyzeRequest
from analysis.pdf import render_analysis_pdf
from analysis.service import analyze
from api.schemas import (
    AnalysisPdfReq,
    AnalyzeResp,
    CleanupSessionReq,
    EndConversationReq,
    FileListResp,
    UploadTranscriptReq,
    UrlResp,
)
from conversation_gateway import ConversationGateway, CreateConversationRequest
from errors import InputValidationError, NotFoundError
from storage.cleanup import CleanupRegistry, cleanup_session
from storage.object_storage import RECORDINGS, ObjectStorageGateway, ensure_within_limit, validate_recording_type
from webhooks import WebhookReceiver

logger = logging.getLogger(__name__)

STREAM_MAX_WAIT_S = 60.0

router = APIRouter(prefix="/interview")


def _gateway(request: Request) -> ConversationGateway:
    return request.app.state.gateway


def _storage(request: Request) -> ObjectStorageGateway:
    return request.app.state.storage


def _cleanups(request: Request) -> CleanupRegistry:
    return request.app.state.cleanups


def _require(value: Optional[str], message: str) -> str:
    if not value or not str(value).strip():
        raise InputValidationError(message)
    return str(value).strip()


@router.post("/create-conversation")
def create_conversation(payload: CreateConversationRequest, request: Request) -> Dict[str, Any]:
    created = _gateway(request).create_conversation(payload)
    return {
        "success": True,
        "conversation_id": created.conversation_id,
        "conversation_url": created.conversation_url,
        "sessionData": {
            "conversationId": created.conversation_id,
            "jobTitle": str(payload.jobTitle).strip(),
            "userName": str(payload.userName).strip(),
            "company": payload.company,
            "personaId": created.persona_id,
        },
    }


@router.get("/get-conversation/{conversation_id}")
def get_conversation(conversation_id: str, request: Request) -> Dict[str, Any]:
    snapshot = _gateway(request).get_conversation(conversation_id)
    return {"success": True, **snapshot.model_dump()}


@router.post("/end-conversation")
def end_conversation(payload: EndConversationReq, request: Request) -> Dict[str, Any]:
    conversation_id = _require(payload.conversationId, "Conversation ID is required")
    result = _gateway(request).end_conversation(conversation_id)
    return {
        "success": True,
        "message": "Conversation ended",
        "conversationData": result.conversationData,
        "steps": [step.model_dump() for step in result.steps],
    }


@router.get("/conversation-stream/{conversation_id}")
def conversation_stream(
    conversation_id: str,
    request: Request,
    timeout: float = Query(30.0, gt=0),
) -> StreamingResponse:
    """Single server-sent event once the webhook transcript is available."""

    gateway = _gateway(request)
    wait_s = min(timeout, STREAM_MAX_WAIT_S)

    def _events() -> Iterator[str]:
        events = gateway.wait_for_transcript(conversation_id, wait_s)
        if events:
            snapshot = gateway.get_conversation(conversation_id)
            yield f"event: transcript\ndata: {json.dumps(snapshot.model_dump())}\n\n"
        else:
            yield f"event: timeout\ndata: {json.dumps({'conversationId': conversation_id})}\n\n"

    return StreamingResponse(_events(), media_type="text/event-stream", headers={"Cache-Control": "no-cache"})


@router.post("/conversation-callback")
async def conversation_callback(request: Request) -> Dict[str, Any]:
    try:
        payload: Any = await request.json()
    except ValueError:
        payload = None
    receiver: WebhookReceiver = request.app.state.receiver
    ack = receiver.receive(payload)
    return ack.model_dump()


@router.post("/analyze", response_model=AnalyzeResp)
def analyze_interview(payload: AnalyzeRequest, request: Request) -> AnalyzeResp:
    report = analyze(payload, source=_gateway(request))
    return AnalyzeResp(analysis=report, dataSource=report.dataSource)


@router.post("/analysis-report.pdf")
def analysis_report_pdf(payload: AnalysisPdfReq, request: Request) -> Response:
    report = payload.analysis or analyze(payload, source=_gateway(request))
    content = render_analysis_pdf(report, job_title=payload.jobTitle, user_name=payload.userName)
    slug = re.sub(r"[^a-z0-9]+", "-", f"{payload.userName} {payload.jobTitle}".lower()).strip("-") or "interview"
    headers = {"Content-Disposition": f"attachment; filename=\"{slug}-feedback.pdf\""}
    return Response(content=content, media_type="application/pdf", headers=headers)


@router.post("/upload-recording", response_model=UrlResp)
def upload_recording(
    request: Request,
    recording: Optional[UploadFile] = File(None),
    conversationId: Optional[str] = Form(None),
    userName: str = Form(""),
) -> UrlResp:
    if recording is None:
        raise InputValidationError("No recording file provided")
    conversation_id = _require(conversationId, "Conversation ID is required")
    validate_recording_type(recording.content_type)
    if recording.size is not None:
        ensure_within_limit(RECORDINGS, recording.size)
    # never buffer more than one byte past the limit
    payload = recording.file.read(RECORDINGS.max_bytes + 1)
    ensure_within_limit(RECORDINGS, len(payload))
    url = _storage(request).upload_recording(
        conversation_id,
        userName or "candidate",
        payload,
        recording.content_type or "",
    )
    return UrlResp(url=url)


@router.post("/upload-transcript", response_model=UrlResp)
def upload_transcript(payload: UploadTranscriptReq, request: Request) -> UrlResp:
    conversation_id = _require(payload.conversationId, "Conversation ID is required")
    if not payload.transcript:
        raise InputValidationError("Transcript must be a non-empty list of events")
    url = _storage(request).upload_transcript(conversation_id, payload.userName or "candidate", payload.transcript)
    return UrlResp(url=url)


@router.get("/download-urls/{conversation_id}", response_model=FileListResp)
def download_urls(conversation_id: str, request: Request) -> FileListResp:
    files = _storage(request).download_urls(conversation_id)
    return FileListResp(**files)


@router.get("/user-transcripts/{user_id}")
def user_transcripts(user_id: str, request: Request) -> Dict[str, Any]:
    transcripts = _storage(request).list_user_transcripts(user_id)
    return {"success": True, "transcripts": transcripts}


@router.delete("/delete-recording/{conversation_id}")
def delete_recording(conversation_id: str, request: Request) -> Dict[str, Any]:
    deleted = _storage(request).delete_recording(conversation_id)
    return {"success": True, "deleted": deleted}


@router.post("/cleanup-session")
def cleanup(payload: CleanupSessionReq, request: Request) -> Dict[str, Any]:
    conversation_id = _require(payload.conversationId, "Conversation ID is required")
    user_id = _require(payload.userId, "User ID is required")
    report = cleanup_session(
        _storage(request),
        conversation_id=conversation_id,
        user_id=user_id,
        events=payload.transcript,
        job_title=payload.jobTitle,
        company=payload.company,
        user_name=payload.userName,
        registry=_cleanups(request),
    )
    return {"success": report.success, "report": report.model_dump()}


@router.get("/cleanup-status/{conversation_id}")
def cleanup_status(conversation_id: str, request: Request) -> Dict[str, Any]:
    report = _cleanups(request).get(conversation_id)
    if report is None:
        raise NotFoundError(f"No cleanup has run for conversation {conversation_id}")
    return {"success": True, "report": report.model_dump()}


__all__ = ["router"]
