from __future__ import annotations  # HTTP client the recorder uses to reach the backend

import logging
from typing import Any, Optional

import httpx

from conversation_gateway.models import ConversationSnapshot
from errors import StorageError, VendorError

logger = logging.getLogger(__name__)

POLL_TIMEOUT_S = 10.0
UPLOAD_TIMEOUT_S = 120.0


def _error_message(response: httpx.Response) -> str:
    try:
        body: Any = response.json()
    except ValueError:
        return response.text[:200] or f"status {response.status_code}"
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"status {response.status_code}"


class BackendClient:  # Conversation polling and recording upload over HTTP
    def __init__(self, base_url: str, *, http: Optional[httpx.Client] = None) -> None:
        self._base_url = base_url.rstrip("/")
        self._http = http or httpx.Client()

    def close(self) -> None:
        self._http.close()

    def get_conversation(self, conversation_id: str) -> ConversationSnapshot:
        url = f"{self._base_url}/interview/get-conversation/{conversation_id}"
        try:
            response = self._http.get(url, timeout=POLL_TIMEOUT_S)
        except httpx.HTTPError as exc:
            raise VendorError("Conversation poll failed", status_code=502) from exc
        if response.status_code >= 400:
            raise VendorError(_error_message(response), status_code=response.status_code)
        return ConversationSnapshot.model_validate(response.json())

    def upload_recording(self, conversation_id: str, user_name: str, payload: bytes, mime_type: str) -> str:
        files = {"recording": (f"{conversation_id}.webm", payload, mime_type)}
        data = {"conversationId": conversation_id, "userName": user_name}
        try:
            response = self._http.post(
                f"{self._base_url}/interview/upload-recording",
                files=files,
                data=data,
                timeout=UPLOAD_TIMEOUT_S,
            )
        except httpx.HTTPError as exc:
            logger.error("Recording upload transport failure: %s", exc)
            raise StorageError("Recording upload failed", status_code=502) from exc
        if response.status_code >= 400:
            raise StorageError(_error_message(response), status_code=response.status_code)
        try:
            body: Any = response.json()
        except ValueError as exc:
            raise StorageError("Upload response was not valid JSON") from exc
        url = body.get("url") if isinstance(body, dict) else None
        if not url:
            raise StorageError("Upload response did not include a URL")
        return str(url)


__all__ = ["BackendClient"]
