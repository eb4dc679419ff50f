from __future__ import annotations  # HTTP client for the conversation vendor API

import logging
from typing import Any, Dict, List, Optional

import httpx

from errors import VendorError
from observability import span
from webhooks import TranscriptEvent, coerce_events, event_kind
from webhooks.receiver import TRANSCRIPTION_READY

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 15.0


class TavusClient:  # Thin wrapper over the Tavus v2 REST API
    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = "https://tavusapi.com",
        http: Optional[httpx.Client] = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._http = http or httpx.Client(timeout=DEFAULT_TIMEOUT_S)

    def close(self) -> None:
        self._http.close()

    def create_persona(self, *, name: str, system_prompt: str, context: str = "") -> str:  # Register a persona and return its id
        body: Dict[str, Any] = {
            "persona_name": name,
            "system_prompt": system_prompt,
            "pipeline_mode": "full",
        }
        if context:
            body["context"] = context
        data = self._request("POST", "/v2/personas", json=body, timeout=DEFAULT_TIMEOUT_S)
        persona_id = data.get("persona_id") if isinstance(data, dict) else None
        if not persona_id:
            raise VendorError("Vendor did not return a persona id", status_code=502, detail=data)
        return str(persona_id)

    def create_conversation(
        self,
        *,
        replica_id: str,
        persona_id: str,
        callback_url: str,
        conversation_name: str,
        custom_greeting: Optional[str] = None,
    ) -> Dict[str, Any]:  # Start a live conversation
        body: Dict[str, Any] = {
            "replica_id": replica_id,
            "persona_id": persona_id,
            "callback_url": callback_url,
            "conversation_name": conversation_name,
            "properties": {"max_call_duration": 1800, "participant_left_timeout": 60},
        }
        if custom_greeting:
            body["custom_greeting"] = custom_greeting
        data = self._request("POST", "/v2/conversations", json=body, timeout=DEFAULT_TIMEOUT_S)
        if not isinstance(data, dict) or not data.get("conversation_id"):
            raise VendorError("Vendor did not return a conversation id", status_code=502, detail=data)
        return data

    def get_conversation(self, conversation_id: str, *, timeout: float) -> Dict[str, Any]:  # Fetch verbose conversation state
        data = self._request(
            "GET",
            f"/v2/conversations/{conversation_id}",
            params={"verbose": "true"},
            timeout=timeout,
            conversation_id=conversation_id,
        )
        return data if isinstance(data, dict) else {}

    def delete_conversation(self, conversation_id: str, *, timeout: float) -> None:  # Remove conversation on the vendor
        self._request(
            "DELETE",
            f"/v2/conversations/{conversation_id}",
            timeout=timeout,
            conversation_id=conversation_id,
        )

    def _request(
        self,
        method: str,
        path: str,
        *,
        timeout: float,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
        conversation_id: Optional[str] = None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        headers = {"x-api-key": self._api_key, "Content-Type": "application/json"}
        with span(f"tavus {method} {path.split('/')[2]}", conversation_id):
            try:
                response = self._http.request(method, url, json=json, params=params, headers=headers, timeout=timeout)
            except httpx.TimeoutException as exc:
                logger.warning("Vendor %s %s timed out after %.1fs", method, path, timeout)
                raise VendorError(f"Vendor request timed out after {timeout}s", status_code=504) from exc
            except httpx.HTTPError as exc:
                logger.error("Vendor transport failure: %s", exc)
                raise VendorError("Vendor request failed", status_code=502) from exc
        if response.status_code >= 400:
            body = _error_body(response)
            logger.error("Vendor %s %s returned %s: %s", method, path, response.status_code, body)
            message = body.get("message") or body.get("error") if isinstance(body, dict) else None
            raise VendorError(
                str(message or f"Vendor returned status {response.status_code}"),
                status_code=response.status_code,
                detail=body,
            )
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {}


def _error_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {"message": response.text[:500]}


def extract_transcript(data: Dict[str, Any]) -> List[TranscriptEvent]:
    """Pull transcript events out of a verbose conversation payload."""

    direct = data.get("transcript")
    if isinstance(direct, list) and direct:
        try:
            return coerce_events(direct)
        except ValueError:
            logger.warning("Vendor transcript field was not a valid event list")
    for event in data.get("events") or []:
        if not isinstance(event, dict):
            continue
        if event_kind(event.get("event_type")) != TRANSCRIPTION_READY:
            continue
        properties = event.get("properties") or {}
        try:
            return coerce_events(properties.get("transcript"))
        except ValueError:
            logger.warning("Vendor transcription event carried no usable transcript")
    return []


__all__ = ["TavusClient", "extract_transcript"]
