"""Object storage gateway for recordings and transcripts (Supabase Storage)."""
from __future__ import annotations

import datetime as dt
import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from supabase import Client, create_client

from config.settings import settings
from errors import InputValidationError, PayloadTooLarge, StorageError
from observability import log_event
from webhooks import TranscriptEvent

logger = logging.getLogger(__name__)

MIB = 1024 * 1024
SIGNED_URL_TTL_S = 3600

ALLOWED_RECORDING_TYPES = frozenset({"video/webm", "video/mp4", "audio/webm", "audio/mp4"})


@dataclass(frozen=True)
class BucketSpec:
    name: str
    max_bytes: int
    public: bool


RECORDINGS = BucketSpec("interview-recordings", 50 * MIB, public=True)
TRANSCRIPTS = BucketSpec("interview-transcripts", 5 * MIB, public=True)
USER_TRANSCRIPTS = BucketSpec("user-transcripts", 10 * MIB, public=False)

BUCKETS = {spec.name: spec for spec in (RECORDINGS, TRANSCRIPTS, USER_TRANSCRIPTS)}


def base_mime_type(mime_type: Optional[str]) -> str:
    """Drop codec parameters: ``video/webm;codecs=vp8,opus`` -> ``video/webm``."""

    return (mime_type or "").split(";", 1)[0].strip().lower()


def ensure_within_limit(spec: BucketSpec, size: int) -> None:
    if size > spec.max_bytes:
        raise PayloadTooLarge(
            f"File exceeds the {spec.max_bytes // MIB}MB limit for {spec.name}",
            detail={"size": size, "limit": spec.max_bytes},
        )


def validate_recording_type(mime_type: Optional[str]) -> str:
    base = base_mime_type(mime_type)
    if base not in ALLOWED_RECORDING_TYPES:
        raise InputValidationError(
            f"File type not allowed: {mime_type}. Only video and audio files are accepted."
        )
    return base


def _safe_slug(value: str) -> str:
    slug = re.sub(r"[^A-Za-z0-9_-]+", "-", value.strip()).strip("-")
    return slug or "user"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _utc_now() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def _signed_url(result: Any) -> Optional[str]:
    if isinstance(result, dict):
        return result.get("signedURL") or result.get("signedUrl") or result.get("signed_url")
    return getattr(result, "signed_url", None)


def default_client() -> Client:
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
        raise StorageError("Missing SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY")
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)


class ObjectStorageGateway:
    """Uploads, lists and deletes interview artifacts across three buckets."""

    def __init__(self, client: Optional[Client] = None) -> None:
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = default_client()
        return self._client

    def _bucket(self, spec: BucketSpec):
        return self.client.storage.from_(spec.name)

    def _upload(self, spec: BucketSpec, path: str, payload: bytes, content_type: str, conversation_id: str) -> str:
        ensure_within_limit(spec, len(payload))
        try:
            self._bucket(spec).upload(
                path=path,
                file=payload,
                file_options={"content-type": content_type, "upsert": "false"},
            )
        except Exception as exc:  # noqa: BLE001
            logger.error("Upload to %s/%s failed: %s", spec.name, path, exc)
            raise StorageError(f"Failed to upload to {spec.name}: {exc}") from exc
        log_event("storage_upload", conversation_id, bucket=spec.name, path=path, size=len(payload))
        if spec.public:
            return self._bucket(spec).get_public_url(path)
        return self.get_signed_download_url(spec.name, path)

    def upload_recording(self, conversation_id: str, user_name: str, payload: bytes, mime_type: str) -> str:
        base = validate_recording_type(mime_type)
        extension = base.split("/", 1)[1]
        path = f"{conversation_id}/{_safe_slug(user_name)}-{_now_ms()}.{extension}"
        return self._upload(RECORDINGS, path, payload, base, conversation_id)

    def upload_transcript(self, conversation_id: str, user_name: str, events: Sequence[TranscriptEvent]) -> str:
        document = {
            "conversationId": conversation_id,
            "userName": user_name,
            "timestamp": _utc_now(),
            "events": [event.model_dump(exclude_none=True) for event in events],
            "eventCount": len(events),
        }
        path = f"{conversation_id}/{_safe_slug(user_name)}-transcript-{_now_ms()}.json"
        payload = json.dumps(document, indent=2).encode("utf-8")
        return self._upload(TRANSCRIPTS, path, payload, "application/json", conversation_id)

    def upload_user_transcript(
        self,
        *,
        user_id: str,
        conversation_id: str,
        events: Sequence[TranscriptEvent],
        job_title: str,
        company: Optional[str] = None,
        user_name: str = "",
    ) -> str:
        document = {
            "userId": user_id,
            "conversationId": conversation_id,
            "userName": user_name,
            "jobTitle": job_title,
            "company": company,
            "timestamp": _utc_now(),
            "events": [event.model_dump(exclude_none=True) for event in events],
            "eventCount": len(events),
        }
        path = f"{user_id}/{conversation_id}-{_now_ms()}.json"
        payload = json.dumps(document, indent=2).encode("utf-8")
        return self._upload(USER_TRANSCRIPTS, path, payload, "application/json", conversation_id)

    def get_signed_download_url(self, bucket: str, path: str, expires_in: int = SIGNED_URL_TTL_S) -> str:
        """Issue a time-boxed link; an expired link must be re-issued, not retried."""

        try:
            result = self.client.storage.from_(bucket).create_signed_url(path, expires_in)
        except Exception as exc:  # noqa: BLE001
            raise StorageError(f"Failed to sign {bucket}/{path}: {exc}") from exc
        url = _signed_url(result)
        if not url:
            raise StorageError(f"Storage returned no signed URL for {bucket}/{path}")
        return url

    def _list(self, spec: BucketSpec, prefix: str) -> List[Dict[str, Any]]:
        try:
            items = self._bucket(spec).list(prefix) or []
        except Exception as exc:  # noqa: BLE001
            logger.warning("Listing %s/%s failed: %s", spec.name, prefix, exc)
            return []
        return [item for item in items if isinstance(item, dict) and item.get("name")]

    def _describe(self, spec: BucketSpec, prefix: str) -> List[Dict[str, Any]]:
        files: List[Dict[str, Any]] = []
        for item in self._list(spec, prefix):
            path = f"{prefix}/{item['name']}"
            try:
                url: Optional[str] = self.get_signed_download_url(spec.name, path)
            except StorageError as exc:
                logger.warning("Could not sign %s: %s", path, exc)
                url = None
            metadata = item.get("metadata") or {}
            files.append(
                {
                    "name": item["name"],
                    "path": path,
                    "url": url,
                    "size": metadata.get("size"),
                    "created_at": item.get("created_at"),
                }
            )
        return files

    def list_conversation_files(self, conversation_id: str) -> Dict[str, List[Dict[str, Any]]]:
        return {
            "recordings": self._list(RECORDINGS, conversation_id),
            "transcripts": self._list(TRANSCRIPTS, conversation_id),
        }

    def download_urls(self, conversation_id: str) -> Dict[str, List[Dict[str, Any]]]:
        return {
            "recordings": self._describe(RECORDINGS, conversation_id),
            "transcripts": self._describe(TRANSCRIPTS, conversation_id),
        }

    def list_user_transcripts(self, user_id: str) -> List[Dict[str, Any]]:
        return self._describe(USER_TRANSCRIPTS, user_id)

    def _delete_prefix(self, spec: BucketSpec, conversation_id: str) -> int:
        try:
            items = self._bucket(spec).list(conversation_id) or []
        except Exception as exc:  # noqa: BLE001
            raise StorageError(f"Failed to list {spec.name}/{conversation_id}: {exc}") from exc
        paths = [f"{conversation_id}/{item['name']}" for item in items if isinstance(item, dict) and item.get("name")]
        if not paths:
            logger.info("No files in %s for conversation %s", spec.name, conversation_id)
            return 0
        try:
            self._bucket(spec).remove(paths)
        except Exception as exc:  # noqa: BLE001
            raise StorageError(f"Failed to delete from {spec.name}: {exc}") from exc
        log_event("storage_delete", conversation_id, bucket=spec.name, size=len(paths))
        return len(paths)

    def delete_recording(self, conversation_id: str) -> int:
        return self._delete_prefix(RECORDINGS, conversation_id)

    def delete_transcript(self, conversation_id: str) -> int:
        return self._delete_prefix(TRANSCRIPTS, conversation_id)


__all__ = [
    "ALLOWED_RECORDING_TYPES",
    "BUCKETS",
    "BucketSpec",
    "ObjectStorageGateway",
    "RECORDINGS",
    "TRANSCRIPTS",
    "USER_TRANSCRIPTS",
    "base_mime_type",
    "ensure_within_limit",
    "validate_recording_type",
]
