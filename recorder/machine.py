"""Client-side session recorder: capture, buffer, size ceiling and upload.

The recorder owns the media tracks and the local artifact. Two timers run while
recording (a one second duration tick and a transcript poll); every path out of
``recording`` stops the tracks and cancels both timers.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Protocol

from conversation_gateway.models import ConversationSnapshot
from errors import AppError
from observability import log_event
from services.sessions import LocalSessionStore, RecordingMeta
from webhooks import TranscriptEvent

from .media import Encoder, MediaSource, MediaTrack, PermissionDenied
from .scheduler import Scheduler, ThreadScheduler, TimerHandle

logger = logging.getLogger(__name__)

MAX_RECORDING_BYTES = 50 * 1024 * 1024
WARN_RATIO = 0.8
AUTO_STOP_RATIO = 0.95
MIN_VIABLE_BYTES = 1000
DURATION_TICK_S = 1.0
POLL_INTERVAL_S = 5.0
DEFAULT_MIME_TYPE = "video/webm"


class RecorderState(str, Enum):
    IDLE = "idle"
    REQUESTING_PERMISSIONS = "requesting-permissions"
    RECORDING = "recording"
    STOPPING = "stopping"
    PROCESSING = "processing"
    UPLOADED = "uploaded"
    UPLOAD_FAILED = "upload-failed"
    TOO_LARGE = "too-large"


class RecorderError(RuntimeError):  # Operation not allowed in the current state
    pass


class ConversationPoller(Protocol):
    def get_conversation(self, conversation_id: str) -> ConversationSnapshot: ...


class RecordingUploader(Protocol):
    def upload_recording(self, conversation_id: str, user_name: str, payload: bytes, mime_type: str) -> str: ...


@dataclass
class RecordingArtifact:
    payload: bytes
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.payload)


class SessionRecorder:
    def __init__(
        self,
        *,
        conversation_id: str,
        user_name: str,
        media: MediaSource,
        uploader: RecordingUploader,
        conversations: ConversationPoller,
        scheduler: Optional[Scheduler] = None,
        session_store: Optional[LocalSessionStore] = None,
        session_id: Optional[str] = None,
        include_microphone: bool = True,
        max_bytes: int = MAX_RECORDING_BYTES,
        on_change: Optional[Callable[["SessionRecorder"], None]] = None,
    ) -> None:
        self.conversation_id = conversation_id
        self.user_name = user_name
        self._media = media
        self._uploader = uploader
        self._conversations = conversations
        self._scheduler = scheduler or ThreadScheduler()
        self._store = session_store
        self._session_id = session_id or conversation_id
        self._include_microphone = include_microphone
        self.max_bytes = max_bytes
        self._on_change = on_change
        self._lock = threading.RLock()

        self.state = RecorderState.IDLE
        self.error: Optional[str] = None
        self.warning: Optional[str] = None
        self.duration_s = 0
        self.size_bytes = 0
        self.transcript: List[TranscriptEvent] = []
        self.artifact: Optional[RecordingArtifact] = None
        self.uploaded_url: Optional[str] = None

        self._tracks: List[MediaTrack] = []
        self._encoder: Optional[Encoder] = None
        self._chunks: List[bytes] = []
        self._timers: List[TimerHandle] = []
        self._warned = False
        self._mime_type = DEFAULT_MIME_TYPE

    # -- state helpers -------------------------------------------------

    def _set_state(self, state: RecorderState) -> None:
        previous = self.state
        self.state = state
        logger.info("Recorder %s: %s -> %s", self.conversation_id, previous.value, state.value)
        if self._on_change is not None:
            self._on_change(self)

    def _release(self) -> None:  # Stop every track and cancel both timers
        for timer in self._timers:
            timer.cancel()
        self._timers = []
        for track in self._tracks:
            try:
                track.stop()
            except Exception as exc:  # noqa: BLE001
                logger.warning("Track %s failed to stop cleanly: %s", getattr(track, "kind", "?"), exc)
        self._tracks = []

    @property
    def tracks_open(self) -> int:
        return len(self._tracks)

    @property
    def timers_active(self) -> int:
        return sum(1 for timer in self._timers if timer.active)

    # -- capture -------------------------------------------------------

    def start(self) -> None:
        with self._lock:
            if self.state is not RecorderState.IDLE:
                raise RecorderError(f"Cannot start recording while {self.state.value}")
            self.error = None
            self.warning = None
            self._set_state(RecorderState.REQUESTING_PERMISSIONS)
            try:
                display = list(self._media.capture_display())
            except PermissionDenied as exc:
                self.error = str(exc) or "Screen capture permission denied"
                self._set_state(RecorderState.IDLE)
                raise
            except Exception as exc:
                self.error = f"Failed to capture screen: {exc}"
                self._set_state(RecorderState.IDLE)
                raise
            # tracks are owned from the moment they exist
            self._tracks = display
            try:
                if self._include_microphone:
                    try:
                        self._tracks = display + list(self._media.capture_microphone())
                    except PermissionDenied as exc:
                        logger.warning("Microphone unavailable, recording screen audio only: %s", exc)
                self._encoder = self._media.encoder(self._tracks)
                self._mime_type = self._encoder.mime_type or DEFAULT_MIME_TYPE
                for track in display:
                    if track.kind == "video":
                        track.on_ended(self._on_track_ended)
                self._chunks = []
                self.size_bytes = 0
                self.duration_s = 0
                self._warned = False
                self.artifact = None
                self.uploaded_url = None
                self._encoder.start(self._on_chunk)
            except Exception as exc:
                self._release()
                self._encoder = None
                self.error = f"Failed to start recording: {exc}"
                self._set_state(RecorderState.IDLE)
                raise
            self._timers = [
                self._scheduler.every(DURATION_TICK_S, self._tick),
                self._scheduler.every(POLL_INTERVAL_S, self.poll_transcript),
            ]
            self._set_state(RecorderState.RECORDING)
            log_event("recorder", self.conversation_id, step="start", tracks=len(self._tracks))

    def _tick(self) -> None:
        with self._lock:
            if self.state is RecorderState.RECORDING:
                self.duration_s += 1

    def _on_track_ended(self) -> None:
        logger.info("Screen sharing ended for %s; stopping recording", self.conversation_id)
        self.stop()

    def _on_chunk(self, data: bytes) -> None:
        with self._lock:
            if self.state not in (RecorderState.RECORDING, RecorderState.STOPPING) or not data:
                return
            self._chunks.append(data)
            self.size_bytes += len(data)
            if self.state is not RecorderState.RECORDING:
                return
            if self.size_bytes >= self.max_bytes * AUTO_STOP_RATIO:
                self.warning = "Recording reached the upload size limit and was stopped automatically"
                logger.warning("Recorder %s auto-stopping at %d bytes", self.conversation_id, self.size_bytes)
                self.stop()
            elif self.size_bytes >= self.max_bytes * WARN_RATIO and not self._warned:
                self._warned = True
                self.warning = "Recording is approaching the upload size limit"
                logger.warning("Recorder %s at %d bytes (80%% of limit)", self.conversation_id, self.size_bytes)
                if self._on_change is not None:
                    self._on_change(self)

    def poll_transcript(self) -> None:
        """Fetch the latest transcript and replace the local cache when events came back."""

        with self._lock:
            if self.state is not RecorderState.RECORDING:
                return
        try:
            snapshot = self._conversations.get_conversation(self.conversation_id)
        except AppError as exc:
            logger.warning("Transcript poll failed for %s: %s", self.conversation_id, exc)
            return
        if not snapshot.transcriptEvents:
            return
        with self._lock:
            self.transcript = list(snapshot.transcriptEvents)
            if self._store is not None:
                self._store.store_transcript(self._session_id, self.transcript)

    # -- stop / upload -------------------------------------------------

    def stop(self) -> None:
        with self._lock:
            if self.state is not RecorderState.RECORDING:
                return
            self._set_state(RecorderState.STOPPING)
            encoder, self._encoder = self._encoder, None
            try:
                if encoder is not None:
                    encoder.stop()
            except Exception as exc:  # noqa: BLE001
                logger.error("Encoder failed to flush for %s: %s", self.conversation_id, exc)
            finally:
                self._release()
            self._process()

    def _process(self) -> None:
        self._set_state(RecorderState.PROCESSING)
        self.artifact = RecordingArtifact(payload=b"".join(self._chunks), mime_type=self._mime_type)
        self._chunks = []
        size = self.artifact.size
        log_event("recorder", self.conversation_id, step="processed", size=size)
        if size < MIN_VIABLE_BYTES:
            self.error = "Recording is empty or corrupt; nothing was uploaded"
            self._set_state(RecorderState.UPLOAD_FAILED)
            return
        if size > self.max_bytes:
            self.warning = "Recording exceeds the upload limit and is available for local download only"
            self._set_state(RecorderState.TOO_LARGE)
            return
        self._upload()

    def _upload(self) -> None:
        artifact = self.artifact
        assert artifact is not None
        try:
            url = self._uploader.upload_recording(self.conversation_id, self.user_name, artifact.payload, artifact.mime_type)
        except Exception as exc:  # noqa: BLE001
            self.error = str(exc) or exc.__class__.__name__
            logger.error("Recording upload failed for %s: %s", self.conversation_id, exc)
            log_event("recorder", self.conversation_id, step="upload", ok=False, reason=str(exc))
            self._set_state(RecorderState.UPLOAD_FAILED)
            return
        self.error = None
        self.uploaded_url = url
        if self._store is not None:
            self._store.store_recording_meta(
                self._session_id,
                RecordingMeta(size=artifact.size, type=artifact.mime_type, url=url),
            )
        log_event("recorder", self.conversation_id, step="upload", ok=True, size=artifact.size)
        self._set_state(RecorderState.UPLOADED)

    def retry_upload(self) -> None:
        with self._lock:
            if self.state is not RecorderState.UPLOAD_FAILED or self.artifact is None:
                raise RecorderError("There is no failed upload to retry")
            if self.artifact.size < MIN_VIABLE_BYTES:
                raise RecorderError("Recording is empty or corrupt and cannot be uploaded")
            self._upload()

    def download(self, path: str) -> Path:
        """Write the local artifact to ``path``."""

        with self._lock:
            if self.artifact is None:
                raise RecorderError("No recording is available to download")
            target = Path(path)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(self.artifact.payload)
            return target

    # -- teardown ------------------------------------------------------

    def end_session(self) -> None:
        """Finish the session: stop an active recording and release every resource."""

        with self._lock:
            if self.state is RecorderState.RECORDING:
                self.stop()
            else:
                self._release()

    def close(self) -> None:  # Teardown; drops the local artifact
        with self._lock:
            self.end_session()
            self._chunks = []
            self.artifact = None


__all__ = [
    "AUTO_STOP_RATIO",
    "MAX_RECORDING_BYTES",
    "MIN_VIABLE_BYTES",
    "POLL_INTERVAL_S",
    "RecorderError",
    "RecorderState",
    "RecordingArtifact",
    "SessionRecorder",
    "WARN_RATIO",
]
