"""Session recorder tests driven by fake capture devices and a manual scheduler."""
from __future__ import annotations

import threading
from typing import Callable, List, Optional

import pytest

from conversation_gateway.models import ConversationSnapshot
from errors import StorageError, VendorError
from recorder import (
    ManualScheduler,
    PermissionDenied,
    RecorderError,
    RecorderState,
    SessionRecorder,
    ThreadScheduler,
)
from services.sessions import LocalSessionStore
from webhooks import TranscriptEvent


class FakeTrack:
    def __init__(self, kind: str) -> None:
        self.kind = kind
        self.stopped = False
        self._ended: Optional[Callable[[], None]] = None

    def stop(self) -> None:
        self.stopped = True

    def on_ended(self, callback: Callable[[], None]) -> None:
        self._ended = callback

    def end(self) -> None:
        assert self._ended is not None
        self._ended()


class FakeEncoder:
    def __init__(self, mime_type: str = "video/webm;codecs=vp9,opus", tail: bytes = b"") -> None:
        self.mime_type = mime_type
        self.tail = tail
        self._on_chunk = None
        self.stopped = False

    def start(self, on_chunk) -> None:
        self._on_chunk = on_chunk

    def push(self, size: int) -> None:
        self._on_chunk(b"x" * size)

    def stop(self) -> None:
        self.stopped = True
        if self.tail:
            self._on_chunk(self.tail)


class FakeMedia:
    def __init__(self, *, deny_display: bool = False, deny_microphone: bool = False, tail: bytes = b"") -> None:
        self.deny_display = deny_display
        self.deny_microphone = deny_microphone
        self.display = [FakeTrack("video"), FakeTrack("audio")]
        self.microphone = [FakeTrack("audio")]
        self.encoder_instance = FakeEncoder(tail=tail)
        self.encoder_error: Optional[Exception] = None
        self.display_error: Optional[Exception] = None
        self.microphone_error: Optional[Exception] = None

    @property
    def all_tracks(self) -> List[FakeTrack]:
        return self.display + self.microphone

    def capture_display(self):
        if self.deny_display:
            raise PermissionDenied("Permission denied by user")
        if self.display_error is not None:
            raise self.display_error
        return list(self.display)

    def capture_microphone(self):
        if self.deny_microphone:
            raise PermissionDenied("No microphone")
        if self.microphone_error is not None:
            raise self.microphone_error
        return list(self.microphone)

    def encoder(self, tracks):
        if self.encoder_error is not None:
            raise self.encoder_error
        return self.encoder_instance


class FakeUploader:
    def __init__(self) -> None:
        self.fail = False
        self.error: Optional[Exception] = None
        self.calls = []

    def upload_recording(self, conversation_id, user_name, payload, mime_type):
        self.calls.append((conversation_id, user_name, len(payload), mime_type))
        if self.fail:
            raise StorageError("Failed to upload recording")
        if self.error is not None:
            raise self.error
        return f"https://storage.test/public/interview-recordings/{conversation_id}/rec.webm"


class FakePoller:
    def __init__(self) -> None:
        self.events: List[TranscriptEvent] = []
        self.error: Optional[Exception] = None
        self.calls = 0

    def get_conversation(self, conversation_id):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return ConversationSnapshot(transcriptEvents=list(self.events))


@pytest.fixture
def rig(tmp_path):
    class Rig:
        pass

    r = Rig()
    r.media = FakeMedia()
    r.uploader = FakeUploader()
    r.poller = FakePoller()
    r.scheduler = ManualScheduler()
    r.store = LocalSessionStore(str(tmp_path / "local"))

    def build(**kwargs) -> SessionRecorder:
        return SessionRecorder(
            conversation_id="c1",
            user_name="Ann",
            media=kwargs.pop("media", r.media),
            uploader=r.uploader,
            conversations=r.poller,
            scheduler=r.scheduler,
            session_store=r.store,
            session_id="s1",
            **kwargs,
        )

    r.build = build
    return r


def _assert_released(recorder: SessionRecorder, rig) -> None:
    assert recorder.tracks_open == 0
    assert recorder.timers_active == 0
    assert rig.scheduler.active_count == 0


def test_display_permission_denied_returns_to_idle(rig):
    media = FakeMedia(deny_display=True)
    recorder = rig.build(media=media)
    with pytest.raises(PermissionDenied):
        recorder.start()
    assert recorder.state is RecorderState.IDLE
    assert recorder.error == "Permission denied by user"
    _assert_released(recorder, rig)


def test_microphone_denial_records_screen_audio_only(rig):
    media = FakeMedia(deny_microphone=True)
    recorder = rig.build(media=media)
    recorder.start()
    assert recorder.state is RecorderState.RECORDING
    assert recorder.tracks_open == 2


def test_recording_uploads_and_releases_everything(rig):
    recorder = rig.build()
    recorder.start()
    assert recorder.state is RecorderState.RECORDING
    assert recorder.tracks_open == 3
    assert recorder.timers_active == 2

    rig.media.encoder_instance.push(4000)
    rig.scheduler.advance(5)
    assert recorder.duration_s == 5
    assert rig.poller.calls == 1

    recorder.stop()
    assert recorder.state is RecorderState.UPLOADED
    assert recorder.uploaded_url.endswith("rec.webm")
    assert rig.uploader.calls == [("c1", "Ann", 4000, "video/webm;codecs=vp9,opus")]
    assert all(track.stopped for track in rig.media.all_tracks)
    assert rig.media.encoder_instance.stopped
    _assert_released(recorder, rig)
    meta = rig.store.get_recording_meta("s1")
    assert meta.size == 4000
    assert meta.url == recorder.uploaded_url


def test_duration_stops_counting_after_stop(rig):
    recorder = rig.build()
    recorder.start()
    rig.media.encoder_instance.push(2000)
    rig.scheduler.advance(3)
    recorder.stop()
    rig.scheduler.advance(10)
    assert recorder.duration_s == 3


def test_warning_then_auto_stop_near_ceiling(rig):
    changes = []
    recorder = rig.build(max_bytes=10_000, on_change=lambda rec: changes.append(rec.state))
    recorder.start()

    rig.media.encoder_instance.push(8_000)
    assert recorder.state is RecorderState.RECORDING
    assert "approaching" in recorder.warning
    rig.media.encoder_instance.push(100)
    assert changes.count(RecorderState.RECORDING) == 2  # entered once, warned once

    rig.media.encoder_instance.push(1_400)
    assert recorder.state is RecorderState.UPLOADED
    assert "stopped automatically" in recorder.warning
    assert rig.uploader.calls[0][2] == 9_500
    _assert_released(recorder, rig)


def test_oversized_artifact_is_kept_for_download(rig, tmp_path):
    media = FakeMedia(tail=b"y" * 2_000)
    recorder = rig.build(media=media, max_bytes=10_000)
    recorder.start()
    media.encoder_instance.push(9_000)
    recorder.stop()

    assert recorder.state is RecorderState.TOO_LARGE
    assert rig.uploader.calls == []
    assert recorder.artifact.size == 11_000
    saved = recorder.download(str(tmp_path / "out" / "rec.webm"))
    assert saved.read_bytes() == recorder.artifact.payload
    _assert_released(recorder, rig)


def test_tiny_recording_fails_without_upload(rig):
    recorder = rig.build()
    recorder.start()
    rig.media.encoder_instance.push(500)
    recorder.stop()
    assert recorder.state is RecorderState.UPLOAD_FAILED
    assert "empty or corrupt" in recorder.error
    assert rig.uploader.calls == []
    with pytest.raises(RecorderError):
        recorder.retry_upload()


def test_failed_upload_can_be_retried(rig):
    rig.uploader.fail = True
    recorder = rig.build()
    recorder.start()
    rig.media.encoder_instance.push(3_000)
    recorder.stop()
    assert recorder.state is RecorderState.UPLOAD_FAILED
    assert recorder.error == "Failed to upload recording"
    assert recorder.artifact is not None

    rig.uploader.fail = False
    recorder.retry_upload()
    assert recorder.state is RecorderState.UPLOADED
    assert recorder.error is None
    assert len(rig.uploader.calls) == 2


def test_unexpected_uploader_error_lands_in_upload_failed(rig):
    rig.uploader.error = ValueError("malformed response")
    recorder = rig.build()
    recorder.start()
    rig.media.encoder_instance.push(3_000)
    recorder.stop()
    assert recorder.state is RecorderState.UPLOAD_FAILED
    assert recorder.error == "malformed response"
    assert recorder.artifact is not None
    _assert_released(recorder, rig)

    rig.uploader.error = None
    recorder.retry_upload()
    assert recorder.state is RecorderState.UPLOADED


def test_retry_requires_failed_upload(rig):
    recorder = rig.build()
    with pytest.raises(RecorderError):
        recorder.retry_upload()
    with pytest.raises(RecorderError):
        recorder.download("unused.webm")


def test_poll_replaces_transcript_only_with_new_events(rig):
    recorder = rig.build()
    recorder.start()
    rig.poller.events = [TranscriptEvent(role="assistant", content="Hi"), TranscriptEvent(role="user", content="Hello")]
    rig.scheduler.advance(5)
    assert [event.content for event in recorder.transcript] == ["Hi", "Hello"]
    assert [event.content for event in rig.store.get_transcript("s1")] == ["Hi", "Hello"]

    rig.poller.events = []
    rig.scheduler.advance(5)
    assert len(recorder.transcript) == 2

    rig.poller.error = VendorError("Backend unavailable")
    rig.scheduler.advance(5)
    assert len(recorder.transcript) == 2
    assert recorder.state is RecorderState.RECORDING


def test_screen_share_ended_stops_recording(rig):
    recorder = rig.build()
    recorder.start()
    rig.media.encoder_instance.push(2_000)
    rig.media.display[0].end()
    assert recorder.state is RecorderState.UPLOADED
    _assert_released(recorder, rig)


def test_start_only_from_idle(rig):
    recorder = rig.build()
    recorder.start()
    with pytest.raises(RecorderError):
        recorder.start()


def test_encoder_failure_releases_tracks(rig):
    rig.media.encoder_error = RuntimeError("no codec")
    recorder = rig.build()
    with pytest.raises(RuntimeError):
        recorder.start()
    assert recorder.state is RecorderState.IDLE
    assert "no codec" in recorder.error
    assert all(track.stopped for track in rig.media.all_tracks)
    _assert_released(recorder, rig)


def test_microphone_failure_releases_display_tracks(rig):
    rig.media.microphone_error = OSError("device busy")
    recorder = rig.build()
    with pytest.raises(OSError):
        recorder.start()
    assert recorder.state is RecorderState.IDLE
    assert "device busy" in recorder.error
    assert all(track.stopped for track in rig.media.display)
    _assert_released(recorder, rig)

    rig.media.microphone_error = None
    recorder.start()
    assert recorder.state is RecorderState.RECORDING
    assert recorder.tracks_open == 3


def test_display_capture_error_returns_to_idle(rig):
    rig.media.display_error = RuntimeError("no display server")
    recorder = rig.build()
    with pytest.raises(RuntimeError):
        recorder.start()
    assert recorder.state is RecorderState.IDLE
    assert "no display server" in recorder.error
    _assert_released(recorder, rig)


def test_close_while_recording_releases_and_drops_artifact(rig):
    recorder = rig.build()
    recorder.start()
    rig.media.encoder_instance.push(2_000)
    recorder.close()
    assert recorder.artifact is None
    assert all(track.stopped for track in rig.media.all_tracks)
    _assert_released(recorder, rig)
    recorder.stop()


def test_thread_scheduler_fires_until_cancelled():
    fired = threading.Event()
    timer = ThreadScheduler().every(0.01, fired.set)
    assert fired.wait(2)
    timer.cancel()
    assert not timer.active
