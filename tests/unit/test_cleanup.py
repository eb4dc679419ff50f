from __future__ import annotations

from storage.cleanup import (
    DELETE_RECORDING_STEP,
    DELETE_TRANSCRIPT_STEP,
    PERSIST_STEP,
    CleanupRegistry,
    cleanup_session,
)
from storage.object_storage import RECORDINGS, TRANSCRIPTS, USER_TRANSCRIPTS, ObjectStorageGateway
from webhooks import TranscriptEvent

EVENTS = [TranscriptEvent(role="assistant", content="Hi"), TranscriptEvent(role="user", content="Hello")]


def _seed(gateway: ObjectStorageGateway) -> None:
    gateway.upload_recording("c1", "Ann", b"x" * 2000, "video/webm")
    gateway.upload_transcript("c1", "Ann", EVENTS)


def test_cleanup_persists_then_deletes(fake_supabase):
    gateway = ObjectStorageGateway(client=fake_supabase)
    _seed(gateway)
    registry = CleanupRegistry()

    report = cleanup_session(
        gateway,
        conversation_id="c1",
        user_id="u1",
        events=EVENTS,
        job_title="PM",
        registry=registry,
    )

    assert report.success is True
    assert [step.step for step in report.steps] == [PERSIST_STEP, DELETE_RECORDING_STEP, DELETE_TRANSCRIPT_STEP]
    assert all(step.ok for step in report.steps)
    assert report.persistedUrl
    assert len(fake_supabase.objects[USER_TRANSCRIPTS.name]) == 1
    assert fake_supabase.objects[RECORDINGS.name] == {}
    assert fake_supabase.objects[TRANSCRIPTS.name] == {}
    assert registry.get("c1") is report


def test_failed_deletion_keeps_persisted_copy(fake_supabase):
    gateway = ObjectStorageGateway(client=fake_supabase)
    _seed(gateway)
    fake_supabase.fail_removes = True

    report = cleanup_session(gateway, conversation_id="c1", user_id="u1", events=EVENTS, job_title="PM")

    assert report.success is True
    assert report.step(PERSIST_STEP).ok is True
    assert report.step(DELETE_RECORDING_STEP).ok is False
    assert report.step(DELETE_TRANSCRIPT_STEP).ok is False
    assert len(fake_supabase.objects[USER_TRANSCRIPTS.name]) == 1


def test_empty_transcript_skips_persist_but_still_deletes(fake_supabase):
    gateway = ObjectStorageGateway(client=fake_supabase)
    _seed(gateway)

    report = cleanup_session(gateway, conversation_id="c1", user_id="u1", events=[], job_title="PM")

    persist = report.step(PERSIST_STEP)
    assert persist.ok is True
    assert persist.reason.startswith("skipped")
    assert report.step(DELETE_RECORDING_STEP).ok is True
    assert USER_TRANSCRIPTS.name not in fake_supabase.objects


def test_persist_failure_does_not_stop_deletes(fake_supabase):
    gateway = ObjectStorageGateway(client=fake_supabase)
    _seed(gateway)
    fake_supabase.fail_uploads = True

    report = cleanup_session(gateway, conversation_id="c1", user_id="u1", events=EVENTS, job_title="PM")

    assert report.step(PERSIST_STEP).ok is False
    assert report.persistedUrl is None
    assert report.step(DELETE_RECORDING_STEP).ok is True
    assert report.step(DELETE_TRANSCRIPT_STEP).ok is True


def test_registry_keeps_latest_report(fake_supabase):
    gateway = ObjectStorageGateway(client=fake_supabase)
    registry = CleanupRegistry()
    first = cleanup_session(gateway, conversation_id="c1", user_id="u1", events=[], job_title="PM", registry=registry)
    second = cleanup_session(gateway, conversation_id="c1", user_id="u1", events=[], job_title="PM", registry=registry)
    assert registry.get("c1") is second
    assert registry.get("c1") is not first
    assert registry.get("other") is None


def test_registry_drops_oldest_report_past_capacity(fake_supabase):
    gateway = ObjectStorageGateway(client=fake_supabase)
    registry = CleanupRegistry(capacity=2, ttl_seconds=60)
    for conversation_id in ("c1", "c2", "c3"):
        cleanup_session(gateway, conversation_id=conversation_id, user_id="u1", events=[], job_title="PM", registry=registry)

    assert len(registry) == 2
    assert registry.get("c1") is None
    assert registry.get("c3") is not None


def test_registry_reports_expire(fake_supabase):
    now = [100.0]
    gateway = ObjectStorageGateway(client=fake_supabase)
    registry = CleanupRegistry(capacity=10, ttl_seconds=5, clock=lambda: now[0])
    cleanup_session(gateway, conversation_id="c1", user_id="u1", events=[], job_title="PM", registry=registry)
    assert registry.get("c1") is not None

    now[0] += 6
    assert registry.get("c1") is None
