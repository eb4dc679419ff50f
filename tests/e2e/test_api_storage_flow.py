from storage.object_storage import RECORDINGS, USER_TRANSCRIPTS, BucketSpec

EVENTS = [{"role": "assistant", "content": "Hi"}, {"role": "user", "content": "Hello there"}]


def _upload(api, content_type="video/webm", size=4096):
    return api.post(
        "/interview/upload-recording",
        files={"recording": ("rec.webm", b"x" * size, content_type)},
        data={"conversationId": "c1", "userName": "Ann"},
    )


def test_upload_recording_and_list(api, fake_supabase):
    response = _upload(api)
    assert response.status_code == 200
    assert response.json()["url"].startswith("https://storage.test/public/")
    assert len(fake_supabase.objects[RECORDINGS.name]) == 1

    files = api.get("/interview/download-urls/c1").json()
    assert files["success"] is True
    assert len(files["recordings"]) == 1


def test_upload_rejects_wrong_type_and_missing_file(api, fake_supabase):
    bad = _upload(api, content_type="image/png")
    assert bad.status_code == 400
    assert "File type not allowed" in bad.json()["error"]
    assert RECORDINGS.name not in fake_supabase.objects

    missing = api.post("/interview/upload-recording", data={"conversationId": "c1"})
    assert missing.status_code == 400
    assert missing.json()["error"] == "No recording file provided"


def test_upload_over_limit_rejected_without_buffering_it(api, fake_supabase, monkeypatch):
    monkeypatch.setattr("api.routes.RECORDINGS", BucketSpec(RECORDINGS.name, 1024, public=True))

    response = _upload(api, size=4096)

    assert response.status_code == 413
    assert response.json()["success"] is False
    assert RECORDINGS.name not in fake_supabase.objects


def test_upload_transcript_requires_events(api):
    ok = api.post("/interview/upload-transcript", json={"conversationId": "c1", "userName": "Ann", "transcript": EVENTS})
    assert ok.status_code == 200
    empty = api.post("/interview/upload-transcript", json={"conversationId": "c1", "transcript": []})
    assert empty.status_code == 400


def test_delete_recording(api):
    _upload(api)
    response = api.delete("/interview/delete-recording/c1")
    assert response.json() == {"success": True, "deleted": 1}


def test_cleanup_session_and_status(api, fake_supabase):
    _upload(api)
    assert api.get("/interview/cleanup-status/c1").status_code == 404

    response = api.post(
        "/interview/cleanup-session",
        json={"conversationId": "c1", "userId": "u1", "userName": "Ann", "transcript": EVENTS, "jobTitle": "PM"},
    )
    assert response.status_code == 200
    report = response.json()["report"]
    assert [step["ok"] for step in report["steps"]] == [True, True, True]
    assert fake_supabase.objects[RECORDINGS.name] == {}

    status = api.get("/interview/cleanup-status/c1").json()
    assert status["report"]["persistedUrl"] == report["persistedUrl"]

    listed = api.get("/interview/user-transcripts/u1").json()
    assert len(listed["transcripts"]) == 1
    assert len(fake_supabase.objects[USER_TRANSCRIPTS.name]) == 1


def test_cleanup_requires_ids(api):
    response = api.post("/interview/cleanup-session", json={"conversationId": "c1"})
    assert response.status_code == 400
    assert response.json()["error"] == "User ID is required"
