from __future__ import annotations

import httpx
import pytest

from errors import StorageError, VendorError
from recorder import BackendClient


def _client(handler) -> BackendClient:
    return BackendClient("https://api.test/", http=httpx.Client(transport=httpx.MockTransport(handler)))


def test_get_conversation_parses_snapshot():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/interview/get-conversation/c1"
        return httpx.Response(
            200,
            json={
                "success": True,
                "transcript": "Candidate: Hi",
                "transcriptEvents": [{"role": "user", "content": "Hi"}],
                "hasWebhookData": True,
                "dataSource": "webhook",
            },
        )

    snapshot = _client(handler).get_conversation("c1")
    assert snapshot.dataSource == "webhook"
    assert snapshot.transcriptEvents[0].content == "Hi"


def test_get_conversation_errors_raise_vendor_error():
    client = _client(lambda request: httpx.Response(500, json={"success": False, "error": "boom"}))
    with pytest.raises(VendorError, match="boom"):
        client.get_conversation("c1")


def test_upload_sends_multipart_and_returns_url():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["type"] = request.headers["content-type"]
        seen["body"] = request.content
        return httpx.Response(200, json={"success": True, "url": "https://storage.test/rec.webm"})

    url = _client(handler).upload_recording("c1", "Ann", b"x" * 2000, "video/webm")
    assert url == "https://storage.test/rec.webm"
    assert seen["type"].startswith("multipart/form-data")
    assert b'name="conversationId"' in seen["body"]
    assert b'name="recording"' in seen["body"]


def test_upload_failures_raise_storage_error():
    rejected = _client(lambda request: httpx.Response(413, json={"success": False, "error": "File exceeds the 50MB limit"}))
    with pytest.raises(StorageError) as info:
        rejected.upload_recording("c1", "Ann", b"x", "video/webm")
    assert info.value.status_code == 413

    def offline(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("down", request=request)

    with pytest.raises(StorageError):
        _client(offline).upload_recording("c1", "Ann", b"x", "video/webm")


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>gateway</html>"),
        httpx.Response(200, json=["https://storage.test/rec.webm"]),
        httpx.Response(200, json={"success": True}),
    ],
)
def test_malformed_upload_reply_raises_storage_error(response):
    with pytest.raises(StorageError):
        _client(lambda request: response).upload_recording("c1", "Ann", b"x", "video/webm")
