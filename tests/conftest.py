import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("ENABLE_FILE_LOGS", "0")

from storage.migrate import migrate
from config.settings import settings
from config.registry import PERSONA_KEY, SCORER_KEY, unbind_model
from conversation_gateway import TavusClient


@pytest.fixture(autouse=True)
def tmp_db(monkeypatch):
    td = tempfile.TemporaryDirectory()
    db_path = os.path.join(td.name, "test.db")
    monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
    monkeypatch.setattr(settings, "LOCAL_STORE_DIR", os.path.join(td.name, "local"), raising=False)
    monkeypatch.setattr(settings, "GEMINI_API_KEY", "", raising=False)
    migrate(db_path)
    try:
        yield
    finally:
        td.cleanup()


@pytest.fixture(autouse=True)
def clean_registry():
    yield
    unbind_model(PERSONA_KEY)
    unbind_model(SCORER_KEY)


class FakeBucket:
    def __init__(self, name: str, store: "FakeSupabase") -> None:
        self.name = name
        self._store = store

    def upload(self, path: str, file: bytes, file_options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if self._store.fail_uploads:
            raise RuntimeError("upload rejected")
        self._store.objects.setdefault(self.name, {})[path] = file
        self._store.calls.append(("upload", self.name, path))
        return {"path": path}

    def get_public_url(self, path: str) -> str:
        return f"https://storage.test/public/{self.name}/{path}"

    def create_signed_url(self, path: str, expires_in: int) -> Dict[str, Any]:
        self._store.calls.append(("sign", self.name, path))
        return {"signedURL": f"https://storage.test/signed/{self.name}/{path}?expires={expires_in}"}

    def list(self, prefix: str) -> List[Dict[str, Any]]:
        if self._store.fail_lists:
            raise RuntimeError("list unavailable")
        objects = self._store.objects.get(self.name, {})
        names = []
        for path, data in objects.items():
            folder, _, name = path.partition("/")
            if folder == prefix:
                names.append({"name": name, "metadata": {"size": len(data)}, "created_at": "2026-01-01T00:00:00Z"})
        return names

    def remove(self, paths: List[str]) -> List[Dict[str, Any]]:
        if self._store.fail_removes:
            raise RuntimeError("remove failed")
        objects = self._store.objects.get(self.name, {})
        for path in paths:
            objects.pop(path, None)
        self._store.calls.append(("remove", self.name, tuple(paths)))
        return [{"name": path} for path in paths]


class _FakeStorageApi:
    def __init__(self, store: "FakeSupabase") -> None:
        self._store = store

    def from_(self, bucket: str) -> FakeBucket:
        return FakeBucket(bucket, self._store)


class FakeSupabase:
    """In-memory stand-in for the Supabase client storage API."""

    def __init__(self) -> None:
        self.objects: Dict[str, Dict[str, bytes]] = {}
        self.calls: List[Any] = []
        self.fail_uploads = False
        self.fail_lists = False
        self.fail_removes = False
        self.storage = _FakeStorageApi(self)


@pytest.fixture
def fake_supabase() -> FakeSupabase:
    return FakeSupabase()


class VendorStub:
    """Routes Tavus API calls to canned handlers; records every request."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.routes: Dict[str, Callable[[httpx.Request], httpx.Response]] = {}

    def on(self, method: str, path: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[f"{method} {path}"] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(f"{request.method} {request.url.path}")
        if handler is None:
            return httpx.Response(404, json={"message": "not found"})
        return handler(request)

    def client(self) -> TavusClient:
        return TavusClient(
            api_key="test-key",
            base_url="https://vendor.test",
            http=httpx.Client(transport=httpx.MockTransport(self)),
        )


@pytest.fixture
def vendor_stub() -> VendorStub:
    return VendorStub()


@pytest.fixture
def api(vendor_stub, fake_supabase):
    """TestClient over a fresh app wired to the vendor stub and in-memory storage."""

    from fastapi.testclient import TestClient

    from api_server import create_app
    from config.settings import Settings
    from storage.object_storage import ObjectStorageGateway

    config = Settings(
        _env_file=None,
        TAVUS_API_KEY="test-key",
        TAVUS_REPLICA_ID="r-1",
        TAVUS_PERSONA_ID="p-fixed",
        CALLBACK_BASE_URL="https://backend.test",
    )
    app = create_app(vendor=vendor_stub.client(), storage=ObjectStorageGateway(client=fake_supabase), config=config)
    with TestClient(app) as client:
        yield client
