from __future__ import annotations
import os
import tempfile
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import httpx
import jwt
import pytest

_tmpdir = tempfile.mkdtemp(prefix="portal-tests-")
os.environ.update({
    "DATABASE_URL": f"sqlite+aiosqlite:///{_tmpdir}/portal.db",
    "API_URL": "http://upstream.test",
    "PUBLIC_BASE_URL": "http://portal.test",
    "REDIS_URL": "redis://127.0.0.1:1/0",
    "RL_ENABLED": "false",
    "SCHEDULER_ENABLED": "false",
    "PORTAL_TIMEZONE": "Asia/Bangkok",
})

from fastapi.testclient import TestClient  # noqa: E402

from activity_portal.core.upstream import ApiClient  # noqa: E402
from activity_portal.deps import get_upstream_transport  # noqa: E402
from activity_portal.main import app  # noqa: E402

Handler = Callable[[httpx.Request], httpx.Response]


class FakeUpstream:
    """In-memory stand-in for the activity REST API, served through httpx.MockTransport."""

    def __init__(self):
        self.routes: dict[tuple[str, str], list[Handler]] = {}
        self.calls: list[httpx.Request] = []

    def on(self, method: str, path: str, *, status: int = 200, json: Any = None, handler: Handler | None = None):
        """Register a reply. Several replies for one route are served in order, the last one repeats."""
        if handler is None:
            body = json if json is not None else {"success": True}
            handler = lambda request: httpx.Response(status, json=body)  # noqa: E731
        self.routes.setdefault((method.upper(), "/api" + path), []).append(handler)
        return self

    def ok(self, method: str, path: str, data: Any = None, message: str | None = None, **top):
        return self.on(method, path, json={"success": True, "data": data, "message": message, **top})

    def fail(self, method: str, path: str, status: int, message: str):
        return self.on(method, path, status=status, json={"success": False, "message": message})

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"success": False, "message": "Route not found"})
        h = queue.pop(0) if len(queue) > 1 else queue[0]
        return h(request)

    def called(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.calls if r.method == method and r.url.path == "/api" + path]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)


def make_token(user_id: str = "1", hours: int = 24) -> str:
    exp = datetime.now(timezone.utc) + timedelta(hours=hours)
    return jwt.encode({"id": user_id, "exp": int(exp.timestamp())}, "test-secret", algorithm="HS256")


def activity(id: int, title: str = "Beach cleanup", status: str = "OPEN", **kw) -> dict[str, Any]:
    row = {
        "id": id,
        "title": title,
        "description": "Collect litter on the beach",
        "start_date": "2026-10-20T09:00:00",
        "end_date": "2026-10-20T12:00:00",
        "hours_awarded": 3,
        "location": "Bangsaen",
        "max_participants": 50,
        "status": status,
        "public_slug": f"act-{id}",
    }
    row.update(kw)
    return row


def participant(id: int, serial_sent: bool = False, **kw) -> dict[str, Any]:
    row = {
        "id": id,
        "identifier_type": "EMAIL",
        "identifier_value": f"p{id}@example.com",
        "name": f"Participant {id}",
        "student_code": f"6500{id}",
        "serial_sent": serial_sent,
    }
    row.update(kw)
    return row


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def api(upstream) -> ApiClient:
    return ApiClient("http://upstream.test/api", token="tok", default_message="เกิดข้อผิดพลาด", transport=upstream.transport)


@pytest.fixture
def client(upstream):
    app.dependency_overrides[get_upstream_transport] = lambda: upstream.transport
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def login_as(client, upstream):
    def _login(role: str = "STAFF", user_id: str = "7"):
        upstream.on("POST", "/auth/login", json={
            "success": True,
            "message": "เข้าสู่ระบบสำเร็จ",
            "token": make_token(user_id),
            "user": {"id": user_id, "name": "Tester", "role": role},
        })
        r = client.post("/auth/login", json={"identifier": "tester", "password": "secret1"})
        assert r.status_code == 200, r.text
        return r.json()
    return _login


@pytest.fixture
def fake_locks(monkeypatch):
    """Replace the redis bulk-send lock with a process-local set."""
    held: set[str] = set()

    async def acquire(activity_id: str, ttl_seconds: int | None = None) -> bool:
        if activity_id in held:
            return False
        held.add(activity_id)
        return True

    async def release(activity_id: str) -> None:
        held.discard(activity_id)

    monkeypatch.setattr("activity_portal.services.serials.acquire_send_lock", acquire)
    monkeypatch.setattr("activity_portal.services.serials.release_send_lock", release)
    return held
