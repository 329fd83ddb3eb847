import json

import httpx
import pytest

from activity_portal.core.config import get_settings
from activity_portal.core.upstream import UpstreamError
from activity_portal.schemas import SerialSendRequest
from activity_portal.services.serials import bulk_message, load_board, send_all, send_serial

from conftest import activity, participant

settings = get_settings()


def _send_handler(fail_ids=(), exists_ids=(), expired_ids=()):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        pid = body["participant_id"]
        if pid in expired_ids:
            return httpx.Response(401, json={"success": False, "message": "Token expired"})
        if pid in exists_ids:
            return httpx.Response(400, json={"success": False, "message": "Serial already exists for this participant"})
        if pid in fail_ids:
            return httpx.Response(500, json={"success": False, "message": "mail server down"})
        return httpx.Response(200, json={"success": True, "data": {"code": f"CODE{pid}", "email_sent": True}})
    return handler


async def test_board_counts_and_degraded_activity(upstream, api):
    upstream.ok("GET", "/admin/activities", {"activities": [activity(1), activity(2)]})
    upstream.ok("GET", "/admin/activities/1/participants",
                {"participants": [participant(1, serial_sent=True), participant(2), participant(3)]})
    upstream.fail("GET", "/admin/activities/2/participants", 500, "db error")

    board = await load_board(api)
    first, second = board.rows
    assert (first.sent_count, first.pending_count) == (1, 2)
    assert second.participants == []
    assert (board.total_sent, board.total_pending) == (1, 2)


async def test_single_send_reports_code(upstream, api):
    upstream.on("POST", "/serials/send", handler=_send_handler())
    res = await send_serial(api, SerialSendRequest(activity_id=1, participant_id=5))
    assert res.code == "CODE5"
    assert res.message == "✅ ส่งซีเรียลสำเร็จ! รหัส: CODE5 (อีเมลส่งแล้ว)"


async def test_existing_serial_is_a_refresh(upstream, api):
    upstream.fail("POST", "/serials/send", 400, "Serial already exists for this participant")
    res = await send_serial(api, SerialSendRequest(activity_id=1, participant_id=5))
    assert res.already_exists


async def test_bulk_send_totals_add_up(upstream, api, fake_locks):
    upstream.ok("GET", "/admin/activities/1/participants", {"participants": [
        participant(1, serial_sent=True), participant(2), participant(3), participant(4), participant(5),
    ]})
    upstream.on("POST", "/serials/send", handler=_send_handler(fail_ids={3, 5}))

    res = await send_all(api, 1)
    assert res.total_pending == 4
    assert res.success + res.failed == res.total_pending
    assert (res.success, res.failed) == (2, 2)
    assert sorted(res.codes) == ["CODE2", "CODE4"]
    assert "(ล้มเหลว 2 คน)" in res.message
    assert len(upstream.called("POST", "/serials/send")) == 4
    assert fake_locks == set()  # lock released


async def test_bulk_send_refused_while_in_flight(upstream, api, fake_locks):
    fake_locks.add("1")
    with pytest.raises(UpstreamError) as e:
        await send_all(api, 1)
    assert e.value.status_code == 409
    assert upstream.calls == []


async def test_bulk_send_releases_lock_on_failure(upstream, api, fake_locks):
    upstream.fail("GET", "/admin/activities/1/participants", 500, "db error")
    with pytest.raises(UpstreamError):
        await send_all(api, 1)
    assert fake_locks == set()


def test_bulk_message_variants():
    assert bulk_message(0, 3, []) == "❌ ส่งซีเรียลล้มเหลวทั้งหมด 3 คน"
    assert bulk_message(4, 0, ["A", "B", "C", "D"]) == "✅ ส่งซีเรียลสำเร็จ 4/4 คน รหัส: A, B, C..."
    assert bulk_message(3, 1, ["A", "B"], already_sent=1) == "✅ ส่งซีเรียลสำเร็จ 2/4 คน รหัส: A, B (มีซีเรียลอยู่แล้ว 1 คน) (ล้มเหลว 1 คน)"


def test_bulk_route_conflict(client, upstream, login_as, fake_locks):
    login_as("ADMIN")
    fake_locks.add("1")
    r = client.post("/serials/activities/1/send-all", json={"method": "email"})
    assert r.status_code == 409


async def test_bulk_send_counts_existing_serials_apart(upstream, api, fake_locks):
    upstream.ok("GET", "/admin/activities/1/participants", {"participants": [participant(2), participant(3), participant(4)]})
    upstream.on("POST", "/serials/send", handler=_send_handler(fail_ids={4}, exists_ids={3}))

    res = await send_all(api, 1)
    assert (res.success, res.failed, res.already_sent) == (2, 1, 1)
    assert res.success + res.failed == res.total_pending
    assert res.codes == ["CODE2"]
    assert res.message == "✅ ส่งซีเรียลสำเร็จ 1/3 คน รหัส: CODE2 (มีซีเรียลอยู่แล้ว 1 คน) (ล้มเหลว 1 คน)"


def test_bulk_route_token_expiry_ends_session(client, upstream, login_as, fake_locks):
    login_as("ADMIN")
    upstream.ok("GET", "/admin/activities/1/participants", {"participants": [participant(2), participant(3)]})
    upstream.on("POST", "/serials/send", handler=_send_handler(expired_ids={3}))

    r = client.post("/serials/activities/1/send-all", json={"method": "email"}, follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == settings.login_path
    assert not client.cookies.get(settings.session_cookie_name)
    assert fake_locks == set()
    assert client.get("/serials/board", follow_redirects=False).status_code == 303
