import httpx
import pytest

from activity_portal.core.upstream import (
    ApiClient, UpstreamError, UpstreamUnauthorized, parse_envelope,
)
from activity_portal.schemas import ApiErr, ApiOk


def test_envelope_success_is_ok_variant():
    r = httpx.Response(200, json={"success": True, "data": {"x": 1}, "message": "done"})
    res = parse_envelope(r, "fallback")
    assert isinstance(res, ApiOk)
    assert res.kind == "ok"
    assert res.data == {"x": 1}
    assert res.message == "done"


def test_envelope_success_false_on_200_is_error():
    r = httpx.Response(200, json={"success": False, "message": "nope"})
    res = parse_envelope(r, "fallback")
    assert isinstance(res, ApiErr)
    assert res.status == 400
    assert res.message == "nope"


def test_envelope_without_message_uses_default():
    res = parse_envelope(httpx.Response(500, text="boom"), "fallback")
    assert isinstance(res, ApiErr)
    assert (res.status, res.message) == (500, "fallback")


async def test_bearer_header_sent(upstream, api):
    upstream.ok("GET", "/activities", {"activities": []})
    await api.get("/activities")
    assert upstream.calls[0].headers["Authorization"] == "Bearer tok"


async def test_anonymous_client_sends_no_auth(upstream):
    upstream.ok("GET", "/public/stats", {})
    anon = ApiClient("http://upstream.test/api", transport=upstream.transport)
    await anon.get("/public/stats")
    assert "Authorization" not in upstream.calls[0].headers


async def test_401_with_token_raises_unauthorized(upstream, api):
    upstream.fail("GET", "/auth/me", 401, "Invalid token")
    with pytest.raises(UpstreamUnauthorized):
        await api.get("/auth/me")


async def test_401_without_token_is_plain_error(upstream):
    upstream.fail("POST", "/auth/login", 401, "รหัสผ่านไม่ถูกต้อง")
    anon = ApiClient("http://upstream.test/api", transport=upstream.transport)
    with pytest.raises(UpstreamError) as e:
        await anon.post("/auth/login", json={})
    assert not isinstance(e.value, UpstreamUnauthorized)
    assert e.value.message == "รหัสผ่านไม่ถูกต้อง"


async def test_network_failure_maps_to_502_default_message():
    def boom(request):
        raise httpx.ConnectError("refused", request=request)

    c = ApiClient("http://upstream.test/api", default_message="ลองใหม่", transport=httpx.MockTransport(boom))
    res = await c.send("GET", "/activities")
    assert isinstance(res, ApiErr)
    assert (res.status, res.message) == (502, "ลองใหม่")
