import json

import pytest

from activity_portal.schemas import RedemptionState, ReviewSubmit
from activity_portal.services.redemption import redeem, submit_review
from activity_portal.services.validation import FormError

PENDING = {
    "serialHistoryId": 42,
    "activityTitle": "Beach cleanup",
    "hoursAwarded": 3,
    "serialCode": "ABC123",
    "requiresReview": True,
}


async def test_code_is_normalized(upstream, api):
    upstream.ok("POST", "/student/redeem-serial", {"hoursEarned": 3, "activityTitle": "Beach cleanup"})
    await redeem(api, "  abc123 ")
    assert json.loads(upstream.calls[0].content) == {"code": "ABC123"}


async def test_empty_code_rejected_locally(upstream, api):
    with pytest.raises(FormError):
        await redeem(api, "   ")
    assert upstream.calls == []


async def test_requires_review_gives_pending_outcome(upstream, api):
    upstream.ok("POST", "/student/redeem-serial", PENDING)
    out = await redeem(api, "ABC123")
    assert out.state == RedemptionState.PENDING_REVIEW
    assert out.requires_review
    assert out.ticket.serial_history_id == 42
    assert all(v == 0 for v in out.review_form.ratings().values())


async def test_no_review_credits_immediately(upstream, api):
    upstream.ok("POST", "/student/redeem-serial", {"hoursEarned": 2.5, "activityTitle": "Tree planting"})
    out = await redeem(api, "XYZ")
    assert out.state == RedemptionState.CREDITED
    assert out.hours_earned == 2.5


async def test_review_blocked_until_all_rated(upstream, api):
    payload = ReviewSubmit(serial_history_id=42, fun_rating=5, learning_rating=4,
                           organization_rating=0, venue_rating=3, overall_rating=5)
    with pytest.raises(FormError):
        await submit_review(api, payload)
    assert upstream.calls == []


async def test_review_completes_redemption(upstream, api):
    upstream.ok("POST", "/student/submit-review", {"hoursEarned": 3, "activityTitle": "Beach cleanup"}, "Review submitted")
    payload = ReviewSubmit(serial_history_id=42, fun_rating=5, learning_rating=4,
                           organization_rating=4, venue_rating=3, overall_rating=5, suggestion="more shade")
    out = await submit_review(api, payload)
    assert out.state == RedemptionState.CREDITED
    sent = json.loads(upstream.calls[0].content)
    assert sent["serial_id"] == 42
    assert sent["organization_rating"] == 4
    assert sent["suggestion"] == "more shade"


def test_redeem_route_requires_student(client, upstream, login_as):
    login_as("STAFF")
    r = client.post("/student/redeem", json={"code": "ABC"})
    assert r.status_code == 403


def test_redeem_route_pending_review(client, upstream, login_as):
    login_as("STUDENT")
    upstream.ok("POST", "/student/redeem-serial", PENDING)
    r = client.post("/student/redeem", json={"code": "abc123"})
    assert r.status_code == 200
    assert r.json()["state"] == "redeemed-pending-review"


def test_redeem_route_rate_limited(client, upstream, login_as, monkeypatch):
    async def deny(ip, route):
        return False

    login_as("STUDENT")
    monkeypatch.setattr("activity_portal.routers.student.allow_request", deny)
    r = client.post("/student/redeem", json={"code": "abc123"})
    assert r.status_code == 429
    assert upstream.called("POST", "/student/redeem-serial") == []
