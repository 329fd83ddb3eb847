from __future__ import annotations
import logging
from typing import Any

from ..core.upstream import ApiClient
from ..schemas import (
    RedemptionOutcome, RedemptionState, ReviewForm, ReviewSubmit, ReviewTicket,
)
from .validation import FormError

logger = logging.getLogger(__name__)

# Redemption is a two-state flow:
#   redeem --(requiresReview)--> PENDING_REVIEW --(review)--> CREDITED
#   redeem --(no review)-------> CREDITED

def normalize_code(code: str | None) -> str:
    text = (code or "").strip().upper()
    if not text:
        raise FormError("กรุณากรอกรหัส Serial")
    return text

def check_review(form: ReviewForm) -> ReviewForm:
    if any(v == 0 for v in form.ratings().values()):
        raise FormError("กรุณาให้คะแนนให้ครบทั้ง 5 ด้านก่อนส่งรีวิว")
    return form

async def redeem(api: ApiClient, code: str | None) -> RedemptionOutcome:
    serial_code = normalize_code(code)
    res = await api.post("/student/redeem-serial", json={"code": serial_code})
    data: dict[str, Any] = res.data or {}

    if data.get("requiresReview"):
        ticket = ReviewTicket(
            serial_history_id=data["serialHistoryId"],
            activity_title=data.get("activityTitle"),
            hours_awarded=data.get("hoursAwarded"),
            serial_code=data.get("serialCode", serial_code),
        )
        logger.info(f"Serial {serial_code} redeemed, review pending (history {ticket.serial_history_id})")
        return RedemptionOutcome(
            state=RedemptionState.PENDING_REVIEW,
            requires_review=True,
            ticket=ticket,
            review_form=ReviewForm(),
            activity_title=ticket.activity_title,
            message=res.message,
        )

    hours = data.get("hoursEarned")
    title = data.get("activityTitle")
    return RedemptionOutcome(
        state=RedemptionState.CREDITED,
        requires_review=False,
        hours_earned=hours,
        activity_title=title,
        message=f'สำเร็จ! คุณได้รับ {hours} ชั่วโมงจาก "{title}"',
    )

async def submit_review(api: ApiClient, payload: ReviewSubmit) -> RedemptionOutcome:
    check_review(payload)
    body = {"serial_id": payload.serial_history_id, **payload.ratings(), "suggestion": payload.suggestion or None}
    res = await api.post("/student/submit-review", json=body)
    data: dict[str, Any] = res.data or {}
    return RedemptionOutcome(
        state=RedemptionState.CREDITED,
        requires_review=False,
        hours_earned=data.get("hoursEarned"),
        activity_title=data.get("activityTitle"),
        message=res.message or "รีวิวสำเร็จ! ขอบคุณสำหรับความคิดเห็น",
    )

async def pending_reviews(api: ApiClient) -> list[dict[str, Any]]:
    res = await api.get("/student/pending-reviews")
    return (res.data or {}).get("pendingReviews", [])
