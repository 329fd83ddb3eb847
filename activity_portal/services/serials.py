from __future__ import annotations
import asyncio
import logging
from typing import Any

from ..core.redis import acquire_send_lock, release_send_lock
from ..core.upstream import ApiClient, UpstreamError
from ..schemas import (
    ActivityRead, BulkSendResult, ParticipantRead, SendResult, SerialBoard,
    SerialBoardRow, SerialGenerateRequest, SerialRead, SerialSendRequest,
)
from .activities import list_managed, list_participants

logger = logging.getLogger(__name__)

ALREADY_EXISTS = "Serial already exists"
MAX_SHOWN_CODES = 3

# ---- board ----

async def _participants_or_empty(api: ApiClient, activity: ActivityRead) -> list[ParticipantRead]:
    try:
        return await list_participants(api, activity.id)
    except UpstreamError as e:
        logger.warning(f"Participants for activity {activity.id} unavailable: {e.message}")
        return []

def _board_row(activity: ActivityRead, participants: list[ParticipantRead]) -> SerialBoardRow:
    sent = sum(1 for p in participants if p.has_serial)
    return SerialBoardRow(
        activity=activity,
        participants=participants,
        pending_count=len(participants) - sent,
        sent_count=sent,
    )

async def load_board(api: ApiClient) -> SerialBoard:
    activities = await list_managed(api)
    groups = await asyncio.gather(*(_participants_or_empty(api, a) for a in activities))
    rows = [_board_row(a, ps) for a, ps in zip(activities, groups)]
    return SerialBoard(
        rows=rows,
        total_sent=sum(r.sent_count for r in rows),
        total_pending=sum(r.pending_count for r in rows),
    )

# ---- sending ----

async def send_serial(api: ApiClient, req: SerialSendRequest) -> SendResult:
    try:
        res = await api.post("/serials/send", json=req.model_dump(mode="json"))
    except UpstreamError as e:
        if ALREADY_EXISTS in e.message:
            return SendResult(message="✅ ซีเรียลมีอยู่แล้ว - อัปเดตสถานะแล้ว", already_exists=True)
        raise
    data: dict[str, Any] = res.data or {}
    code = data.get("code")
    email_sent = bool(data.get("email_sent"))
    suffix = " (อีเมลส่งแล้ว)" if email_sent else ""
    return SendResult(message=f"✅ ส่งซีเรียลสำเร็จ! รหัส: {code}{suffix}", code=code, email_sent=email_sent)

def bulk_message(success: int, failed: int, codes: list[str], already_sent: int = 0) -> str:
    total = success + failed
    if success == 0:
        return f"❌ ส่งซีเรียลล้มเหลวทั้งหมด {failed} คน"
    msg = f"✅ ส่งซีเรียลสำเร็จ {success - already_sent}/{total} คน"
    if codes:
        msg += " รหัส: " + ", ".join(codes[:MAX_SHOWN_CODES])
        if len(codes) > MAX_SHOWN_CODES:
            msg += "..."
    if already_sent:
        msg += f" (มีซีเรียลอยู่แล้ว {already_sent} คน)"
    if failed:
        msg += f" (ล้มเหลว {failed} คน)"
    return msg

async def send_all(api: ApiClient, activity_id: Any, method: str = "email") -> BulkSendResult:
    """Send a serial to every participant of the activity that has none yet.

    Requests run concurrently and settle individually. Only one bulk send per
    activity may be in flight; a second caller gets 409.
    """
    key = str(activity_id)
    if not await acquire_send_lock(key):
        raise UpstreamError(409, "กำลังส่งซีเรียลของกิจกรรมนี้อยู่ กรุณารอสักครู่")
    try:
        participants = await list_participants(api, activity_id)
        pending = [p for p in participants if not p.has_serial]
        if not pending:
            raise UpstreamError(400, "ไม่มีผู้เข้าร่วมที่รอรับซีเรียล")

        results = await asyncio.gather(
            *(
                send_serial(api, SerialSendRequest(activity_id=activity_id, participant_id=p.id, method=method))
                for p in pending
            ),
            return_exceptions=True,
        )
        success, failed, already_sent, codes = 0, 0, 0, []
        for p, r in zip(pending, results):
            if isinstance(r, UpstreamError):
                # token rejection must still end the session
                if r.status_code == 401:
                    raise r
                failed += 1
                logger.warning(f"Serial send to participant {p.id} failed: {r.message}")
            elif isinstance(r, BaseException):
                raise r
            else:
                success += 1
                if r.already_exists:
                    already_sent += 1
                if r.code:
                    codes.append(r.code)

        logger.info(f"Bulk send for activity {key}: {success}/{len(pending)} ok ({already_sent} already had one), {failed} failed")
        return BulkSendResult(
            activity_id=activity_id,
            total_pending=len(pending),
            success=success,
            failed=failed,
            already_sent=already_sent,
            codes=codes[:MAX_SHOWN_CODES],
            message=bulk_message(success, failed, codes, already_sent),
        )
    finally:
        await release_send_lock(key)

# ---- serial management ----

async def list_serials(api: ApiClient, params: dict[str, Any] | None = None) -> list[SerialRead]:
    data = (await api.get("/serials", params=params)).data or {}
    rows = data.get("serials", []) if isinstance(data, dict) else data
    return [SerialRead.model_validate(s) for s in rows]

async def generate_serials(api: ApiClient, req: SerialGenerateRequest) -> dict[str, Any]:
    res = await api.post("/serials/generate", json=req.model_dump(mode="json"))
    logger.info(f"Generated {req.count} serial(s) for activity {req.activity_id}")
    data = res.data if isinstance(res.data, dict) else {"serials": res.data or []}
    return {"message": res.message, **data}

async def serial_stats(api: ApiClient) -> dict[str, Any]:
    return (await api.get("/serials/stats")).data or {}
