from __future__ import annotations
import logging
from collections import Counter
from datetime import date, datetime
from typing import Any, Iterable
from zoneinfo import ZoneInfo

from ..core.config import get_settings
from ..core.qr import qr_links
from ..core.upstream import ApiClient, UpstreamError
from ..models import ActivityStatus
from ..schemas import (
    ActivityBoard, ActivityDetail, ActivityForm, ActivityRead, ActivityUpdate,
    CreatedActivity, ParticipantRead,
)
from .validation import FormError, require, validate_time_range

settings = get_settings()
logger = logging.getLogger(__name__)

def _activities(data: Any) -> list[ActivityRead]:
    rows = (data or {}).get("activities", []) if isinstance(data, dict) else (data or [])
    return [ActivityRead.model_validate(r) for r in rows]

# ---- reads ----

async def list_open(api: ApiClient) -> list[ActivityRead]:
    return _activities((await api.get("/activities")).data)

async def list_mine(api: ApiClient) -> list[ActivityRead]:
    return _activities((await api.get("/activities/my")).data)

async def list_managed(api: ApiClient) -> list[ActivityRead]:
    return _activities((await api.get("/admin/activities")).data)

async def get_activity(api: ApiClient, activity_id: Any) -> ActivityRead:
    data = (await api.get(f"/activities/{activity_id}")).data or {}
    row = data.get("activity") if isinstance(data, dict) else None
    if not row:
        raise UpstreamError(404, "Activity not found")
    return ActivityRead.model_validate(row)

async def list_participants(api: ApiClient, activity_id: Any) -> list[ParticipantRead]:
    data = (await api.get(f"/admin/activities/{activity_id}/participants")).data or {}
    return [ParticipantRead.model_validate(p) for p in data.get("participants", [])]

async def activity_detail(api: ApiClient, activity_id: Any) -> ActivityDetail:
    activity = await get_activity(api, activity_id)
    try:
        participants = await list_participants(api, activity_id)
    except UpstreamError as e:
        logger.warning(f"Participants for activity {activity_id} unavailable: {e.message}")
        participants = []
    return ActivityDetail(activity=activity, participants=participants, qr=qr_links(activity.public_slug))

# ---- board (filter / search / counts) ----

def status_counts(rows: Iterable[ActivityRead]) -> dict[str, int]:
    counts = Counter(r.status.value for r in rows)
    return dict(counts)

def filter_rows(rows: list[ActivityRead], status_filter: str = "all", search: str = "") -> list[ActivityRead]:
    needle = (search or "").strip().lower()
    out = []
    for r in rows:
        if status_filter != "all" and r.status.value != status_filter:
            continue
        if needle:
            hay = " ".join(x for x in (r.title, r.description, r.location) if x).lower()
            if needle not in hay:
                continue
        out.append(r)
    return out

def build_board(rows: list[ActivityRead], status_filter: str = "all", search: str = "", **extra) -> ActivityBoard:
    return ActivityBoard(
        activities=filter_rows(rows, status_filter, search),
        counts=status_counts(rows),
        filter=status_filter,
        search=search,
        **extra,
    )

# ---- status toggle ----

def next_status(current: ActivityStatus) -> ActivityStatus:
    return ActivityStatus.DRAFT if current == ActivityStatus.OPEN else ActivityStatus.OPEN

def replace_row(rows: list[ActivityRead], updated: ActivityRead) -> list[ActivityRead]:
    return [updated if str(r.id) == str(updated.id) else r for r in rows]

async def toggle_status(
    api: ApiClient, activity_id: Any, rows: list[ActivityRead]
) -> tuple[ActivityRead, list[ActivityRead]]:
    """Flip OPEN <-> DRAFT, then re-read the activity and reconcile only its row."""
    current = next((r for r in rows if str(r.id) == str(activity_id)), None)
    if current is None:
        current = await get_activity(api, activity_id)
    new_status = next_status(current.status)
    await api.put(f"/activities/{activity_id}", json={"status": new_status.value})
    updated = await get_activity(api, activity_id)
    logger.info(f"Activity {activity_id} status {current.status.value} -> {updated.status.value}")
    return updated, replace_row(rows, updated)

def toggle_message(status: ActivityStatus) -> str:
    return "กิจกรรมปิดรับสมัครแล้ว" if status == ActivityStatus.DRAFT else "กิจกรรมเปิดรับสมัครแล้ว"

# ---- create / update / delete ----

def build_payload(form: ActivityForm) -> dict[str, Any]:
    title = require(form.title, "กรุณากรอกชื่อกิจกรรม")
    day = require(form.activity_date, "กรุณาเลือกวันที่จัดกิจกรรม")
    try:
        date.fromisoformat(day)
    except ValueError:
        raise FormError("รูปแบบวันที่ไม่ถูกต้อง")
    start, end = validate_time_range(form.start_time, form.end_time)
    try:
        hours = float(form.hours_awarded)
    except (TypeError, ValueError):
        raise FormError("กรุณากรอกจำนวนชั่วโมงที่ได้รับ")
    if hours < 0:
        raise FormError("จำนวนชั่วโมงต้องไม่ติดลบ")
    max_participants = None
    if form.max_participants not in (None, ""):
        try:
            max_participants = int(form.max_participants)
        except (TypeError, ValueError):
            raise FormError("จำนวนผู้เข้าร่วมสูงสุดต้องเป็นตัวเลข")

    return {
        "title": title,
        "description": form.description,
        "start_date": f"{day}T{start:%H:%M}:00",
        "end_date": f"{day}T{end:%H:%M}:00",
        "hours_awarded": hours,
        "location": form.location,
        "max_participants": max_participants,
        "status": form.status.value,
    }

async def create_activity(api: ApiClient, form: ActivityForm) -> CreatedActivity:
    res = await api.post("/activities", json=build_payload(form))
    activity = ActivityRead.model_validate((res.data or {}).get("activity"))
    logger.info(f"Activity {activity.id} created ({activity.title})")
    return CreatedActivity(activity=activity, qr=qr_links(activity.public_slug), message="สร้างกิจกรรมสำเร็จ!")

def _local(dt: datetime) -> datetime:
    # naive values are wall-clock time in the portal zone
    return dt if dt.tzinfo else dt.replace(tzinfo=ZoneInfo(settings.portal_timezone))

async def update_activity(api: ApiClient, activity_id: Any, payload: ActivityUpdate) -> ActivityRead:
    body = payload.model_dump(mode="json", exclude_none=True)
    if "start_date" in body and "end_date" in body and _local(payload.end_date) <= _local(payload.start_date):
        raise FormError("เวลาสิ้นสุดต้องมากกว่าเวลาเริ่มต้น")
    await api.put(f"/activities/{activity_id}", json=body)
    return await get_activity(api, activity_id)

async def delete_activity(api: ApiClient, activity_id: Any) -> str:
    res = await api.delete(f"/activities/{activity_id}")
    return res.message or "ลบกิจกรรมสำเร็จ"
