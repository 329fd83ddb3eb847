from __future__ import annotations
from datetime import date, datetime
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from ..core.config import get_settings
from ..core.redis import allow_request
from ..core.upstream import ApiClient
from ..deps import client_ip, get_public_api
from ..schemas import CalendarMonth, CheckinForm, CheckinPage, CheckinResult
from ..services import activities as activity_svc
from ..services.calendar import MAX_YEAR, MIN_YEAR, build_month
from ..services.checkins import load_checkin_page, submit_checkin
from ..services.reports import landing_stats

settings = get_settings()
router = APIRouter(tags=["public"])

@router.get("/public/stats")
async def public_stats(api: ApiClient = Depends(get_public_api)):
    return await landing_stats(api)

# --- QR landing page: activity summary + empty form
@router.get("/checkin/{slug}", response_model=CheckinPage)
async def checkin_page(slug: str, api: ApiClient = Depends(get_public_api)):
    return await load_checkin_page(api, slug)

@router.post("/checkin/{slug}", response_model=CheckinResult, status_code=201)
async def checkin_submit(
    slug: str,
    payload: CheckinForm,
    request: Request,
    api: ApiClient = Depends(get_public_api),
):
    if not await allow_request(client_ip(request), "checkin"):
        raise HTTPException(status_code=429, detail="Too many requests")
    return await submit_checkin(api, slug, payload)

@router.get("/calendar", response_model=CalendarMonth)
async def calendar(
    year: int | None = Query(default=None, ge=MIN_YEAR, le=MAX_YEAR),
    month: int | None = Query(default=None, ge=1, le=12),
    selected: date | None = Query(default=None),
    api: ApiClient = Depends(get_public_api),
):
    tz = ZoneInfo(settings.portal_timezone)
    today = datetime.now(tz).date()
    rows = await activity_svc.list_open(api)
    return build_month(year or today.year, month or today.month, rows, tz=tz, today=today, selected=selected)
