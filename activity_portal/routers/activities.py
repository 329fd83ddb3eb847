from __future__ import annotations
from fastapi import APIRouter, Depends, HTTPException, Query, Response

from ..core.qr import qr_links
from ..core.upstream import ApiClient
from ..deps import get_api, get_public_api, require_roles, require_staff
from ..models import ActivityStatus, UserRole
from ..schemas import (
    ActivityBoard, ActivityDetail, ActivityForm, ActivityRead, ActivityUpdate,
    CreatedActivity, QrLinks,
)
from ..services import activities as svc
from ..services.reports import ExportFormat, export, staff_report

router = APIRouter(prefix="/activities", tags=["activities"])

def _status_filter(value: str) -> str:
    if value == "all":
        return value
    try:
        return ActivityStatus(value).value
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Unknown status filter '{value}'")

@router.get("", response_model=list[ActivityRead])
async def list_open(api: ApiClient = Depends(get_public_api)):
    return await svc.list_open(api)

@router.get("/manage", response_model=ActivityBoard, dependencies=[Depends(require_staff)])
async def manage(
    status_filter: str = Query(default="all"),
    search: str = Query(default=""),
    api: ApiClient = Depends(get_api),
):
    rows = await svc.list_managed(api)
    return svc.build_board(rows, _status_filter(status_filter), search)

@router.get("/my", response_model=list[ActivityRead], dependencies=[Depends(require_staff)])
async def my_activities(api: ApiClient = Depends(get_api)):
    return await svc.list_mine(api)

# --- staff's own activity report
@router.get("/report", dependencies=[Depends(require_roles(UserRole.STAFF))])
async def report(
    start_date: str | None = None,
    end_date: str | None = None,
    status_filter: str | None = Query(default=None, alias="status"),
    api: ApiClient = Depends(get_api),
):
    return await staff_report(api, {"startDate": start_date, "endDate": end_date, "status": status_filter})

@router.get("/report/export/{fmt}", dependencies=[Depends(require_roles(UserRole.STAFF))])
async def report_export(
    fmt: ExportFormat,
    start_date: str | None = None,
    end_date: str | None = None,
    api: ApiClient = Depends(get_api),
):
    content, media_type, name = await export(api, None, fmt, {"startDate": start_date, "endDate": end_date})
    return Response(content=content, media_type=media_type,
                    headers={"Content-Disposition": f'attachment; filename="{name}"'})

@router.post("", response_model=CreatedActivity, status_code=201, dependencies=[Depends(require_staff)])
async def create_activity(payload: ActivityForm, api: ApiClient = Depends(get_api)):
    return await svc.create_activity(api, payload)

@router.get("/{activity_id}", response_model=ActivityDetail, dependencies=[Depends(require_staff)])
async def get_activity(activity_id: str, api: ApiClient = Depends(get_api)):
    return await svc.activity_detail(api, activity_id)

@router.get("/{activity_id}/qr", response_model=QrLinks, dependencies=[Depends(require_staff)])
async def activity_qr(activity_id: str, api: ApiClient = Depends(get_api)):
    a = await svc.get_activity(api, activity_id)
    links = qr_links(a.public_slug)
    if links is None:
        raise HTTPException(status_code=404, detail="Activity has no public link")
    return links

@router.put("/{activity_id}", response_model=ActivityRead, dependencies=[Depends(require_staff)])
async def update_activity(activity_id: str, payload: ActivityUpdate, api: ApiClient = Depends(get_api)):
    return await svc.update_activity(api, activity_id, payload)

@router.post("/{activity_id}/toggle-status", response_model=ActivityBoard, dependencies=[Depends(require_staff)])
async def toggle_status(
    activity_id: str,
    status_filter: str = Query(default="all"),
    search: str = Query(default=""),
    api: ApiClient = Depends(get_api),
):
    flt = _status_filter(status_filter)
    rows = await svc.list_managed(api)
    updated, rows = await svc.toggle_status(api, activity_id, rows)
    return svc.build_board(
        rows, flt, search,
        updated=updated, message=svc.toggle_message(updated.status),
    )

@router.delete("/{activity_id}", dependencies=[Depends(require_staff)])
async def delete_activity(activity_id: str, api: ApiClient = Depends(get_api)):
    return {"message": await svc.delete_activity(api, activity_id)}
