from __future__ import annotations
from typing import Any

from fastapi import APIRouter, Body, Depends, Query, Response

from ..core.upstream import ApiClient
from ..deps import get_api, require_admin
from ..models import UserRole
from ..schemas import UserCreate, UserRead, UserUpdate
from ..services import users as svc
from ..services.reports import ExportFormat, ReportKind, export, report

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])

# --- users
@router.get("/users", response_model=list[UserRead])
async def list_users(role: UserRole | None = Query(default=None), api: ApiClient = Depends(get_api)):
    return await svc.list_users(api, role)

@router.post("/users", status_code=201)
async def create_user(payload: UserCreate, api: ApiClient = Depends(get_api)):
    return await svc.create_user(api, payload)

@router.put("/users/{user_id}")
async def update_user(user_id: str, payload: UserUpdate, api: ApiClient = Depends(get_api)):
    return await svc.update_user(api, user_id, payload)

@router.delete("/users/{user_id}")
async def delete_user(user_id: str, api: ApiClient = Depends(get_api)):
    return {"message": await svc.delete_user(api, user_id)}

@router.post("/users/{user_id}/toggle-active", response_model=UserRead)
async def toggle_active(user_id: str, api: ApiClient = Depends(get_api)):
    return await svc.toggle_active(api, user_id)

# --- settings + dashboards
@router.get("/settings")
async def get_system_settings(api: ApiClient = Depends(get_api)):
    return await svc.system_settings(api)

@router.put("/settings")
async def put_system_settings(values: dict[str, Any] = Body(...), api: ApiClient = Depends(get_api)):
    return await svc.update_system_settings(api, values)

@router.get("/dashboard-stats")
async def dashboard_stats(api: ApiClient = Depends(get_api)):
    return await svc.dashboard_stats(api)

@router.get("/stats")
async def stats(api: ApiClient = Depends(get_api)):
    return await svc.admin_stats(api)

@router.get("/required-hours")
async def required_hours(api: ApiClient = Depends(get_api)):
    return await svc.required_hours(api)

# --- reports (filters are forwarded untouched)
def report_filters(
    start_date: str | None = None,
    end_date: str | None = None,
    enrollment_year: str | None = None,
    activity_id: str | None = None,
) -> dict[str, Any]:
    return {"startDate": start_date, "endDate": end_date,
            "enrollmentYear": enrollment_year, "activityId": activity_id}

@router.get("/reports/{kind}")
async def get_report(kind: ReportKind, filters: dict = Depends(report_filters), api: ApiClient = Depends(get_api)):
    return await report(api, kind, filters)

@router.get("/reports/{kind}/export/{fmt}")
async def export_report(
    kind: ReportKind,
    fmt: ExportFormat,
    filters: dict = Depends(report_filters),
    api: ApiClient = Depends(get_api),
):
    content, media_type, name = await export(api, kind, fmt, filters)
    return Response(content=content, media_type=media_type,
                    headers={"Content-Disposition": f'attachment; filename="{name}"'})
