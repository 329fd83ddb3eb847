from __future__ import annotations
from enum import Enum
from typing import Any

import httpx

from ..core.upstream import ApiClient

class ReportKind(str, Enum):
    MEMBERS = "members"
    ACTIVITIES = "activities"
    EVALUATIONS = "evaluations"

class ExportFormat(str, Enum):
    EXCEL = "excel"
    PDF = "pdf"

EXPORT_MEDIA_TYPES = {
    ExportFormat.EXCEL: "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ExportFormat.PDF: "application/pdf",
}
EXPORT_SUFFIX = {ExportFormat.EXCEL: "xlsx", ExportFormat.PDF: "pdf"}

def _clean(filters: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in filters.items() if v not in (None, "")}

async def report(api: ApiClient, kind: ReportKind, filters: dict[str, Any]) -> Any:
    return (await api.get(f"/admin/reports/{kind.value}", params=_clean(filters))).data

async def staff_report(api: ApiClient, filters: dict[str, Any]) -> Any:
    return (await api.get("/admin/reports/staff/activities", params=_clean(filters))).data

def export_path(kind: ReportKind | None, fmt: ExportFormat) -> str:
    if kind is None:
        return f"/admin/reports/staff/activities/export/{fmt.value}"
    return f"/admin/reports/{kind.value}/export/{fmt.value}"

async def export(
    api: ApiClient, kind: ReportKind | None, fmt: ExportFormat, filters: dict[str, Any]
) -> tuple[bytes, str, str]:
    """Fetch an export the API rendered. Returns (content, media type, filename)."""
    r: httpx.Response = await api.download(export_path(kind, fmt), params=_clean(filters))
    media_type = r.headers.get("content-type", EXPORT_MEDIA_TYPES[fmt])
    name = (kind.value if kind else "staff-activities") + "-report." + EXPORT_SUFFIX[fmt]
    return r.content, media_type, name

async def landing_stats(api: ApiClient) -> dict[str, Any]:
    return (await api.get("/public/stats")).data or {}
