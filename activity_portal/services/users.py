from __future__ import annotations
import logging
from typing import Any

from ..core.upstream import ApiClient, UpstreamError
from ..models import UserRole
from ..schemas import UserCreate, UserRead, UserUpdate
from .validation import FormError, is_email, is_username

logger = logging.getLogger(__name__)

def _check_identity(email: str | None, username: str | None) -> None:
    if email is not None and not is_email(email):
        raise FormError("รูปแบบอีเมลไม่ถูกต้อง")
    if username is not None and not is_username(username):
        raise FormError("ชื่อผู้ใช้ต้องเป็นตัวอักษร ตัวเลข และ _ เท่านั้น (3-50 ตัวอักษร)")

async def list_users(api: ApiClient, role: UserRole | None = None) -> list[UserRead]:
    params = {"role": role.value} if role else None
    data = (await api.get("/admin/users", params=params)).data or {}
    return [UserRead.model_validate(u) for u in data.get("users", [])]

async def get_user(api: ApiClient, user_id: Any) -> UserRead:
    for u in await list_users(api):
        if str(u.id) == str(user_id):
            return u
    raise UpstreamError(404, "User not found")

async def create_user(api: ApiClient, payload: UserCreate) -> dict[str, Any]:
    _check_identity(payload.email, payload.username)
    if len(payload.password) < 6:
        raise FormError("รหัสผ่านต้องมีอย่างน้อย 6 ตัวอักษร")
    res = await api.post("/admin/users", json=payload.model_dump(mode="json", exclude_none=True))
    logger.info(f"User {payload.username} created with role {payload.role.value}")
    return {"message": res.message, **(res.data or {})}

async def update_user(api: ApiClient, user_id: Any, payload: UserUpdate) -> dict[str, Any]:
    _check_identity(payload.email, payload.username)
    if payload.password is not None and len(payload.password) < 6:
        raise FormError("รหัสผ่านต้องมีอย่างน้อย 6 ตัวอักษร")
    res = await api.put(f"/admin/users/{user_id}", json=payload.model_dump(mode="json", exclude_none=True))
    return {"message": res.message, **(res.data or {})}

async def delete_user(api: ApiClient, user_id: Any) -> str:
    res = await api.delete(f"/admin/users/{user_id}")
    logger.info(f"User {user_id} deleted")
    return res.message or "ลบผู้ใช้สำเร็จ"

async def toggle_active(api: ApiClient, user_id: Any) -> UserRead:
    user = await get_user(api, user_id)
    await api.put(f"/admin/users/{user_id}/status", json={"is_active": not user.is_active})
    return user.model_copy(update={"is_active": not user.is_active})

# ---- settings + stats ----

async def system_settings(api: ApiClient) -> dict[str, Any]:
    return (await api.get("/admin/settings")).data or {}

async def update_system_settings(api: ApiClient, values: dict[str, Any]) -> dict[str, Any]:
    res = await api.put("/admin/settings", json=values)
    return {"message": res.message, **(res.data or {})}

async def dashboard_stats(api: ApiClient) -> dict[str, Any]:
    return (await api.get("/admin/dashboard-stats")).data or {}

async def admin_stats(api: ApiClient) -> dict[str, Any]:
    return (await api.get("/admin/stats")).data or {}

async def required_hours(api: ApiClient) -> dict[str, Any]:
    return (await api.get("/admin/required-hours")).data or {}
