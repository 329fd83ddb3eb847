from __future__ import annotations
import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.upstream import ApiClient, UpstreamError
from ..models import ROLE_HOME, PortalSession
from ..schemas import (
    ApiOk, AuthResult, LoginForm, PasswordChange, ProfileUpdate, RegisterForm, UserRead,
)
from .sessions import create_session, refresh_user, revoke_session
from .validation import FormError, is_email, is_username, require

logger = logging.getLogger(__name__)

def _token_and_user(res: ApiOk) -> tuple[str, UserRead]:
    # /auth/login and /auth/register put token + user at the top level
    body = res.body
    data = res.data if isinstance(res.data, dict) else {}
    token = body.get("token") or data.get("token")
    user = body.get("user") or data.get("user")
    if not token or not user:
        raise UpstreamError(502, "Malformed auth response")
    return token, UserRead.model_validate(user)

def validate_login(form: LoginForm) -> LoginForm:
    return LoginForm(
        identifier=require(form.identifier, "กรุณากรอกข้อมูลให้ครบถ้วน"),
        password=require(form.password, "กรุณากรอกข้อมูลให้ครบถ้วน"),
    )

def validate_register(form: RegisterForm) -> dict[str, Any]:
    """Client-side checks in the order the registration page reports them."""
    if form.password != form.confirm_password:
        raise FormError("รหัสผ่านไม่ตรงกัน")
    if len(form.password) < 6:
        raise FormError("รหัสผ่านต้องมีอย่างน้อย 6 ตัวอักษร")
    require(form.student_code, "กรุณากรอกรหัสนักศึกษา")
    require(form.name, "กรุณากรอกชื่อ-นามสกุล")
    require(form.birth_date, "กรุณาเลือกวันเกิด")
    require(form.gender, "กรุณาเลือกเพศ")
    require(form.phone, "กรุณากรอกเบอร์โทรศัพท์")
    require(form.address, "กรุณากรอกที่อยู่")
    require(form.enrollment_year, "กรุณากรอกปีที่เข้าศึกษา")
    require(form.program, "กรุณากรอกหลักสูตรที่เรียน")
    if not is_email(form.email.strip()):
        raise FormError("รูปแบบอีเมลไม่ถูกต้อง")
    if not is_username(form.username.strip()):
        raise FormError("ชื่อผู้ใช้ต้องเป็นตัวอักษร ตัวเลข และ _ เท่านั้น (3-50 ตัวอักษร)")

    payload = form.model_dump(exclude={"confirm_password", "password"})
    payload = {k: v.strip() for k, v in payload.items()}
    payload["password"] = form.password
    return payload

async def _open(db: AsyncSession, res: ApiOk) -> tuple[PortalSession, AuthResult]:
    token, user = _token_and_user(res)
    obj = await create_session(db, token=token, user=user)
    return obj, AuthResult(user=user, home=ROLE_HOME[user.role], message=res.message)

async def login(db: AsyncSession, api: ApiClient, form: LoginForm) -> tuple[PortalSession, AuthResult]:
    clean = validate_login(form)
    res = await api.post("/auth/login", json=clean.model_dump())
    obj, result = await _open(db, res)
    logger.info(f"Login ok for user {obj.user_id}")
    return obj, result

async def register(db: AsyncSession, api: ApiClient, form: RegisterForm) -> tuple[PortalSession, AuthResult]:
    res = await api.post("/auth/register", json=validate_register(form))
    obj, result = await _open(db, res)
    logger.info(f"Registered student {obj.user_id}")
    return obj, result

async def logout(db: AsyncSession, session_id: str | None) -> None:
    if await revoke_session(db, session_id):
        logger.info("Session closed on logout")

async def me(db: AsyncSession, api: ApiClient, portal_session: PortalSession) -> UserRead:
    res = await api.get("/auth/me")
    raw = res.body.get("user") or (res.data or {}).get("user") or res.data
    user = UserRead.model_validate(raw)
    await refresh_user(db, portal_session, user)
    return user

async def update_profile(api: ApiClient, payload: ProfileUpdate) -> dict[str, Any]:
    body = payload.model_dump(exclude_none=True)
    if "email" in body and not is_email(body["email"]):
        raise FormError("รูปแบบอีเมลไม่ถูกต้อง")
    res = await api.put("/auth/profile", json=body)
    return {"message": res.message, "user": res.body.get("user") or res.data}

async def change_password(api: ApiClient, payload: PasswordChange) -> str:
    require(payload.current_password, "กรุณากรอกรหัสผ่านปัจจุบัน")
    if payload.new_password != payload.confirm_password:
        raise FormError("รหัสผ่านไม่ตรงกัน")
    if len(payload.new_password) < 6:
        raise FormError("รหัสผ่านต้องมีอย่างน้อย 6 ตัวอักษร")
    res = await api.put(
        "/auth/change-password",
        json={"currentPassword": payload.current_password, "newPassword": payload.new_password},
    )
    return res.message or "เปลี่ยนรหัสผ่านสำเร็จ"
