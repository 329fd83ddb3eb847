from __future__ import annotations
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import get_settings
from ..core.upstream import ApiClient
from ..deps import get_api, get_db, get_portal_session, get_public_api
from ..models import ROLE_HOME, PortalSession
from ..schemas import AuthResult, LoginForm, PasswordChange, ProfileUpdate, RegisterForm, UserRead
from ..services import auth as auth_svc
from ..services.sessions import get_active_session

settings = get_settings()
router = APIRouter(tags=["auth"])

def _set_session_cookie(response: Response, obj: PortalSession) -> None:
    expires = obj.expires_at if obj.expires_at.tzinfo else obj.expires_at.replace(tzinfo=timezone.utc)
    max_age = max(int((expires - datetime.now(timezone.utc)).total_seconds()), 0)
    response.set_cookie(
        settings.session_cookie_name,
        obj.id,
        max_age=max_age,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )

# Landing point for forced logouts; already signed-in users are pointed home
@router.get(settings.login_path)
async def login_page(request: Request, db: AsyncSession = Depends(get_db)):
    obj = await get_active_session(db, request.cookies.get(settings.session_cookie_name))
    if obj is not None:
        return {"authenticated": True, "home": ROLE_HOME[obj.role]}
    return {"authenticated": False, "form": LoginForm()}

@router.post("/auth/login", response_model=AuthResult)
async def login(
    payload: LoginForm,
    response: Response,
    db: AsyncSession = Depends(get_db),
    api: ApiClient = Depends(get_public_api),
):
    obj, result = await auth_svc.login(db, api, payload)
    _set_session_cookie(response, obj)
    return result

@router.post("/auth/register", response_model=AuthResult, status_code=201)
async def register(
    payload: RegisterForm,
    response: Response,
    db: AsyncSession = Depends(get_db),
    api: ApiClient = Depends(get_public_api),
):
    obj, result = await auth_svc.register(db, api, payload)
    _set_session_cookie(response, obj)
    return result

@router.post("/auth/logout")
async def logout(request: Request, response: Response, db: AsyncSession = Depends(get_db)):
    await auth_svc.logout(db, request.cookies.get(settings.session_cookie_name))
    response.delete_cookie(settings.session_cookie_name)
    return {"ok": True, "redirect": settings.login_path}

@router.get("/auth/me", response_model=UserRead)
async def me(
    db: AsyncSession = Depends(get_db),
    portal_session: PortalSession = Depends(get_portal_session),
    api: ApiClient = Depends(get_api),
):
    return await auth_svc.me(db, api, portal_session)

@router.put("/auth/profile")
async def update_profile(payload: ProfileUpdate, api: ApiClient = Depends(get_api)):
    return await auth_svc.update_profile(api, payload)

@router.put("/auth/change-password")
async def change_password(payload: PasswordChange, api: ApiClient = Depends(get_api)):
    return {"message": await auth_svc.change_password(api, payload)}
