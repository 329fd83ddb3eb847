from __future__ import annotations
from typing import AsyncGenerator, Callable

import httpx
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from .db import get_session
from .core.config import get_settings
from .core.upstream import ApiClient
from .models import PortalSession, UserRole
from .services.sessions import get_active_session

settings = get_settings()


class LoginRequired(Exception):
    """No usable portal session; the caller is sent to the login route."""


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async for s in get_session():
        yield s

def get_upstream_transport() -> httpx.AsyncBaseTransport | None:
    # overridden in tests with httpx.MockTransport
    return None

def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"

# --- API clients ---

def get_public_api(transport: httpx.AsyncBaseTransport | None = Depends(get_upstream_transport)) -> ApiClient:
    return ApiClient(
        settings.api_base_url,
        timeout=settings.api_timeout_seconds,
        default_message=settings.default_error_message,
        transport=transport,
    )

async def get_portal_session(request: Request, db: AsyncSession = Depends(get_db)) -> PortalSession:
    obj = await get_active_session(db, request.cookies.get(settings.session_cookie_name))
    if obj is None:
        raise LoginRequired()
    return obj

def get_api(
    portal_session: PortalSession = Depends(get_portal_session),
    transport: httpx.AsyncBaseTransport | None = Depends(get_upstream_transport),
) -> ApiClient:
    return ApiClient(
        settings.api_base_url,
        token=portal_session.token,
        timeout=settings.api_timeout_seconds,
        default_message=settings.default_error_message,
        transport=transport,
    )

# --- role guards ---

def require_roles(*roles: UserRole) -> Callable[..., PortalSession]:
    allowed = set(roles)

    def _guard(portal_session: PortalSession = Depends(get_portal_session)) -> PortalSession:
        if portal_session.role not in allowed:
            names = "/".join(r.value for r in roles)
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"{names} role required")
        return portal_session

    return _guard

require_admin = require_roles(UserRole.ADMIN)
require_staff = require_roles(UserRole.ADMIN, UserRole.STAFF)
require_student = require_roles(UserRole.STUDENT)
