from __future__ import annotations
import logging
from datetime import datetime, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete

from ..core.security import new_session_id, session_expiry
from ..models import PortalSession
from ..schemas import UserRead

logger = logging.getLogger(__name__)

def _now():
    return datetime.now(timezone.utc)

def _aware(dt: datetime) -> datetime:
    # sqlite hands back naive datetimes
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)

async def create_session(db: AsyncSession, *, token: str, user: UserRead) -> PortalSession:
    obj = PortalSession(
        id=new_session_id(),
        token=token,
        user_id=str(user.id),
        role=user.role,
        name=user.name or "",
        expires_at=session_expiry(token),
    )
    db.add(obj)
    await db.commit()
    await db.refresh(obj)
    logger.info(f"Session opened for user {obj.user_id} ({obj.role.value})")
    return obj

async def get_active_session(db: AsyncSession, session_id: str | None) -> PortalSession | None:
    if not session_id:
        return None
    obj = (await db.execute(select(PortalSession).where(PortalSession.id == session_id))).scalar_one_or_none()
    if obj is None:
        return None
    now = _now()
    if _aware(obj.expires_at) <= now:
        await db.delete(obj)
        await db.commit()
        return None
    obj.last_seen_at = now
    await db.commit()
    return obj

async def refresh_user(db: AsyncSession, obj: PortalSession, user: UserRead) -> PortalSession:
    obj.role = user.role
    obj.name = user.name or obj.name
    await db.commit()
    return obj

async def revoke_session(db: AsyncSession, session_id: str | None) -> bool:
    if not session_id:
        return False
    res = await db.execute(delete(PortalSession).where(PortalSession.id == session_id))
    await db.commit()
    return bool(res.rowcount)

async def purge_expired(db: AsyncSession) -> int:
    res = await db.execute(delete(PortalSession).where(PortalSession.expires_at <= _now()))
    await db.commit()
    return int(res.rowcount or 0)
