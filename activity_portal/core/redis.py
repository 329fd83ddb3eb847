from __future__ import annotations
import redis.asyncio as redis
from .config import get_settings

_settings = get_settings()
_r: redis.Redis | None = None

def get_redis() -> redis.Redis:
    global _r
    if _r is None:
        _r = redis.from_url(_settings.redis_url, decode_responses=True)
    return _r

async def ping_redis() -> bool:
    try:
        return bool(await get_redis().ping())
    except Exception:
        return False

async def close_redis() -> None:
    global _r
    if _r is not None:
        await _r.aclose()
        _r = None

# ---- Fixed-window rate limit per IP/route (public check-in, redemption) ----
async def allow_request(ip: str, route_key: str) -> bool:
    if not _settings.rl_enabled:
        return True
    r = get_redis()
    key = f"rl:{route_key}:{ip}"
    pipe = r.pipeline()
    pipe.incr(key)
    pipe.expire(key, _settings.rl_window_seconds)
    count, _ = await pipe.execute()
    return int(count) <= _settings.rl_max_reqs

# ---- In-flight guard for bulk serial sending ----
async def acquire_send_lock(activity_id: str, ttl_seconds: int | None = None) -> bool:
    """True if this caller now owns the bulk-send slot for the activity."""
    ok = await get_redis().set(
        f"serials:bulk:{activity_id}", "1", ex=ttl_seconds or _settings.send_lock_seconds, nx=True
    )
    return bool(ok)

async def release_send_lock(activity_id: str) -> None:
    await get_redis().delete(f"serials:bulk:{activity_id}")
