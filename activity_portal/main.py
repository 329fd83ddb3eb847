from __future__ import annotations
import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from prometheus_fastapi_instrumentator import Instrumentator

from .core.config import get_settings
from .core.redis import close_redis, ping_redis
from .core.upstream import UpstreamError, UpstreamUnauthorized
from .db import async_session_maker, dispose_db, init_db
from .deps import LoginRequired
from .routers import activities, admin, auth, public, serials, student
from .services.sessions import purge_expired, revoke_session
from .services.validation import FormError

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s [%(filename)s:%(lineno)d]",
)
logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()

async def purge_expired_sessions():
    try:
        async with async_session_maker() as db:
            n = await purge_expired(db)
        if n:
            logger.info(f"Purged {n} expired portal session(s)")
    except Exception as e:
        logger.error(f"Session purge failed: {e!r}")

@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()

    if not await ping_redis():
        logger.warning(f"Redis not reachable at {settings.redis_url}; rate limits and send locks will fail")

    if settings.scheduler_enabled:
        scheduler.add_job(purge_expired_sessions, "interval", minutes=settings.session_purge_minutes)
        scheduler.start()

    yield

    if scheduler.running:
        scheduler.shutdown(wait=False)
    await close_redis()
    await dispose_db()

app = FastAPI(title="activity-portal", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- error mapping

def _to_login(request: Request, detail: str) -> JSONResponse | RedirectResponse:
    if request.url.path == settings.login_path:
        resp = JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"detail": detail})
    else:
        resp = RedirectResponse(settings.login_path, status_code=status.HTTP_303_SEE_OTHER)
    resp.delete_cookie(settings.session_cookie_name)
    return resp

@app.exception_handler(LoginRequired)
async def login_required_handler(request: Request, exc: LoginRequired):
    return _to_login(request, "Not authenticated")

@app.exception_handler(UpstreamUnauthorized)
async def upstream_unauthorized_handler(request: Request, exc: UpstreamUnauthorized):
    async with async_session_maker() as db:
        await revoke_session(db, request.cookies.get(settings.session_cookie_name))
    logger.info(f"Upstream rejected token on {request.url.path}; session dropped")
    return _to_login(request, exc.message)

@app.exception_handler(UpstreamError)
async def upstream_error_handler(request: Request, exc: UpstreamError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

@app.exception_handler(FormError)
async def form_error_handler(request: Request, exc: FormError):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": exc.message})

# routers
app.include_router(auth.router)
app.include_router(public.router)
app.include_router(student.router)
app.include_router(activities.router)
app.include_router(serials.router)
app.include_router(admin.router)

@app.get("/health")
async def health():
    return {"status": "ok", "service": "activity-portal", "redis": await ping_redis()}

Instrumentator().instrument(app).expose(app)
