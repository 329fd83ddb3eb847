from __future__ import annotations
from pydantic_settings import BaseSettings
from pydantic import Field

class Settings(BaseSettings):
    database_url: str = Field("sqlite+aiosqlite:///./portal.db", alias="DATABASE_URL")

    # Upstream activity REST API (the client appends /api)
    api_url: str = Field("http://localhost:4000", alias="API_URL")
    api_timeout_seconds: float = Field(default=10.0, alias="API_TIMEOUT_SECONDS")

    # Public links
    public_base_url: str = Field("http://localhost:8000", alias="PUBLIC_BASE_URL")
    qr_api_url: str = Field("https://api.qrserver.com/v1/create-qr-code/", alias="QR_API_URL")

    # Portal sessions
    session_cookie_name: str = Field("portal_session", alias="SESSION_COOKIE_NAME")
    session_ttl_minutes: int = Field(default=60 * 24, alias="SESSION_TTL_MINUTES")
    session_cookie_secure: bool = Field(default=False, alias="SESSION_COOKIE_SECURE")
    login_path: str = Field("/login", alias="LOGIN_PATH")

    # Calendar days are computed in this zone
    portal_timezone: str = Field("Asia/Bangkok", alias="PORTAL_TIMEZONE")

    # Redis
    redis_url: str = Field("redis://127.0.0.1:6379/0", alias="REDIS_URL")
    rl_enabled: bool = Field(default=True, alias="RL_ENABLED")
    rl_window_seconds: int = Field(default=60, alias="RL_WINDOW_SECONDS")
    rl_max_reqs: int = Field(default=30, alias="RL_MAX_REQS")
    send_lock_seconds: int = Field(default=300, alias="SEND_LOCK_SECONDS")

    # Scheduler
    scheduler_enabled: bool = Field(default=True, alias="SCHEDULER_ENABLED")
    session_purge_minutes: int = Field(default=30, alias="SESSION_PURGE_MINUTES")

    cors_origins: str = Field(
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000,http://127.0.0.1:3000",
        alias="CORS_ORIGINS",
    )
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    default_error_message: str = Field(
        "เกิดข้อผิดพลาด กรุณาลองใหม่อีกครั้ง", alias="DEFAULT_ERROR_MESSAGE"
    )

    class Config:
        env_file = ".env"
        env_prefix = ""
        case_sensitive = False

    @property
    def api_base_url(self) -> str:
        return self.api_url.strip().rstrip("/") + "/api"

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

_settings: Settings | None = None
def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
