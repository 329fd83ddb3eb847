from __future__ import annotations
from datetime import datetime, timezone
from enum import Enum
from sqlalchemy.orm import declarative_base, Mapped, mapped_column
from sqlalchemy import Index, Enum as SqlEnum
from sqlalchemy.types import DateTime, String, Text

Base = declarative_base()

def utcnow():
    return datetime.now(timezone.utc)

# ---- Vocabularies of the upstream API ----
class UserRole(str, Enum):
    ADMIN = "ADMIN"
    STAFF = "STAFF"
    STUDENT = "STUDENT"

class ActivityStatus(str, Enum):
    DRAFT = "DRAFT"
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"

class IdentifierType(str, Enum):
    EMAIL = "EMAIL"
    USERNAME = "USERNAME"
    STUDENT_CODE = "STUDENT_CODE"

class SerialStatus(str, Enum):
    PENDING = "PENDING"    # generated, not yet sent
    SENT = "SENT"
    ACTIVE = "ACTIVE"
    REDEEMED = "REDEEMED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"

ROLE_HOME = {
    UserRole.ADMIN: "/admin",
    UserRole.STAFF: "/staff",
    UserRole.STUDENT: "/student",
}

# ---- Portal-owned state ----
class PortalSession(Base):
    __tablename__ = "portal_sessions"
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    token: Mapped[str] = mapped_column(Text, nullable=False)  # upstream bearer token
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    role: Mapped[UserRole] = mapped_column(SqlEnum(UserRole), nullable=False)
    name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    last_seen_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_portal_sessions_user", "user_id"),
        Index("ix_portal_sessions_expires", "expires_at"),
    )
