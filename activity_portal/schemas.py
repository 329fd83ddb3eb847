from __future__ import annotations
from typing import Annotated, Any, Literal
from datetime import date, datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .models import ActivityStatus, IdentifierType, SerialStatus, UserRole

Rating   = Annotated[int, Field(ge=0, le=5)]   # 0 = not rated yet
EntityId = int | str

# ---- Upstream envelope ----
class ApiOk(BaseModel):
    kind: Literal["ok"] = "ok"
    status: int = 200
    data: Any = None
    message: str | None = None
    body: dict[str, Any] = Field(default_factory=dict)  # raw JSON, some endpoints put payload at top level

class ApiErr(BaseModel):
    kind: Literal["error"] = "error"
    status: int
    message: str

ApiResult = Annotated[ApiOk | ApiErr, Field(discriminator="kind")]

# ---- Upstream records (extra keys kept for passthrough) ----
class UserRead(BaseModel):
    model_config = ConfigDict(extra="allow")
    id: EntityId
    name: str = ""
    email: str | None = None
    username: str | None = None
    student_code: str | None = None
    role: UserRole
    is_active: bool = True

class ActivityRead(BaseModel):
    model_config = ConfigDict(extra="allow")
    id: EntityId
    title: str
    description: str | None = None
    start_date: datetime
    end_date: datetime
    hours_awarded: float = 0
    location: str | None = None
    max_participants: int | None = None
    status: ActivityStatus
    public_slug: str | None = None
    participant_count: int | None = None

class ParticipantRead(BaseModel):
    model_config = ConfigDict(extra="allow")
    id: EntityId
    identifier_type: IdentifierType
    identifier_value: str
    name: str | None = None
    email: str | None = None
    student_code: str | None = None
    username: str | None = None
    serial_sent: bool = False
    serial_sent_at: datetime | None = None
    created_at: datetime | None = None
    has_serial: bool = False

    @model_validator(mode="after")
    def _derive_has_serial(self):
        self.has_serial = bool(self.serial_sent)
        return self

class SerialRead(BaseModel):
    model_config = ConfigDict(extra="allow")
    id: EntityId
    code: str
    activity_id: EntityId | None = None
    status: SerialStatus
    user_id: EntityId | None = None

# ---- Auth ----
class LoginForm(BaseModel):
    identifier: str = ""
    password: str = ""

class RegisterForm(BaseModel):
    name: str = ""
    username: str = ""
    email: str = ""
    student_code: str = ""
    birth_date: str = ""
    gender: str = ""
    phone: str = ""
    address: str = ""
    enrollment_year: str = ""
    program: str = ""
    password: str = ""
    confirm_password: str = ""

class AuthResult(BaseModel):
    user: UserRead
    home: str
    message: str | None = None

class ProfileUpdate(BaseModel):
    model_config = ConfigDict(extra="allow")
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None

class PasswordChange(BaseModel):
    current_password: str = ""
    new_password: str = ""
    confirm_password: str = ""

# ---- Public check-in ----
class CheckinForm(BaseModel):
    identifier_type: IdentifierType = IdentifierType.EMAIL
    identifier_value: str = ""
    name: str = ""
    student_code: str = ""

class CheckinPage(BaseModel):
    slug: str
    activity: ActivityRead
    form: CheckinForm = Field(default_factory=CheckinForm)

class CheckinResult(BaseModel):
    message: str
    checkin_id: EntityId | None = None
    activity_title: str | None = None
    identifier_value: str | None = None

# ---- Redemption + review ----
class RedemptionState(str, Enum):
    PENDING_REVIEW = "redeemed-pending-review"
    CREDITED = "reviewed-and-credited"

class RedeemForm(BaseModel):
    code: str = ""

class ReviewForm(BaseModel):
    fun_rating: Rating = 0
    learning_rating: Rating = 0
    organization_rating: Rating = 0
    venue_rating: Rating = 0
    overall_rating: Rating = 0
    suggestion: str | None = None

    def ratings(self) -> dict[str, int]:
        return {
            "fun_rating": self.fun_rating,
            "learning_rating": self.learning_rating,
            "organization_rating": self.organization_rating,
            "venue_rating": self.venue_rating,
            "overall_rating": self.overall_rating,
        }

class ReviewSubmit(ReviewForm):
    serial_history_id: EntityId

class ReviewTicket(BaseModel):
    serial_history_id: EntityId
    activity_title: str | None = None
    hours_awarded: float | None = None
    serial_code: str | None = None

class RedemptionOutcome(BaseModel):
    state: RedemptionState
    requires_review: bool
    ticket: ReviewTicket | None = None
    review_form: ReviewForm | None = None
    hours_earned: float | None = None
    activity_title: str | None = None
    message: str | None = None

# ---- Activities ----
class ActivityForm(BaseModel):
    title: str = ""
    description: str = ""
    activity_date: str = ""  # YYYY-MM-DD
    start_time: str = ""     # HH:MM
    end_time: str = ""
    hours_awarded: float | str = ""
    location: str = ""
    max_participants: int | str | None = None
    status: ActivityStatus = ActivityStatus.OPEN

class ActivityUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    hours_awarded: float | None = None
    location: str | None = None
    max_participants: int | None = None
    status: ActivityStatus | None = None

class QrLinks(BaseModel):
    checkin_url: str
    image_url: str
    download_url: str

class CreatedActivity(BaseModel):
    activity: ActivityRead
    qr: QrLinks | None = None
    message: str

class ActivityBoard(BaseModel):
    activities: list[ActivityRead]
    counts: dict[str, int]
    filter: str = "all"
    search: str = ""
    updated: ActivityRead | None = None
    message: str | None = None

class ActivityDetail(BaseModel):
    activity: ActivityRead
    participants: list[ParticipantRead] = Field(default_factory=list)
    qr: QrLinks | None = None

# ---- Calendar ----
class CalendarEntry(BaseModel):
    id: EntityId
    title: str
    start_date: datetime
    end_date: datetime
    hours_awarded: float = 0
    location: str | None = None

class CalendarCell(BaseModel):
    day: date
    in_month: bool
    is_today: bool
    is_selected: bool
    activities: list[CalendarEntry] = Field(default_factory=list)

class MonthRef(BaseModel):
    year: int
    month: int

class CalendarMonth(BaseModel):
    year: int
    month: int
    cells: list[CalendarCell]
    today_activities: list[CalendarEntry]
    selected_date: date
    selected_activities: list[CalendarEntry]
    prev: MonthRef
    next: MonthRef

# ---- Serials ----
class SerialSendRequest(BaseModel):
    activity_id: EntityId
    participant_id: EntityId
    method: Literal["email", "manual"] = "email"

class BulkSendRequest(BaseModel):
    method: Literal["email", "manual"] = "email"

class SerialGenerateRequest(BaseModel):
    activity_id: EntityId
    count: Annotated[int, Field(gt=0, le=500)] = 1

class SendResult(BaseModel):
    message: str
    code: str | None = None
    email_sent: bool = False
    already_exists: bool = False

class BulkSendResult(BaseModel):
    activity_id: EntityId
    total_pending: int
    success: int
    failed: int
    already_sent: int = 0  # part of success: the participant already had a serial
    codes: list[str] = Field(default_factory=list)
    message: str

class SerialBoardRow(BaseModel):
    activity: ActivityRead
    participants: list[ParticipantRead]
    pending_count: int
    sent_count: int

class SerialBoard(BaseModel):
    rows: list[SerialBoardRow]
    total_sent: int
    total_pending: int

# ---- Admin: users ----
class UserCreate(BaseModel):
    model_config = ConfigDict(extra="allow")
    name: str
    username: str
    email: str
    password: str
    role: UserRole = UserRole.STUDENT
    student_code: str | None = None

class UserUpdate(BaseModel):
    model_config = ConfigDict(extra="allow")
    name: str | None = None
    username: str | None = None
    email: str | None = None
    password: str | None = None
    role: UserRole | None = None
    student_code: str | None = None
    is_active: bool | None = None
