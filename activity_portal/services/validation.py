from __future__ import annotations
import re
from datetime import time

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]{3,50}$")
CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{1,2})$")


class FormError(ValueError):
    """A form failed local validation; the message is shown to the user as-is."""

    @property
    def message(self) -> str:
        return str(self)


def is_email(value: str) -> bool:
    return bool(EMAIL_RE.match(value or ""))

def is_username(value: str) -> bool:
    return bool(USERNAME_RE.match(value or ""))

def require(value: str | None, message: str) -> str:
    text = (value or "").strip()
    if not text:
        raise FormError(message)
    return text


def parse_clock(value: str, *, hour_msg: str, minute_msg: str) -> time:
    m = CLOCK_RE.match((value or "").strip())
    if not m:
        raise FormError(hour_msg)
    hour, minute = int(m.group(1)), int(m.group(2))
    if not 0 <= hour <= 23:
        raise FormError(hour_msg)
    if not 0 <= minute <= 59:
        raise FormError(minute_msg)
    return time(hour, minute)


def validate_time_range(start: str, end: str) -> tuple[time, time]:
    starts = parse_clock(
        start,
        hour_msg="ชั่วโมงเริ่มต้นต้องอยู่ระหว่าง 00-23",
        minute_msg="นาทีเริ่มต้นต้องอยู่ระหว่าง 00-59",
    )
    ends = parse_clock(
        end,
        hour_msg="ชั่วโมงสิ้นสุดต้องอยู่ระหว่าง 00-23",
        minute_msg="นาทีสิ้นสุดต้องอยู่ระหว่าง 00-59",
    )
    if ends <= starts:
        raise FormError("เวลาสิ้นสุดต้องมากกว่าเวลาเริ่มต้น")
    return starts, ends
