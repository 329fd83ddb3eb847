from __future__ import annotations
from datetime import date, datetime, timedelta
from typing import Iterable
from zoneinfo import ZoneInfo

from ..schemas import ActivityRead, CalendarCell, CalendarEntry, CalendarMonth, MonthRef

GRID_CELLS = 42  # six weeks
# the grid spills into neighbouring months, so the outermost years cannot be drawn
MIN_YEAR = date.min.year + 1
MAX_YEAR = date.max.year - 1

def _local_day(dt: datetime, tz: ZoneInfo) -> date:
    # naive timestamps are taken as already local
    return dt.astimezone(tz).date() if dt.tzinfo else dt.date()

def grid_start(year: int, month: int) -> date:
    """Sunday on or before the 1st of the month."""
    first = date(year, month, 1)
    return first - timedelta(days=(first.weekday() + 1) % 7)

def month_grid(year: int, month: int) -> list[date]:
    start = grid_start(year, month)
    return [start + timedelta(days=i) for i in range(GRID_CELLS)]

def shift_month(year: int, month: int, delta: int) -> MonthRef:
    idx = year * 12 + (month - 1) + delta
    return MonthRef(year=idx // 12, month=idx % 12 + 1)

def to_entry(a: ActivityRead) -> CalendarEntry:
    return CalendarEntry(
        id=a.id,
        title=a.title,
        start_date=a.start_date,
        end_date=a.end_date,
        hours_awarded=a.hours_awarded,
        location=a.location,
    )

def activities_on(day: date, activities: Iterable[ActivityRead], tz: ZoneInfo) -> list[CalendarEntry]:
    out = []
    for a in activities:
        if _local_day(a.start_date, tz) <= day <= _local_day(a.end_date, tz):
            out.append(to_entry(a))
    return out

def build_month(
    year: int,
    month: int,
    activities: list[ActivityRead],
    *,
    tz: ZoneInfo,
    today: date | None = None,
    selected: date | None = None,
) -> CalendarMonth:
    today = today or datetime.now(tz).date()
    selected = selected or today
    cells = [
        CalendarCell(
            day=d,
            in_month=d.month == month,
            is_today=d == today,
            is_selected=d == selected,
            activities=activities_on(d, activities, tz),
        )
        for d in month_grid(year, month)
    ]
    return CalendarMonth(
        year=year,
        month=month,
        cells=cells,
        today_activities=activities_on(today, activities, tz),
        selected_date=selected,
        selected_activities=activities_on(selected, activities, tz),
        prev=shift_month(year, month, -1),
        next=shift_month(year, month, 1),
    )
