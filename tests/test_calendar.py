from datetime import date
from zoneinfo import ZoneInfo

import pytest

from activity_portal.schemas import ActivityRead
from activity_portal.services.calendar import MAX_YEAR, MIN_YEAR, activities_on, build_month, month_grid, shift_month

from conftest import activity

BKK = ZoneInfo("Asia/Bangkok")


@pytest.mark.parametrize("year,month", [(2026, 2), (2026, 3), (2026, 11), (2025, 6), (2024, 9)])
def test_grid_is_42_days_from_sunday(year, month):
    cells = month_grid(year, month)
    assert len(cells) == 42
    assert cells[0].weekday() == 6  # Sunday
    assert cells[0] <= date(year, month, 1)
    assert (date(year, month, 1) - cells[0]).days < 7


def test_month_starting_on_sunday_has_no_leading_days():
    # 1 March 2026 is a Sunday
    assert month_grid(2026, 3)[0] == date(2026, 3, 1)


def test_multi_day_activity_inclusive():
    a = ActivityRead.model_validate(activity(1, start_date="2026-10-20T09:00:00", end_date="2026-10-22T08:00:00"))
    assert activities_on(date(2026, 10, 19), [a], BKK) == []
    assert len(activities_on(date(2026, 10, 20), [a], BKK)) == 1
    assert len(activities_on(date(2026, 10, 22), [a], BKK)) == 1
    assert activities_on(date(2026, 10, 23), [a], BKK) == []


def test_utc_timestamp_lands_on_local_day():
    # 20:00 UTC on the 20th is 03:00 on the 21st in Bangkok
    a = ActivityRead.model_validate(activity(1, start_date="2026-10-20T20:00:00Z", end_date="2026-10-20T22:00:00Z"))
    assert activities_on(date(2026, 10, 20), [a], BKK) == []
    assert len(activities_on(date(2026, 10, 21), [a], BKK)) == 1


def test_navigation_wraps_years():
    assert shift_month(2026, 1, -1).model_dump() == {"year": 2025, "month": 12}
    assert shift_month(2026, 12, 1).model_dump() == {"year": 2027, "month": 1}


def test_build_month_marks_today_and_selection():
    a = ActivityRead.model_validate(activity(1))
    m = build_month(2026, 10, [a], tz=BKK, today=date(2026, 10, 19), selected=date(2026, 10, 20))
    today = [c for c in m.cells if c.is_today]
    assert [c.day for c in today] == [date(2026, 10, 19)]
    assert [e.id for e in m.selected_activities] == [1]
    assert m.today_activities == []
    assert sum(1 for c in m.cells if c.in_month) == 31


def test_calendar_route(client, upstream):
    upstream.ok("GET", "/activities", {"activities": [activity(1)]})
    r = client.get("/calendar", params={"year": 2026, "month": 10, "selected": "2026-10-20"})
    assert r.status_code == 200
    body = r.json()
    assert len(body["cells"]) == 42
    assert body["selected_activities"][0]["title"] == "Beach cleanup"


@pytest.mark.parametrize("year,month", [(1, 1), (9999, 12)])
def test_calendar_route_rejects_undrawable_years(client, upstream, year, month):
    r = client.get("/calendar", params={"year": year, "month": month})
    assert r.status_code == 422
    assert upstream.calls == []


@pytest.mark.parametrize("year,month", [(MIN_YEAR, 1), (MAX_YEAR, 12)])
def test_outermost_drawable_months(year, month):
    assert len(month_grid(year, month)) == 42
    m = build_month(year, month, [], tz=BKK, today=date(2026, 10, 19))
    assert len(m.cells) == 42
