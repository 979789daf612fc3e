from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from family_planner import schedule
from family_planner.db_models.enums import ActivityCategory
from family_planner.permissions import CHILD_PROFILE, PARENT_PROFILE, NO_PERMISSIONS


# --- activities_on ---

def test_activities_on_includes_last_millisecond_of_day(make_activity, family_tz):
    # Arrange
    last_ms = make_activity("late", start=datetime(2024, 3, 10, 23, 59, 59, 999000, tzinfo=family_tz))
    next_midnight = make_activity("next", start=datetime(2024, 3, 11, 0, 0, 0, tzinfo=family_tz))
    midnight = make_activity("early", start=datetime(2024, 3, 10, 0, 0, 0, tzinfo=family_tz))

    # Act
    result = schedule.activities_on([last_ms, next_midnight, midnight], date(2024, 3, 10), tz=family_tz)

    # Assert
    assert [a.id for a in result] == ["late", "early"]


def test_activities_on_uses_local_day_for_utc_instants(make_activity, family_tz):
    # 23:30 UTC on the 9th is 01:30 on the 10th at UTC+2
    activity = make_activity("a1", start=datetime(2024, 3, 9, 23, 30, tzinfo=timezone.utc))

    assert schedule.activities_on([activity], date(2024, 3, 10), tz=family_tz) == [activity]
    assert schedule.activities_on([activity], date(2024, 3, 9), tz=family_tz) == []


def test_activities_on_treats_naive_times_as_local(make_activity, family_tz):
    activity = make_activity("a1", start=datetime(2024, 3, 10, 23, 59, 59, 999999))

    assert schedule.activities_on([activity], date(2024, 3, 10), tz=family_tz) == [activity]


def test_day_bounds_are_inclusive_local_range(family_tz):
    start, end = schedule.day_bounds(date(2024, 3, 10), tz=family_tz)

    assert start == datetime(2024, 3, 10, 0, 0, tzinfo=family_tz)
    assert end == datetime(2024, 3, 10, 23, 59, 59, 999000, tzinfo=family_tz)


def test_today_and_tomorrow_views(make_activity, family_tz):
    now = datetime(2024, 3, 10, 12, 0, tzinfo=family_tz)
    today = make_activity("today", start=datetime(2024, 3, 10, 18, 0, tzinfo=family_tz))
    tomorrow = make_activity("tomorrow", start=datetime(2024, 3, 11, 8, 0, tzinfo=family_tz))

    assert schedule.activities_for_today([today, tomorrow], now, tz=family_tz) == [today]
    assert schedule.activities_for_tomorrow([today, tomorrow], now, tz=family_tz) == [tomorrow]


# --- activities_strictly_after ---

def test_strictly_after_sorts_ascending_and_excludes_equal(make_activity, family_tz):
    instant = datetime(2024, 3, 10, 12, 0, tzinfo=family_tz)
    at_instant = make_activity("equal", start=instant)
    later = make_activity("later", start=instant + timedelta(hours=3))
    soon = make_activity("soon", start=instant + timedelta(minutes=5))
    earlier = make_activity("earlier", start=instant - timedelta(hours=1))

    result = schedule.activities_strictly_after([at_instant, later, soon, earlier], instant, tz=family_tz)

    assert [a.id for a in result] == ["soon", "later"]


def test_strictly_after_keeps_upstream_order_on_ties(make_activity, family_tz):
    start = datetime(2024, 3, 12, 9, 0, tzinfo=family_tz)
    first = make_activity("first", start=start)
    second = make_activity("second", start=start)
    third = make_activity("third", start=start)

    result = schedule.activities_strictly_after([second, first, third], start - timedelta(days=1), tz=family_tz)

    assert [a.id for a in result] == ["second", "first", "third"]


# --- week_of / month_grid ---

@pytest.mark.parametrize("day", [date(2024, 3, 10), date(2024, 3, 13), date(2024, 3, 16), date(2025, 1, 1)])
def test_week_of_starts_on_sunday_on_or_before(day):
    week = schedule.week_of(day)

    assert len(week) == 7
    assert week[0].weekday() == 6  # Sunday
    assert week[0] <= day <= week[-1]
    assert all(b - a == timedelta(days=1) for a, b in zip(week, week[1:]))


def test_week_of_sunday_is_its_own_start():
    assert schedule.week_of(date(2024, 3, 10))[0] == date(2024, 3, 10)


@pytest.mark.parametrize("day", [
    date(2023, 2, 14),   # 28 days
    date(2024, 2, 14),   # 29 days
    date(2024, 4, 30),   # 30 days
    date(2024, 3, 31),   # 31 days
    date(2026, 2, 1),    # 28 days starting on a Sunday
])
def test_month_grid_always_has_42_days(day):
    grid = schedule.month_grid(day)
    first = day.replace(day=1)

    assert len(grid) == 42
    assert grid[0].date.weekday() == 6
    first_cell = next(cell for cell in grid if cell.date == first)
    assert first_cell.in_current_month is True
    assert sum(cell.in_current_month for cell in grid) == (
        (first.replace(month=first.month % 12 + 1, year=first.year + first.month // 12) - first).days
    )


def test_month_grid_flags_neighbouring_days_and_today():
    grid = schedule.month_grid(date(2024, 3, 15), today=date(2024, 3, 15))

    assert grid[0].date == date(2024, 2, 25)
    assert grid[0].in_current_month is False
    assert grid[-1].date == date(2024, 4, 6)
    assert grid[-1].in_current_month is False
    assert [cell.date for cell in grid if cell.is_today] == [date(2024, 3, 15)]


def test_shift_month_clamps_day():
    assert schedule.shift_month(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert schedule.shift_month(date(2024, 1, 15), -1) == date(2023, 12, 15)
    assert schedule.shift_week(date(2024, 3, 10), -1) == date(2024, 3, 3)


def test_week_schedule_buckets_activities_by_day(make_activity, family_tz):
    monday = make_activity("mon", start=datetime(2024, 3, 11, 9, 0, tzinfo=family_tz))
    saturday = make_activity("sat", start=datetime(2024, 3, 16, 9, 0, tzinfo=family_tz))

    week = schedule.week_schedule([monday, saturday], date(2024, 3, 13), tz=family_tz)

    assert [d.date for d in week][0] == date(2024, 3, 10)
    assert [a.id for a in week[1].activities] == ["mon"]
    assert [a.id for a in week[6].activities] == ["sat"]
    assert week[0].activities == []


def test_month_schedule_marks_padding_days(make_activity, family_tz):
    padding = make_activity("feb", start=datetime(2024, 2, 26, 9, 0, tzinfo=family_tz))

    month = schedule.month_schedule([padding], date(2024, 3, 1), tz=family_tz)

    assert len(month) == 42
    assert month[1].date == date(2024, 2, 26)
    assert month[1].in_current_month is False
    assert [a.id for a in month[1].activities] == ["feb"]


# --- visibility ---

def test_visible_to_returns_everything_with_view_all(make_member, make_activity):
    parent = make_member("p1")
    activities = [make_activity("a1", assigned_to=["x"]), make_activity("a2", assigned_to=["y"])]

    assert schedule.visible_to(parent, PARENT_PROFILE, activities) == activities


def test_visible_to_child_excludes_unassigned_activity(make_member, make_activity, family_tz):
    child = make_member("c1", role="child")
    activity = make_activity("a1", start=datetime(2024, 3, 10, 9, 0, tzinfo=family_tz), assigned_to=["p1"])

    assert schedule.visible_to(child, CHILD_PROFILE, [activity]) == []


def test_visible_to_child_sees_owned_and_beneficiary_activities(make_member, make_activity):
    child = make_member("c1", role="child")
    owned = make_activity("owned", assigned_to=["c1"])
    for_me = make_activity("for-me", assigned_to=["p1"], assigned_children=["c1"])
    other = make_activity("other", assigned_to=["p1"], assigned_children=["c2"])

    result = schedule.visible_to(child, CHILD_PROFILE, [owned, for_me, other])

    assert [a.id for a in result] == ["owned", "for-me"]
    assert all(child.id in a.assigned_to or child.id in a.assigned_children for a in result)


def test_visible_to_without_identity_is_empty(make_activity):
    assert schedule.visible_to(None, NO_PERMISSIONS, [make_activity()]) == []


# --- display helpers ---

def test_cap_activities_reports_remainder(make_activity):
    activities = [make_activity(f"a{i}") for i in range(6)]

    capped = schedule.cap_activities(activities, 4)

    assert [a.id for a in capped.shown] == ["a0", "a1", "a2", "a3"]
    assert capped.remaining == 2
    assert capped.has_more


def test_cap_activities_under_limit(make_activity):
    capped = schedule.cap_activities([make_activity()], 3)

    assert len(capped.shown) == 1
    assert capped.remaining == 0
    assert not capped.has_more


def test_filter_activities_by_search_category_and_completion(make_activity):
    soccer = make_activity("a1", title="Soccer practice", category=ActivityCategory.sports)
    dentist = make_activity("a2", title="Checkup", description="Dentist visit", category=ActivityCategory.health,
                            completed=True)
    homework = make_activity("a3", title="Homework", category=ActivityCategory.school)
    activities = [soccer, dentist, homework]

    assert schedule.filter_activities(activities, search="DENTIST") == [dentist]
    assert schedule.filter_activities(activities, category=ActivityCategory.sports) == [soccer]
    assert schedule.filter_activities(activities, show_completed=False) == [soccer, homework]
    assert schedule.filter_activities(activities) == activities


def test_daily_stats_rounds_half_up(make_activity, family_tz):
    now = datetime(2024, 3, 10, 8, 0, tzinfo=family_tz)
    activities = [
        make_activity(f"a{i}", start=datetime(2024, 3, 10, 9, i, tzinfo=family_tz), completed=(i == 0))
        for i in range(8)
    ]

    stats = schedule.daily_stats(activities, now, tz=family_tz)

    assert stats.total == 8
    assert stats.completed == 1
    assert stats.pending == 7
    assert stats.completion_rate == 13


def test_daily_stats_empty_day(family_tz):
    assert schedule.daily_stats([], datetime(2024, 3, 10, tzinfo=family_tz), tz=family_tz).completion_rate == 0


def test_member_stats_counts_owner_and_beneficiary(make_member, make_activity):
    child = make_member("c1", role="child")
    activities = [
        make_activity("a1", assigned_to=["c1"], completed=True),
        make_activity("a2", assigned_to=["p1"], assigned_children=["c1"]),
        make_activity("a3", assigned_to=["p1"]),
    ]

    stats = schedule.member_stats(child, activities)

    assert (stats.total, stats.completed, stats.pending) == (2, 1, 1)


def test_resolve_members_drops_dangling_ids(make_member):
    members = [make_member("p1"), make_member("c1", role="child")]

    resolved = schedule.resolve_members(["c1", "deleted-member", "p1"], members)

    assert [m.id for m in resolved] == ["p1", "c1"]


def test_split_by_role(make_member):
    members = [make_member("p1"), make_member("c1", role="child"), make_member("g1", role="caregiver")]

    parents, children = schedule.split_by_role(members)

    assert [m.id for m in parents] == ["p1"]
    assert [m.id for m in children] == ["c1"]


def test_week_schedule_caps_each_cell(make_activity, family_tz):
    busy_day = [make_activity(f"a{i}", start=datetime(2024, 3, 12, 8 + i, 0, tzinfo=family_tz)) for i in range(6)]

    week = schedule.week_schedule(busy_day, date(2024, 3, 12), tz=family_tz, limit=4)

    tuesday = week[2]
    assert [a.id for a in tuesday.activities] == ["a0", "a1", "a2", "a3"]
    assert tuesday.remaining == 2
    assert week[0].remaining == 0


# --- daylight saving ---

@pytest.fixture
def host_in_new_york(monkeypatch):
    zone = ZoneInfo("America/New_York")
    monkeypatch.setattr(schedule, "FAMILY_TIMEZONE", "")
    monkeypatch.setattr(schedule, "get_localzone", lambda: zone)
    return zone


def test_local_zone_uses_host_zone_rules(host_in_new_york):
    zone = schedule.local_zone()

    assert datetime(2026, 12, 10, 12, 0, tzinfo=zone).utcoffset() == timedelta(hours=-5)
    assert datetime(2026, 7, 10, 12, 0, tzinfo=zone).utcoffset() == timedelta(hours=-4)


def test_local_zone_prefers_configured_name(monkeypatch):
    monkeypatch.setattr(schedule, "FAMILY_TIMEZONE", "Europe/Berlin")

    assert schedule.local_zone() == ZoneInfo("Europe/Berlin")
    assert schedule.local_zone("Asia/Tokyo") == ZoneInfo("Asia/Tokyo")


def test_late_activities_stay_on_their_day_in_winter_and_summer(make_activity, host_in_new_york):
    utc = timezone.utc
    # 23:30 in New York, stored as UTC instants
    winter = make_activity("w", start=datetime(2026, 12, 11, 4, 30, tzinfo=utc))
    summer = make_activity("s", start=datetime(2026, 7, 11, 3, 30, tzinfo=utc))

    assert schedule.activities_on([winter, summer], date(2026, 12, 10)) == [winter]
    assert schedule.activities_on([winter, summer], date(2026, 7, 10)) == [summer]
    assert schedule.activities_on([winter, summer], date(2026, 12, 11)) == []
