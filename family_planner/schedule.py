"""Time-windowed views over a flat activity list.

Everything here is pure: functions take the activity sequence (usually the
store snapshot) and return new lists. Output order follows the input order
unless a function says it sorts, and sorting is always stable so activities
sharing a start time keep their upstream order.

"Local time" is the family's configured zone (``FAMILY_TIMEZONE``) or the
host zone. Naive datetimes are read as local wall-clock time.
"""
import calendar
from datetime import date as DateObject, datetime, time, timedelta, timezone, tzinfo
from typing import Iterable, List, Optional, Sequence, Tuple, Union
from zoneinfo import ZoneInfo

from tzlocal import get_localzone

from family_planner.config import FAMILY_TIMEZONE
from family_planner.db_models.enums import ActivityCategory, UserRole
from family_planner.models import (
    Activity, Member, PermissionSet, CalendarDay, DaySchedule, CappedActivities, DailyStats, MemberStats,
)

DAYS_PER_WEEK = 7
MONTH_GRID_DAYS = 42
END_OF_DAY = time(23, 59, 59, 999000)

DayLike = Union[DateObject, datetime]


def local_zone(name: Optional[str] = None) -> tzinfo:
    """The named IANA zone, else the host zone with its daylight-saving rules."""
    name = FAMILY_TIMEZONE if name is None else name
    if name:
        return ZoneInfo(name)
    return get_localzone()


def to_local(instant: datetime, tz: Optional[tzinfo] = None) -> datetime:
    tz = tz or local_zone()
    if instant.tzinfo is None:
        return instant.replace(tzinfo=tz)
    return instant.astimezone(tz)


def _to_utc(instant: datetime, tz: Optional[tzinfo] = None) -> datetime:
    return to_local(instant, tz).astimezone(timezone.utc)


def _as_date(day: DayLike, tz: Optional[tzinfo] = None) -> DateObject:
    if isinstance(day, datetime):
        return to_local(day, tz).date()
    return day


def _truncate_to_millis(instant: datetime) -> datetime:
    return instant.replace(microsecond=instant.microsecond // 1000 * 1000)


def _now(now: Optional[datetime], tz: tzinfo) -> datetime:
    return to_local(now, tz) if now is not None else datetime.now(tz)


# --- day windows ---

def day_bounds(day: DayLike, tz: Optional[tzinfo] = None) -> Tuple[datetime, datetime]:
    """Inclusive ``(00:00:00.000, 23:59:59.999)`` local bounds of a calendar day."""
    tz = tz or local_zone()
    day = _as_date(day, tz)
    return datetime.combine(day, time.min, tzinfo=tz), datetime.combine(day, END_OF_DAY, tzinfo=tz)


def activities_on(activities: Iterable[Activity], day: DayLike, tz: Optional[tzinfo] = None) -> List[Activity]:
    tz = tz or local_zone()
    start, end = day_bounds(day, tz)
    # instants are compared at millisecond resolution so the inclusive end covers the whole last millisecond
    return [a for a in activities if start <= _truncate_to_millis(to_local(a.start_time, tz)) <= end]


def activities_for_today(activities: Iterable[Activity], now: Optional[datetime] = None,
                         tz: Optional[tzinfo] = None) -> List[Activity]:
    tz = tz or local_zone()
    return activities_on(activities, _now(now, tz).date(), tz)


def activities_for_tomorrow(activities: Iterable[Activity], now: Optional[datetime] = None,
                            tz: Optional[tzinfo] = None) -> List[Activity]:
    tz = tz or local_zone()
    return activities_on(activities, _now(now, tz).date() + timedelta(days=1), tz)


def activities_strictly_after(activities: Iterable[Activity], instant: datetime,
                              tz: Optional[tzinfo] = None) -> List[Activity]:
    """Activities starting after ``instant``, earliest first."""
    threshold = _to_utc(instant, tz)
    later = [a for a in activities if _to_utc(a.start_time, tz) > threshold]
    return sorted(later, key=lambda a: _to_utc(a.start_time, tz))


# --- calendar grids ---

def week_start(day: DayLike, tz: Optional[tzinfo] = None) -> DateObject:
    """The Sunday on or before ``day``."""
    day = _as_date(day, tz)
    # date.weekday() is Monday=0; shift so Sunday=0
    return day - timedelta(days=(day.weekday() + 1) % DAYS_PER_WEEK)


def week_of(day: DayLike, tz: Optional[tzinfo] = None) -> List[DateObject]:
    start = week_start(day, tz)
    return [start + timedelta(days=offset) for offset in range(DAYS_PER_WEEK)]


def month_grid(day: DayLike, today: Optional[DateObject] = None, tz: Optional[tzinfo] = None) -> List[CalendarDay]:
    """Six full weeks covering ``day``'s month, padded with neighbouring days."""
    day = _as_date(day, tz)
    first = day.replace(day=1)
    start = week_start(first)
    cells = []
    for offset in range(MONTH_GRID_DAYS):
        current = start + timedelta(days=offset)
        cells.append(CalendarDay(
            date=current,
            in_current_month=(current.year, current.month) == (first.year, first.month),
            is_today=today is not None and current == today,
        ))
    return cells


def shift_week(day: DayLike, weeks: int = 1, tz: Optional[tzinfo] = None) -> DateObject:
    return _as_date(day, tz) + timedelta(days=DAYS_PER_WEEK * weeks)


def shift_month(day: DayLike, months: int = 1, tz: Optional[tzinfo] = None) -> DateObject:
    day = _as_date(day, tz)
    month_index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return DateObject(year, month, min(day.day, last_day))


def _day_schedule(activities: Sequence[Activity], day: DateObject, tz: tzinfo, limit: Optional[int],
                  in_current_month: bool = True) -> DaySchedule:
    on_day = activities_on(activities, day, tz)
    if limit is None:
        return DaySchedule(date=day, in_current_month=in_current_month, activities=on_day)
    capped = cap_activities(on_day, limit)
    return DaySchedule(date=day, in_current_month=in_current_month, activities=capped.shown,
                       remaining=capped.remaining)


def week_schedule(activities: Sequence[Activity], day: DayLike, tz: Optional[tzinfo] = None,
                  limit: Optional[int] = None) -> List[DaySchedule]:
    """One cell per day of the week; ``limit`` caps each cell and counts the rest."""
    tz = tz or local_zone()
    return [_day_schedule(activities, d, tz, limit) for d in week_of(day, tz)]


def month_schedule(activities: Sequence[Activity], day: DayLike, tz: Optional[tzinfo] = None,
                   limit: Optional[int] = None) -> List[DaySchedule]:
    tz = tz or local_zone()
    return [_day_schedule(activities, cell.date, tz, limit, cell.in_current_month) for cell in month_grid(day, tz=tz)]


# --- visibility and display policy ---

def visible_to(identity: Optional[Member], permissions: PermissionSet,
               activities: Iterable[Activity]) -> List[Activity]:
    if permissions.can_view_all_activities:
        return list(activities)
    if identity is None:
        return []
    return [a for a in activities if a.involves(identity.id)]


def cap_activities(activities: Sequence[Activity], limit: int) -> CappedActivities:
    """First ``limit`` activities plus a count of the rest, for "+N more" displays."""
    activities = list(activities)
    return CappedActivities(shown=activities[:limit], remaining=max(0, len(activities) - limit))


def filter_activities(activities: Iterable[Activity], search: str = "",
                      category: Optional[ActivityCategory] = None,
                      show_completed: bool = True) -> List[Activity]:
    query = (search or "").lower()
    result = []
    for activity in activities:
        matches_search = query in activity.title.lower() or (
            activity.description is not None and query in activity.description.lower()
        )
        matches_category = category is None or activity.category == category
        matches_completed = show_completed or not activity.completed
        if matches_search and matches_category and matches_completed:
            result.append(activity)
    return result


# --- summaries ---

def daily_stats(activities: Iterable[Activity], now: Optional[datetime] = None,
                tz: Optional[tzinfo] = None) -> DailyStats:
    today = activities_for_today(activities, now, tz)
    completed = sum(1 for a in today if a.completed)
    total = len(today)
    return DailyStats(
        total=total,
        completed=completed,
        pending=total - completed,
        # half-up rounding, not round()'s half-to-even
        completion_rate=int(completed * 100 / total + 0.5) if total else 0,
    )


def member_stats(member: Union[Member, str], activities: Iterable[Activity]) -> MemberStats:
    member_id = member.id if isinstance(member, Member) else member
    mine = [a for a in activities if a.involves(member_id)]
    completed = sum(1 for a in mine if a.completed)
    return MemberStats(total=len(mine), completed=completed, pending=len(mine) - completed)


def resolve_members(member_ids: Iterable[str], members: Sequence[Member]) -> List[Member]:
    """Members for the given ids in family order; ids with no member are dropped."""
    wanted = set(member_ids)
    return [m for m in members if m.id in wanted]


def split_by_role(members: Sequence[Member]) -> Tuple[List[Member], List[Member]]:
    parents = [m for m in members if m.role == UserRole.parent]
    children = [m for m in members if m.role == UserRole.child]
    return parents, children
