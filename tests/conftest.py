from datetime import datetime, timedelta, timezone

import pytest

from family_planner.models import Activity, Member
from family_planner.preferences import InMemoryPreferenceStore

# A fixed non-UTC zone so local-day logic is actually exercised
FAMILY_TZ = timezone(timedelta(hours=2))


@pytest.fixture
def family_tz():
    return FAMILY_TZ


@pytest.fixture
def make_member():
    def _make(member_id="p1", role="parent", name=None, avatar=None, color=""):
        return Member(id=member_id, name=name or member_id.upper(), role=role, avatar=avatar, color=color)
    return _make


@pytest.fixture
def make_activity():
    def _make(activity_id="a1", start=None, assigned_to=None, assigned_children=None, **fields):
        return Activity(
            id=activity_id,
            title=fields.pop("title", f"Activity {activity_id}"),
            start_time=start or datetime(2024, 3, 10, 9, 0, tzinfo=FAMILY_TZ),
            assigned_to=assigned_to if assigned_to is not None else ["p1"],
            assigned_children=assigned_children or [],
            **fields,
        )
    return _make


@pytest.fixture
def preferences():
    return InMemoryPreferenceStore()
