from datetime import date as DateObject, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from family_planner import schedule
from family_planner.config import COMPACT_DAY_LIMIT, WEEK_CELL_LIMIT
from family_planner.db_models.enums import ActivityCategory
from family_planner.dependencies import get_loaded_planner
from family_planner.errors import FamilyPlannerError, NotFound, PermissionDenied, RemoteFailure, ValidationError
from family_planner.models import (
    Activity, ActivityEditForm, ActivityForm, CappedActivities, DailyStats, DaySchedule,
    Member, MemberDraft, MemberEditForm, MemberForm, MemberStats, PermissionSet,
)
from family_planner.planner import FamilyPlanner

router = APIRouter(prefix="/api", tags=["api"])


class ActiveMemberResponse(BaseModel):
    member: Optional[Member] = None
    permissions: PermissionSet


class ActiveMemberRequest(BaseModel):
    member_id: str


class MemberSummary(BaseModel):
    member: Member
    stats: MemberStats


class LoadStatus(BaseModel):
    ok: bool
    errors: List[str] = []


def http_error(e: FamilyPlannerError) -> HTTPException:
    if isinstance(e, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if isinstance(e, PermissionDenied):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    if isinstance(e, NotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, RemoteFailure):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@router.get("/healthz", status_code=status.HTTP_200_OK)
async def healthcheck():
    """API endpoint for health check."""
    return {"status": "ok"}


@router.post("/reload", response_model=LoadStatus)
async def reload_snapshot(planner: FamilyPlanner = Depends(get_loaded_planner)):
    """Refetch members and activities; failures are reported, not raised."""
    ok = await planner.load_all()
    return LoadStatus(ok=ok, errors=planner.errors)


# --- members ---

@router.get("/members", response_model=List[MemberSummary])
async def list_members(planner: FamilyPlanner = Depends(get_loaded_planner)):
    activities = planner.activities.list()
    return [MemberSummary(member=m, stats=schedule.member_stats(m, activities)) for m in planner.members.list()]


@router.post("/members", response_model=Member, status_code=status.HTTP_201_CREATED)
async def add_member(form: MemberForm, planner: FamilyPlanner = Depends(get_loaded_planner)):
    try:
        return await planner.add_member(form)
    except FamilyPlannerError as e:
        raise http_error(e)


@router.patch("/members/{member_id}", response_model=Member)
async def update_member(member_id: str, form: MemberEditForm, planner: FamilyPlanner = Depends(get_loaded_planner)):
    try:
        return await planner.update_member(member_id, form)
    except FamilyPlannerError as e:
        raise http_error(e)


@router.delete("/members/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(member_id: str, planner: FamilyPlanner = Depends(get_loaded_planner)):
    try:
        await planner.remove_member(member_id)
    except FamilyPlannerError as e:
        raise http_error(e)


@router.post("/onboarding", response_model=List[Member], status_code=status.HTTP_201_CREATED)
async def onboard(drafts: List[MemberDraft], planner: FamilyPlanner = Depends(get_loaded_planner)):
    try:
        return await planner.onboard(drafts)
    except FamilyPlannerError as e:
        raise http_error(e)


# --- active member ---

@router.get("/active-member", response_model=ActiveMemberResponse)
async def get_active_member(planner: FamilyPlanner = Depends(get_loaded_planner)):
    return ActiveMemberResponse(member=planner.active_member, permissions=planner.permissions)


@router.put("/active-member", response_model=ActiveMemberResponse)
async def set_active_member(request: ActiveMemberRequest, planner: FamilyPlanner = Depends(get_loaded_planner)):
    try:
        planner.switch_member(request.member_id)
    except FamilyPlannerError as e:
        raise http_error(e)
    return ActiveMemberResponse(member=planner.active_member, permissions=planner.permissions)


@router.get("/permissions", response_model=PermissionSet)
async def get_permissions(planner: FamilyPlanner = Depends(get_loaded_planner)):
    return planner.permissions


# --- activity views ---

@router.get("/activities", response_model=List[Activity])
async def list_activities(
        search: str = "",
        category: Optional[ActivityCategory] = None,
        show_completed: bool = True,
        planner: FamilyPlanner = Depends(get_loaded_planner)
):
    """Activities visible to the active member, optionally filtered."""
    return schedule.filter_activities(planner.visible_activities(), search, category, show_completed)


@router.get("/activities/today", response_model=List[Activity])
async def today_activities(planner: FamilyPlanner = Depends(get_loaded_planner)):
    return schedule.activities_for_today(planner.visible_activities(), tz=planner.tz)


@router.get("/activities/tomorrow", response_model=CappedActivities)
async def tomorrow_activities(planner: FamilyPlanner = Depends(get_loaded_planner)):
    tomorrow = schedule.activities_for_tomorrow(planner.visible_activities(), tz=planner.tz)
    return schedule.cap_activities(tomorrow, COMPACT_DAY_LIMIT)


@router.get("/activities/upcoming", response_model=List[Activity])
async def upcoming_activities(planner: FamilyPlanner = Depends(get_loaded_planner)):
    return schedule.activities_strictly_after(planner.visible_activities(), datetime.now(planner.tz), tz=planner.tz)


@router.get("/calendar/week", response_model=List[DaySchedule])
async def calendar_week(day: Optional[DateObject] = None, planner: FamilyPlanner = Depends(get_loaded_planner)):
    day = day or datetime.now(planner.tz).date()
    return schedule.week_schedule(planner.visible_activities(), day, tz=planner.tz, limit=WEEK_CELL_LIMIT)


@router.get("/calendar/month", response_model=List[DaySchedule])
async def calendar_month(day: Optional[DateObject] = None, planner: FamilyPlanner = Depends(get_loaded_planner)):
    day = day or datetime.now(planner.tz).date()
    return schedule.month_schedule(planner.visible_activities(), day, tz=planner.tz)


@router.get("/stats/today", response_model=DailyStats)
async def stats_today(planner: FamilyPlanner = Depends(get_loaded_planner)):
    return schedule.daily_stats(planner.visible_activities(), tz=planner.tz)


# --- activity intents ---

@router.post("/activities", response_model=Activity, status_code=status.HTTP_201_CREATED)
async def create_activity(form: ActivityForm, planner: FamilyPlanner = Depends(get_loaded_planner)):
    try:
        return await planner.create_activity(form)
    except FamilyPlannerError as e:
        raise http_error(e)


@router.patch("/activities/{activity_id}", response_model=Activity)
async def edit_activity(activity_id: str, form: ActivityEditForm,
                        planner: FamilyPlanner = Depends(get_loaded_planner)):
    try:
        return await planner.edit_activity(activity_id, form)
    except FamilyPlannerError as e:
        raise http_error(e)


@router.post("/activities/{activity_id}/toggle", response_model=Activity)
async def toggle_activity(activity_id: str, planner: FamilyPlanner = Depends(get_loaded_planner)):
    try:
        activity = await planner.toggle(activity_id)
    except FamilyPlannerError as e:
        raise http_error(e)
    if activity is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Activity not found")
    return activity


@router.delete("/activities/{activity_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_activity(activity_id: str, planner: FamilyPlanner = Depends(get_loaded_planner)):
    try:
        await planner.delete_activity(activity_id)
    except FamilyPlannerError as e:
        raise http_error(e)
