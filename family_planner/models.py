from datetime import date as DateObject, datetime
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field

from family_planner.db_models.enums import UserRole, ActivityCategory, RecurrenceType, Priority

TIME_OF_DAY_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"
OPTIONAL_TIME_OF_DAY_PATTERN = r"^(([01]\d|2[0-3]):[0-5]\d)?$"


# --- Entities ---

class Member(BaseModel):
    id: str
    name: str
    role: UserRole
    avatar: Optional[str] = None
    color: str = ""

    class Config:
        from_attributes = True


class Activity(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    category: ActivityCategory = ActivityCategory.personal
    start_time: datetime
    end_time: Optional[datetime] = None  # not enforced >= start_time
    recurrence: RecurrenceType = RecurrenceType.once  # label only, never expanded
    assigned_to: List[str] = Field(default_factory=list)
    assigned_children: List[str] = Field(default_factory=list)
    location: Optional[str] = None
    notes: Optional[str] = None
    priority: Priority = Priority.medium
    completed: bool = False
    created_by: Optional[str] = None  # may reference a deleted member

    class Config:
        from_attributes = True

    def involves(self, member_id: str) -> bool:
        """True when the member is an owner or a beneficiary of this activity."""
        return member_id in self.assigned_to or member_id in self.assigned_children


# --- Store payloads ---

class MemberCreate(BaseModel):
    name: str
    role: UserRole
    avatar: Optional[str] = None
    color: str = ""


class MemberUpdate(BaseModel):
    name: Optional[str] = None
    role: Optional[UserRole] = None
    avatar: Optional[str] = None
    color: Optional[str] = None


class ActivityCreate(BaseModel):
    title: str
    description: Optional[str] = None
    category: ActivityCategory = ActivityCategory.personal
    start_time: datetime
    end_time: Optional[datetime] = None
    recurrence: RecurrenceType = RecurrenceType.once
    assigned_to: List[str] = Field(default_factory=list)
    assigned_children: List[str] = Field(default_factory=list)
    location: Optional[str] = None
    notes: Optional[str] = None
    priority: Priority = Priority.medium
    completed: bool = False
    created_by: Optional[str] = None


class ActivityUpdate(BaseModel):
    """Partial update. Only fields that were explicitly set are sent to the gateway."""
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[ActivityCategory] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    recurrence: Optional[RecurrenceType] = None
    assigned_to: Optional[List[str]] = None
    assigned_children: Optional[List[str]] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    priority: Optional[Priority] = None
    completed: Optional[bool] = None


# --- Forms (UI shaped) ---

class ActivityForm(BaseModel):
    title: str = Field(..., min_length=1, max_length=100, title="Title",
                       examples=["Soccer Practice", "Doctor's Appointment"])
    description: Optional[str] = Field(None, max_length=500)
    category: ActivityCategory = ActivityCategory.home
    date: DateObject
    start_time: str = Field("09:00", pattern=TIME_OF_DAY_PATTERN, description="Start time as HH:MM")
    end_time: Optional[str] = Field(None, pattern=OPTIONAL_TIME_OF_DAY_PATTERN,
                                    description="End time as HH:MM, blank for none")
    recurrence: RecurrenceType = RecurrenceType.once
    assigned_to: List[str] = Field(..., min_length=1, description="Assign to at least one person")
    assigned_children: List[str] = Field(default_factory=list)
    location: Optional[str] = Field(None, max_length=200)
    priority: Priority = Priority.medium
    notes: Optional[str] = Field(None, max_length=500)


class ActivityEditForm(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    category: Optional[ActivityCategory] = None
    date: Optional[DateObject] = None
    start_time: Optional[str] = Field(None, pattern=TIME_OF_DAY_PATTERN)
    end_time: Optional[str] = Field(None, pattern=OPTIONAL_TIME_OF_DAY_PATTERN)
    recurrence: Optional[RecurrenceType] = None
    assigned_to: Optional[List[str]] = Field(None, min_length=1)
    assigned_children: Optional[List[str]] = None
    location: Optional[str] = Field(None, max_length=200)
    priority: Optional[Priority] = None
    notes: Optional[str] = Field(None, max_length=500)
    completed: Optional[bool] = None


class MemberForm(BaseModel):
    name: str = Field(..., min_length=1)
    role: UserRole
    avatar: Optional[str] = None
    color: Optional[str] = None


class MemberEditForm(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    role: Optional[UserRole] = None
    avatar: Optional[str] = None
    color: Optional[str] = None


class MemberDraft(BaseModel):
    name: str = ""
    role: UserRole = UserRole.parent
    avatar: Optional[str] = None
    color: Optional[str] = None


# --- Derived views ---

class PermissionSet(BaseModel):
    model_config = ConfigDict(frozen=True)

    can_create_activity: bool = False
    can_edit_activity: bool = False
    can_delete_activity: bool = False
    can_manage_members: bool = False
    can_assign_tasks: bool = False
    can_view_all_activities: bool = False
    can_complete_own_tasks: bool = False


class CalendarDay(BaseModel):
    date: DateObject
    in_current_month: bool = True
    is_today: bool = False


class DaySchedule(BaseModel):
    date: DateObject
    in_current_month: bool = True
    activities: List[Activity] = Field(default_factory=list)
    remaining: int = 0  # activities beyond the cell limit


class CappedActivities(BaseModel):
    shown: List[Activity] = Field(default_factory=list)
    remaining: int = 0  # rendered as "+N more"

    @property
    def has_more(self) -> bool:
        return self.remaining > 0


class DailyStats(BaseModel):
    total: int = 0
    completed: int = 0
    pending: int = 0
    completion_rate: int = 0  # rounded percentage


class MemberStats(BaseModel):
    total: int = 0
    completed: int = 0
    pending: int = 0
