# services.py
import logging
from datetime import date as DateObject, datetime, time, tzinfo
from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError as PydanticValidationError

from family_planner.config import PARENT_COLOR, CHILD_COLOR
from family_planner.db_models.enums import UserRole
from family_planner.errors import NotFound, PermissionDenied, ValidationError
from family_planner.models import (
    Activity, ActivityCreate, ActivityEditForm, ActivityForm, ActivityUpdate,
    Member, MemberCreate, MemberDraft, MemberEditForm, MemberForm, MemberUpdate, PermissionSet,
)
from family_planner.schedule import local_zone, to_local
from family_planner.store import ActivityStore, MemberStore

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=BaseModel)

FormInput = Union[BaseModel, Dict[str, Any]]


def parse_form(model: Type[F], data: FormInput) -> F:
    """Validate UI form data, turning pydantic errors into ValidationError."""
    if isinstance(data, model):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'form'}: {err['msg']}" for err in e.errors()
        )
        raise ValidationError(details) from e


def parse_time_of_day(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def combine_date_time(day: DateObject, time_of_day: Union[str, time], tz: tzinfo) -> datetime:
    if isinstance(time_of_day, str):
        time_of_day = parse_time_of_day(time_of_day)
    return datetime.combine(day, time_of_day, tzinfo=tz)


def default_color(role: UserRole) -> str:
    return PARENT_COLOR if role == UserRole.parent else CHILD_COLOR


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    return value if value else None


class MutationCoordinator:
    """Gates UI intents on the acting member's permissions and forwards them to the stores."""

    # Fields that cannot be cleared from the edit form
    _required_activity_fields = ("title", "category", "recurrence", "priority", "assigned_to",
                                 "assigned_children", "completed")
    _clearable_activity_fields = ("description", "location", "notes")
    _clearable_member_fields = ("avatar",)

    def __init__(self, member_store: MemberStore, activity_store: ActivityStore, tz: Optional[tzinfo] = None):
        self.member_store = member_store
        self.activity_store = activity_store
        self.tz = tz or local_zone()

    @staticmethod
    def _deny(intent: str, identity: Optional[Member]) -> None:
        who = identity.id if identity else "nobody"
        logger.info("Rejected %s for %s", intent, who)
        raise PermissionDenied(f"You don't have permission to {intent}.")

    # --- activities ---

    async def request_toggle(self, activity_id: str, identity: Optional[Member],
                             permissions: PermissionSet) -> Optional[Activity]:
        activity = self.activity_store.get(activity_id)
        if activity is None:
            return None
        if not permissions.can_edit_activity:
            # members may still complete their own activities
            own = (identity is not None and permissions.can_complete_own_tasks
                   and activity.involves(identity.id))
            if not own:
                self._deny("complete this activity", identity)
        return await self.activity_store.toggle_completion(activity_id)

    async def request_create(self, form: FormInput, identity: Optional[Member],
                             permissions: PermissionSet) -> Activity:
        if not permissions.can_create_activity:
            self._deny("create activities", identity)
        form = parse_form(ActivityForm, form)

        payload = ActivityCreate(
            title=form.title,
            description=_blank_to_none(form.description),
            category=form.category,
            start_time=combine_date_time(form.date, form.start_time, self.tz),
            end_time=combine_date_time(form.date, form.end_time, self.tz) if form.end_time else None,
            recurrence=form.recurrence,
            assigned_to=form.assigned_to,
            assigned_children=form.assigned_children,
            location=_blank_to_none(form.location),
            notes=_blank_to_none(form.notes),
            priority=form.priority,
            completed=False,
            created_by=identity.id if identity else None,
        )
        activity = await self.activity_store.create(payload)
        logger.info("Created activity %s", activity.id)
        return activity

    async def request_edit(self, activity_id: str, form: FormInput, identity: Optional[Member],
                           permissions: PermissionSet) -> Activity:
        if not permissions.can_edit_activity:
            self._deny("edit activities", identity)
        form = parse_form(ActivityEditForm, form)
        existing = self.activity_store.get(activity_id)
        if existing is None:
            raise NotFound(f"Activity '{activity_id}' not found")

        submitted = form.model_dump(exclude_unset=True)
        changes: Dict[str, Any] = {}
        for name in self._required_activity_fields:
            if submitted.get(name) is not None:
                changes[name] = submitted[name]
        for name in self._clearable_activity_fields:
            if name in submitted:
                changes[name] = _blank_to_none(submitted[name])

        local_start = to_local(existing.start_time, self.tz)
        day = submitted.get("date") or local_start.date()
        if submitted.get("date") or submitted.get("start_time"):
            start_of_day = submitted.get("start_time") or local_start.time()
            changes["start_time"] = combine_date_time(day, start_of_day, self.tz)
        if "end_time" in submitted:
            end_of_day = submitted["end_time"]
            changes["end_time"] = combine_date_time(day, end_of_day, self.tz) if end_of_day else None
        elif submitted.get("date") and existing.end_time is not None:
            changes["end_time"] = combine_date_time(day, to_local(existing.end_time, self.tz).time(), self.tz)

        return await self.activity_store.update(activity_id, ActivityUpdate(**changes))

    async def request_delete(self, activity_id: str, identity: Optional[Member],
                             permissions: PermissionSet) -> None:
        if not permissions.can_delete_activity:
            self._deny("delete activities", identity)
        if self.activity_store.get(activity_id) is None:
            return
        await self.activity_store.delete(activity_id)
        logger.info("Deleted activity %s", activity_id)

    # --- members ---

    async def request_add_member(self, form: FormInput, identity: Optional[Member],
                                 permissions: PermissionSet) -> Member:
        if not permissions.can_manage_members:
            self._deny("manage family members", identity)
        form = parse_form(MemberForm, form)
        name = form.name.strip()
        if not name:
            raise ValidationError("name: Name is required")
        return await self.member_store.create(MemberCreate(
            name=name,
            role=form.role,
            avatar=form.avatar,
            color=form.color or default_color(form.role),
        ))

    async def request_update_member(self, member_id: str, form: FormInput, identity: Optional[Member],
                                    permissions: PermissionSet) -> Member:
        if not permissions.can_manage_members:
            self._deny("manage family members", identity)
        form = parse_form(MemberEditForm, form)
        if self.member_store.get(member_id) is None:
            raise NotFound(f"Member '{member_id}' not found")
        submitted = form.model_dump(exclude_unset=True)
        changes = {name: value for name, value in submitted.items() if value is not None}
        for name in self._clearable_member_fields:
            if name in submitted:
                changes[name] = _blank_to_none(submitted[name])
        if "name" in changes:
            changes["name"] = changes["name"].strip()
            if not changes["name"]:
                raise ValidationError("name: Name is required")
        return await self.member_store.update(member_id, MemberUpdate(**changes))

    async def request_remove_member(self, member_id: str, identity: Optional[Member],
                                    permissions: PermissionSet) -> None:
        if not permissions.can_manage_members:
            self._deny("manage family members", identity)
        if self.member_store.get(member_id) is None:
            return
        # activities keep their references; lookups drop unknown ids
        await self.member_store.delete(member_id)

    async def onboard_family(self, drafts: Sequence[FormInput]) -> List[Member]:
        """First-run setup: create every drafted member in order."""
        parsed = [parse_form(MemberDraft, draft) for draft in drafts]
        all_named = bool(parsed) and all(d.name.strip() for d in parsed)
        has_parent = any(d.role == UserRole.parent and d.name.strip() for d in parsed)
        if not all_named or not has_parent:
            raise ValidationError("Add at least one parent with a name.")

        created = []
        for draft in parsed:
            created.append(await self.member_store.create(MemberCreate(
                name=draft.name.strip(),
                role=draft.role,
                avatar=draft.avatar,
                color=draft.color or default_color(draft.role),
            )))
        logger.info("Onboarded %d family members", len(created))
        return created
