import logging
from datetime import tzinfo
from typing import List, Optional, Sequence

from family_planner.errors import NotFound
from family_planner.identity import ActiveIdentityResolver
from family_planner.models import Activity, Member, PermissionSet
from family_planner.preferences import PreferenceStore
from family_planner.repository import PersistenceGateway
from family_planner.schedule import local_zone, visible_to
from family_planner.services import FormInput, MutationCoordinator
from family_planner.session import SessionProvider, StaticSessionProvider
from family_planner.store import ActivityStore, MemberStore

logger = logging.getLogger(__name__)


class FamilyPlanner:
    """Everything one UI session needs, built once and passed to call sites."""

    def __init__(self, gateway: PersistenceGateway, preferences: PreferenceStore,
                 session: Optional[SessionProvider] = None, tz: Optional[tzinfo] = None):
        self.tz = tz or local_zone()
        self.members = MemberStore(gateway)
        self.activities = ActivityStore(gateway)
        self.identity = ActiveIdentityResolver(preferences)
        self.coordinator = MutationCoordinator(self.members, self.activities, tz=self.tz)
        self.session = session or StaticSessionProvider()
        self.loaded = False

    @property
    def active_member(self) -> Optional[Member]:
        return self.identity.active

    @property
    def permissions(self) -> PermissionSet:
        return self.identity.permissions

    @property
    def loading(self) -> bool:
        return self.members.loading or self.activities.loading

    @property
    def errors(self) -> List[str]:
        return [e for e in (self.members.error, self.activities.error) if e]

    async def load_all(self) -> bool:
        members_ok = await self.members.load_all()
        activities_ok = await self.activities.load_all()
        self.identity.sync(self.members.list())
        self.loaded = True
        return members_ok and activities_ok

    def visible_activities(self) -> List[Activity]:
        return visible_to(self.active_member, self.permissions, self.activities.list())

    def switch_member(self, member_id: str) -> Member:
        member = self.members.get(member_id)
        if member is None:
            raise NotFound(f"Member '{member_id}' not found")
        return self.identity.set_active(member)

    async def sign_out(self) -> None:
        await self.session.sign_out()

    # --- intents on behalf of the active member ---

    async def toggle(self, activity_id: str) -> Optional[Activity]:
        return await self.coordinator.request_toggle(activity_id, self.active_member, self.permissions)

    async def create_activity(self, form: FormInput) -> Activity:
        return await self.coordinator.request_create(form, self.active_member, self.permissions)

    async def edit_activity(self, activity_id: str, form: FormInput) -> Activity:
        return await self.coordinator.request_edit(activity_id, form, self.active_member, self.permissions)

    async def delete_activity(self, activity_id: str) -> None:
        await self.coordinator.request_delete(activity_id, self.active_member, self.permissions)

    async def add_member(self, form: FormInput) -> Member:
        member = await self.coordinator.request_add_member(form, self.active_member, self.permissions)
        self.identity.sync(self.members.list())
        return member

    async def update_member(self, member_id: str, form: FormInput) -> Member:
        member = await self.coordinator.request_update_member(
            member_id, form, self.active_member, self.permissions)
        self.identity.sync(self.members.list())
        return member

    async def remove_member(self, member_id: str) -> None:
        await self.coordinator.request_remove_member(member_id, self.active_member, self.permissions)
        self.identity.sync(self.members.list())

    async def onboard(self, drafts: Sequence[FormInput]) -> List[Member]:
        created = await self.coordinator.onboard_family(drafts)
        self.identity.forget()
        self.identity.sync(self.members.list())
        return created
