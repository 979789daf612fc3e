import logging
from enum import Enum
from typing import Optional, Sequence

from family_planner.config import ACTIVE_MEMBER_KEY
from family_planner.db_models.enums import UserRole
from family_planner.models import Member, PermissionSet
from family_planner.permissions import derive_permissions
from family_planner.preferences import PreferenceStore

logger = logging.getLogger(__name__)


class ResolverState(str, Enum):
    unresolved = "unresolved"
    resolved = "resolved"


def default_member(members: Sequence[Member]) -> Optional[Member]:
    """First parent, else the first member in list order."""
    if not members:
        return None
    return next((m for m in members if m.role == UserRole.parent), members[0])


class ActiveIdentityResolver:
    """Tracks which member is acting in this session.

    One instance per session; the persisted id lives in the injected
    preference store under a single key.
    """

    def __init__(self, preferences: PreferenceStore, key: str = ACTIVE_MEMBER_KEY):
        self.preferences = preferences
        self.key = key
        self.state = ResolverState.unresolved
        self._active: Optional[Member] = None
        self._permissions: PermissionSet = derive_permissions(None)

    @property
    def active(self) -> Optional[Member]:
        return self._active

    @property
    def permissions(self) -> PermissionSet:
        return self._permissions

    @property
    def is_parent(self) -> bool:
        return self._active is not None and self._active.role == UserRole.parent

    @property
    def is_child(self) -> bool:
        return self._active is not None and self._active.role == UserRole.child

    def sync(self, members: Sequence[Member]) -> Optional[Member]:
        """Reconcile against the latest member list and return the active member."""
        members = list(members)
        by_id = {m.id: m for m in members}

        if self.state == ResolverState.unresolved:
            if not members:
                return None
            saved_id = self.preferences.get(self.key)
            restored = by_id.get(saved_id) if saved_id else None
            if restored is not None:
                logger.debug("Restored active member %s", restored.id)
                self._assign(restored)
            else:
                self._apply_default(members)
            return self._active

        latest = by_id.get(self._active.id)
        if latest is None:
            # the active member was removed from the family
            if members:
                self._apply_default(members)
        elif latest != self._active:
            # same member, newer field values; the assignment itself is unchanged
            self._assign(latest)
        return self._active

    def set_active(self, member: Member) -> Member:
        self._assign(member)
        self.preferences.set(self.key, member.id)
        logger.info("Active member set to %s", member.id)
        return member

    def forget(self) -> None:
        """Drop the persisted id and the current assignment.

        The next ``sync`` starts from the unresolved state and applies the
        default rule.
        """
        self.preferences.delete(self.key)
        self._active = None
        self._permissions = derive_permissions(None)
        self.state = ResolverState.unresolved

    def _apply_default(self, members: Sequence[Member]) -> None:
        chosen = default_member(members)
        self._assign(chosen)
        self.preferences.set(self.key, chosen.id)
        logger.info("Defaulted active member to %s", chosen.id)

    def _assign(self, member: Member) -> None:
        self._active = member
        self._permissions = derive_permissions(member)
        self.state = ResolverState.resolved
