from typing import Dict, Optional

from family_planner.db_models.enums import UserRole
from family_planner.models import Member, PermissionSet

NO_PERMISSIONS = PermissionSet()

PARENT_PROFILE = PermissionSet(
    can_create_activity=True,
    can_edit_activity=True,
    can_delete_activity=True,
    can_manage_members=True,
    can_assign_tasks=True,
    can_view_all_activities=True,
    can_complete_own_tasks=True,
)

CHILD_PROFILE = PermissionSet(can_complete_own_tasks=True)

# One entry per role. Caregivers get the child profile until a dedicated one is agreed on.
ROLE_PROFILES: Dict[UserRole, PermissionSet] = {
    UserRole.parent: PARENT_PROFILE,
    UserRole.child: CHILD_PROFILE,
    UserRole.caregiver: CHILD_PROFILE,
}

_missing = set(UserRole) - set(ROLE_PROFILES)
if _missing:
    raise RuntimeError(f"No permission profile for roles: {sorted(r.value for r in _missing)}")


def derive_permissions(identity: Optional[Member]) -> PermissionSet:
    """Capability flags for the acting member; no identity means no capabilities."""
    if identity is None:
        return NO_PERMISSIONS
    return ROLE_PROFILES[identity.role]
