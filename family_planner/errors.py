class FamilyPlannerError(Exception):
    """Base class for every failure surfaced to the UI layer."""


class ValidationError(FamilyPlannerError):
    """A form field is missing or malformed. Raised before any store call."""


class PermissionDenied(FamilyPlannerError):
    """The active member lacks the capability for this intent."""


class RemoteFailure(FamilyPlannerError):
    """The persistence gateway call failed. The message is the gateway's own."""


class NotFound(FamilyPlannerError):
    """The target id is not in the snapshot."""
