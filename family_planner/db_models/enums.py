from enum import Enum


class UserRole(str, Enum):
    parent = "parent"
    child = "child"
    caregiver = "caregiver"


class ActivityCategory(str, Enum):
    school = "school"
    sports = "sports"
    health = "health"
    home = "home"
    personal = "personal"


class RecurrenceType(str, Enum):
    once = "once"
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"


class Priority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
