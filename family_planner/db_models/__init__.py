from .base import Base
from .family import FamilyMember, Activity
