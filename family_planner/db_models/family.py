import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, Boolean, DateTime, JSON

from .base import Base


def _utcnow():
    return datetime.now(timezone.utc)


class FamilyMember(Base):
    __tablename__ = "family_members"
    id = Column(String, primary_key=True, index=True, default=lambda: "mem_" + str(uuid.uuid4())[:8])
    name = Column(String, nullable=False)
    role = Column(String, nullable=False, default="parent")  # "parent", "child", "caregiver"
    avatar = Column(String, nullable=True)
    color = Column(String, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class Activity(Base):
    __tablename__ = "activities"
    id = Column(String, primary_key=True, index=True, default=lambda: "act_" + str(uuid.uuid4())[:8])
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=False, default="personal")
    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    end_time = Column(DateTime(timezone=True), nullable=True)
    recurrence = Column(String, nullable=False, default="once")
    # Member ids; no foreign keys, members may be deleted while still referenced
    assigned_to = Column(JSON, nullable=False, default=list)
    assigned_children = Column(JSON, nullable=False, default=list)
    location = Column(String(200), nullable=True)
    notes = Column(Text, nullable=True)
    priority = Column(String, nullable=False, default="medium")
    completed = Column(Boolean, nullable=False, default=False)
    created_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)
