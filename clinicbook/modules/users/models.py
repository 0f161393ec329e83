# clinicbook/modules/users/models.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class UserRole(str, Enum):
    PATIENT = "patient"
    DOCTOR = "doctor"
    ADMIN = "admin"


class Weekday(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AvailabilitySlot(BaseModel):
    """One cell of a doctor's weekly template."""

    day: Weekday
    time: str  # "HH:MM", half-hour grid
    enabled: bool = True


class User(BaseModel):
    """
    Stored user record. Doctor-only fields stay None for other roles.
    """

    id: str = Field(default_factory=new_id)
    name: str
    email: str
    password_hash: str
    role: UserRole
    approved: bool = False

    specialty: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    rating: Optional[float] = None
    availability: Optional[List[AvailabilitySlot]] = None

    created_at: datetime = Field(default_factory=utcnow)

    @property
    def is_doctor(self) -> bool:
        return self.role == UserRole.DOCTOR

    def to_record(self) -> dict:
        return self.model_dump(mode="json")

    @classmethod
    def from_record(cls, record: dict) -> "User":
        return cls.model_validate(record)

    def __repr__(self) -> str:
        return f"<User {self.id} {self.email} ({self.role.value})>"
