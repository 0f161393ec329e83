# clinicbook/modules/doctors/schemas.py
from __future__ import annotations

from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, Field, field_validator

from clinicbook.modules.doctors.availability import is_valid_time
from clinicbook.modules.users.models import AvailabilitySlot, Weekday


def _half_hour(v: str) -> str:
    if not is_valid_time(v):
        raise ValueError("time must be a half-hour slot from 09:00 to 17:00")
    return v


SlotTimeStr = Annotated[str, AfterValidator(_half_hour)]


class DoctorSearchParams(BaseModel):
    q: Optional[str] = Field(default=None, description="Matches name, specialty or location")
    specialty: Optional[str] = Field(default=None, description="Exact specialty")
    location: Optional[str] = Field(default=None, description="Location substring")


class DoctorCard(BaseModel):
    """What patients see when browsing doctors."""

    id: str
    name: str
    specialty: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    rating: float = 0.0

    class Config:
        from_attributes = True

    @field_validator("rating", mode="before")
    @classmethod
    def _none_is_zero(cls, v):
        return v or 0.0


class SlotToggle(BaseModel):
    day: Weekday
    time: SlotTimeStr


class AvailabilityPayload(BaseModel):
    availability: List[AvailabilitySlot]


class AvailabilityPublic(BaseModel):
    doctor_id: str
    availability: List[AvailabilitySlot]


class FreeTimesResponse(BaseModel):
    doctor_id: str
    date: str
    times: List[str]


class RatingRequest(BaseModel):
    score: float = Field(..., ge=1, le=5)
