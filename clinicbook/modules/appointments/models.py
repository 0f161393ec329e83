# clinicbook/modules/appointments/models.py
from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from clinicbook.modules.users.models import new_id, utcnow


class ApptStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


TERMINAL_STATUSES = frozenset({ApptStatus.CANCELLED, ApptStatus.COMPLETED})


class Appointment(BaseModel):
    """
    Stored appointment record. doctor_id/patient_id are plain references;
    dangling ones are tolerated here and filtered when presenting.
    """

    id: str = Field(default_factory=new_id)
    doctor_id: str
    patient_id: str
    date: dt.date
    time: str
    status: ApptStatus = ApptStatus.PENDING
    reason: Optional[str] = None
    created_at: dt.datetime = Field(default_factory=utcnow)

    @property
    def is_active(self) -> bool:
        """Occupies its slot (anything but cancelled)."""
        return self.status != ApptStatus.CANCELLED

    def to_record(self) -> dict:
        return self.model_dump(mode="json")

    @classmethod
    def from_record(cls, record: dict) -> "Appointment":
        return cls.model_validate(record)

    def __repr__(self) -> str:
        return f"<Appt {self.id} d={self.date} {self.time} {self.status.value}>"
