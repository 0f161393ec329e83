# clinicbook/modules/appointments/schemas.py
from __future__ import annotations

import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from clinicbook.modules.appointments.models import ApptStatus
from clinicbook.modules.doctors.schemas import SlotTimeStr


class AppointmentCreateRequest(BaseModel):
    """
    Payload to book an appointment.
    - patient_id is taken from current_user, never from the client.
    """
    doctor_id: str
    date: dt.date
    time: SlotTimeStr
    reason: Optional[str] = Field(default=None, max_length=2000)


class RescheduleRequest(BaseModel):
    date: dt.date
    time: SlotTimeStr


class AppointmentPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    doctor_id: str
    patient_id: str
    date: dt.date
    time: str
    status: ApptStatus
    reason: Optional[str] = None
    created_at: dt.datetime


class AppointmentDetails(AppointmentPublic):
    """Appointment joined with participant names for display."""

    doctor_name: str
    doctor_specialty: Optional[str] = None
    patient_name: str


class AppointmentList(BaseModel):
    items: List[AppointmentDetails]
    total: int
