# clinicbook/modules/appointments/repository.py
from __future__ import annotations

import datetime as dt
from typing import Any, Optional

from pydantic_core import to_jsonable_python

from clinicbook.db.store import APPOINTMENTS, KeyValueStore
from clinicbook.modules.appointments.models import Appointment, ApptStatus


def get_all(store: KeyValueStore) -> list[Appointment]:
    return [Appointment.from_record(r) for r in store.get_collection(APPOINTMENTS)]


def get_by_id(store: KeyValueStore, appointment_id: str) -> Optional[Appointment]:
    for record in store.get_collection(APPOINTMENTS):
        if record.get("id") == appointment_id:
            return Appointment.from_record(record)
    return None


def get_by_doctor(store: KeyValueStore, doctor_id: str) -> list[Appointment]:
    return [a for a in get_all(store) if a.doctor_id == doctor_id]


def get_by_patient(store: KeyValueStore, patient_id: str) -> list[Appointment]:
    return [a for a in get_all(store) if a.patient_id == patient_id]


def find_active_at(
    store: KeyValueStore, *, doctor_id: str, date: dt.date, time: str
) -> list[Appointment]:
    """
    Non-cancelled appointments of a doctor on an exact (date, time).
    """
    return [
        a
        for a in get_by_doctor(store, doctor_id)
        if a.date == date and a.time == time and a.is_active
    ]


def create_appointment(store: KeyValueStore, appt: Appointment) -> Appointment:
    with store.transaction():
        records = store.get_collection(APPOINTMENTS)
        records.append(appt.to_record())
        store.set_collection(APPOINTMENTS, records)
    return appt


def update_appointment(
    store: KeyValueStore, appointment_id: str, **fields: Any
) -> Optional[Appointment]:
    """
    Merges `fields` into the stored record. Returns the updated appointment or None.
    """
    with store.transaction():
        records = store.get_collection(APPOINTMENTS)
        for index, record in enumerate(records):
            if record.get("id") != appointment_id:
                continue
            appt = Appointment.from_record({**record, **to_jsonable_python(fields)})
            records[index] = appt.to_record()
            store.set_collection(APPOINTMENTS, records)
            return appt
    return None


def delete_appointment(store: KeyValueStore, appointment_id: str) -> bool:
    with store.transaction():
        records = store.get_collection(APPOINTMENTS)
        remaining = [r for r in records if r.get("id") != appointment_id]
        store.set_collection(APPOINTMENTS, remaining)
    return len(remaining) != len(records)


def delete_by_participant(store: KeyValueStore, user_id: str) -> int:
    """
    Drops every appointment where `user_id` is the doctor or the patient.
    Returns how many were removed.
    """
    with store.transaction():
        records = store.get_collection(APPOINTMENTS)
        remaining = [
            r for r in records
            if r.get("doctor_id") != user_id and r.get("patient_id") != user_id
        ]
        store.set_collection(APPOINTMENTS, remaining)
    return len(records) - len(remaining)


def _involves(appt: Appointment, user_id: str, role: str) -> bool:
    if role == "patient":
        return appt.patient_id == user_id
    if role == "doctor":
        return appt.doctor_id == user_id
    return user_id in (appt.patient_id, appt.doctor_id)


def list_upcoming(
    store: KeyValueStore, *, user_id: str, role: str, today: dt.date
) -> list[Appointment]:
    """Dated today or later and not cancelled."""
    return [
        a
        for a in get_all(store)
        if _involves(a, user_id, role) and a.date >= today and a.status != ApptStatus.CANCELLED
    ]


def list_history(
    store: KeyValueStore, *, user_id: str, role: str, today: dt.date
) -> list[Appointment]:
    """Dated before today, or already completed/cancelled."""
    return [
        a
        for a in get_all(store)
        if _involves(a, user_id, role)
        and (a.date < today or a.status in (ApptStatus.COMPLETED, ApptStatus.CANCELLED))
    ]
