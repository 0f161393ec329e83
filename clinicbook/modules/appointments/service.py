# clinicbook/modules/appointments/service.py
"""
Appointment booking and lifecycle.

    (none) --book--> pending
    pending --approve / force_approve--> confirmed
    pending --decline--> cancelled
    pending/confirmed --cancel--> cancelled
    confirmed --complete--> completed
    pending --reschedule--> pending (new date/time)

completed and cancelled are terminal. Deleting is an admin action outside
the state machine.
"""
from __future__ import annotations

import datetime as dt
import logging
from enum import Enum
from typing import Iterable, Optional

from clinicbook.core.errors import (
    Forbidden,
    InvalidTransition,
    NotFound,
    SlotUnavailable,
    ValidationError,
)
from clinicbook.db.store import KeyValueStore
from clinicbook.modules.appointments import repository as appointments_repo
from clinicbook.modules.appointments.models import Appointment, ApptStatus
from clinicbook.modules.appointments.schemas import (
    AppointmentCreateRequest,
    AppointmentDetails,
    RescheduleRequest,
)
from clinicbook.modules.doctors.availability import is_slot_available, parse_date, validate_time
from clinicbook.modules.log import write_audit_log
from clinicbook.modules.users import repository as users_repo
from clinicbook.modules.users.models import User, UserRole

logger = logging.getLogger(__name__)

DEFAULT_REASON = "General consultation"


class AppointmentNotFound(NotFound):
    code = "appointment_not_found"


class ApptEvent(str, Enum):
    APPROVE = "approve"
    DECLINE = "decline"
    FORCE_APPROVE = "force_approve"
    COMPLETE = "complete"
    CANCEL = "cancel"
    RESCHEDULE = "reschedule"


# event -> (allowed source statuses, target status, roles that may fire it)
TRANSITIONS: dict[ApptEvent, tuple[frozenset[ApptStatus], ApptStatus, frozenset[UserRole]]] = {
    ApptEvent.APPROVE: (
        frozenset({ApptStatus.PENDING}), ApptStatus.CONFIRMED, frozenset({UserRole.DOCTOR}),
    ),
    ApptEvent.DECLINE: (
        frozenset({ApptStatus.PENDING}), ApptStatus.CANCELLED, frozenset({UserRole.DOCTOR}),
    ),
    ApptEvent.FORCE_APPROVE: (
        frozenset({ApptStatus.PENDING}), ApptStatus.CONFIRMED, frozenset({UserRole.ADMIN}),
    ),
    ApptEvent.COMPLETE: (
        frozenset({ApptStatus.CONFIRMED}), ApptStatus.COMPLETED, frozenset({UserRole.DOCTOR}),
    ),
    ApptEvent.CANCEL: (
        frozenset({ApptStatus.PENDING, ApptStatus.CONFIRMED}),
        ApptStatus.CANCELLED,
        frozenset({UserRole.PATIENT, UserRole.DOCTOR, UserRole.ADMIN}),
    ),
    ApptEvent.RESCHEDULE: (
        frozenset({ApptStatus.PENDING}), ApptStatus.PENDING, frozenset({UserRole.PATIENT}),
    ),
}


def _today() -> dt.date:
    return dt.date.today()


def _get_or_404(store: KeyValueStore, appointment_id: str) -> Appointment:
    appt = appointments_repo.get_by_id(store, appointment_id)
    if not appt:
        raise AppointmentNotFound("appointment_not_found")
    return appt


def _check_participant(appt: Appointment, current_user: User) -> None:
    """
    - patient can only act on his own appointment
    - doctor can only act on appointments in which he is the doctor
    - admin acts on all
    """
    if current_user.role == UserRole.PATIENT and appt.patient_id != current_user.id:
        raise Forbidden("not_owner")
    if current_user.role == UserRole.DOCTOR and appt.doctor_id != current_user.id:
        raise Forbidden("not_owner")


def _check_event(appt: Appointment, event: ApptEvent, current_user: User) -> ApptStatus:
    sources, target, roles = TRANSITIONS[event]
    if current_user.role not in roles:
        raise Forbidden(f"{current_user.role.value}_cannot_{event.value}")
    _check_participant(appt, current_user)
    if appt.status not in sources:
        raise InvalidTransition(f"cannot {event.value} a {appt.status.value} appointment")
    return target


def _check_bookable_date(date: dt.date, today: dt.date) -> None:
    if date < today:
        raise ValidationError("date_in_past")


# BOOK
def book_appointment(
    store: KeyValueStore,
    payload: AppointmentCreateRequest,
    current_user: User,
    *,
    today: Optional[dt.date] = None,
) -> Appointment:
    """
    Book a new appointment in `pending`.

    Logic:
    - Only patients book; patient_id = current_user.id.
    - The doctor must be approved and the slot available (template + no clash).
    """
    if current_user.role != UserRole.PATIENT:
        raise Forbidden("only_patients_can_book")

    date = parse_date(payload.date)
    time = validate_time(payload.time)
    _check_bookable_date(date, today or _today())

    doctor = users_repo.get_by_id(store, payload.doctor_id)
    if doctor is None or doctor.role != UserRole.DOCTOR or not doctor.approved:
        raise NotFound("doctor_not_found")

    appt = Appointment(
        doctor_id=doctor.id,
        patient_id=current_user.id,
        date=date,
        time=time,
        status=ApptStatus.PENDING,
        reason=(payload.reason or "").strip() or DEFAULT_REASON,
    )
    # slot check and insert must not interleave with another booking
    with store.transaction():
        if not is_slot_available(store, doctor.id, date, time):
            raise SlotUnavailable("This time slot is not available")
        appointments_repo.create_appointment(store, appt)
    logger.info("Booked %s with doctor %s on %s %s", appt.id, doctor.id, date, time)
    write_audit_log(current_user.id, "BOOK_APPOINTMENT", f"{appt.id} {date} {time}")
    return appt


# RESCHEDULE
def reschedule_appointment(
    store: KeyValueStore,
    appointment_id: str,
    payload: RescheduleRequest,
    current_user: User,
    *,
    today: Optional[dt.date] = None,
) -> Appointment:
    """
    Move a pending appointment to another available slot; status stays pending.
    """
    with store.transaction():
        appt = _get_or_404(store, appointment_id)
        target = _check_event(appt, ApptEvent.RESCHEDULE, current_user)

        date = parse_date(payload.date)
        time = validate_time(payload.time)
        _check_bookable_date(date, today or _today())

        if not is_slot_available(store, appt.doctor_id, date, time):
            raise SlotUnavailable("This time slot is not available")
        updated = appointments_repo.update_appointment(
            store, appt.id, date=date, time=time, status=target
        )
    write_audit_log(current_user.id, "RESCHEDULE_APPOINTMENT", f"{appt.id} {date} {time}")
    return updated


def _transition(
    store: KeyValueStore, appointment_id: str, event: ApptEvent, current_user: User
) -> Appointment:
    with store.transaction():
        appt = _get_or_404(store, appointment_id)
        target = _check_event(appt, event, current_user)
        updated = appointments_repo.update_appointment(store, appt.id, status=target)
    logger.info("Appointment %s: %s -> %s", appt.id, appt.status.value, target.value)
    write_audit_log(current_user.id, f"{event.value.upper()}_APPOINTMENT", appt.id)
    return updated


def approve_appointment(store: KeyValueStore, appointment_id: str, current_user: User) -> Appointment:
    return _transition(store, appointment_id, ApptEvent.APPROVE, current_user)


def decline_appointment(store: KeyValueStore, appointment_id: str, current_user: User) -> Appointment:
    return _transition(store, appointment_id, ApptEvent.DECLINE, current_user)


def force_approve_appointment(
    store: KeyValueStore, appointment_id: str, current_user: User
) -> Appointment:
    return _transition(store, appointment_id, ApptEvent.FORCE_APPROVE, current_user)


def complete_appointment(store: KeyValueStore, appointment_id: str, current_user: User) -> Appointment:
    return _transition(store, appointment_id, ApptEvent.COMPLETE, current_user)


# CANCEL
def cancel_appointment(store: KeyValueStore, appointment_id: str, current_user: User) -> Appointment:
    with store.transaction():
        appt = _get_or_404(store, appointment_id)
        # Already cancelled: idempotent, returned as is
        if appt.status == ApptStatus.CANCELLED:
            _check_participant(appt, current_user)
            return appt
        return _transition(store, appointment_id, ApptEvent.CANCEL, current_user)


# ADMIN DELETE
def delete_appointment(store: KeyValueStore, appointment_id: str, current_user: User) -> None:
    if current_user.role != UserRole.ADMIN:
        raise Forbidden("admin_only")
    if not appointments_repo.delete_appointment(store, appointment_id):
        raise AppointmentNotFound("appointment_not_found")
    write_audit_log(current_user.id, "DELETE_APPOINTMENT", appointment_id)


# LISTS
def list_upcoming(
    store: KeyValueStore, user_id: str, role: UserRole | str, *, today: Optional[dt.date] = None
) -> list[Appointment]:
    role = UserRole(role).value
    items = appointments_repo.list_upcoming(store, user_id=user_id, role=role, today=today or _today())
    return sorted(items, key=lambda a: (a.date, a.time))


def list_history(
    store: KeyValueStore, user_id: str, role: UserRole | str, *, today: Optional[dt.date] = None
) -> list[Appointment]:
    role = UserRole(role).value
    items = appointments_repo.list_history(store, user_id=user_id, role=role, today=today or _today())
    return sorted(items, key=lambda a: (a.date, a.time), reverse=True)


def list_all(store: KeyValueStore) -> list[Appointment]:
    return appointments_repo.get_all(store)


def with_details(store: KeyValueStore, appointments: Iterable[Appointment]) -> list[AppointmentDetails]:
    """
    Attach participant names; appointments whose doctor or patient is gone
    are dropped.
    """
    users = {u.id: u for u in users_repo.get_all(store)}
    details: list[AppointmentDetails] = []
    for appt in appointments:
        doctor = users.get(appt.doctor_id)
        patient = users.get(appt.patient_id)
        if doctor is None or patient is None:
            continue
        details.append(
            AppointmentDetails(
                **appt.model_dump(),
                doctor_name=doctor.name,
                doctor_specialty=doctor.specialty,
                patient_name=patient.name,
            )
        )
    return details
