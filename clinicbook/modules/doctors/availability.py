# clinicbook/modules/doctors/availability.py
"""
Weekly availability templates and slot conflict checks.

A doctor's availability is a template keyed by weekday, while bookings are
concrete dates. A slot is available only when the template enables the
(weekday, time) cell *and* no non-cancelled appointment already holds that
exact (date, time).
"""
from __future__ import annotations

import datetime as dt
import logging
from typing import Iterable, List, Union

from clinicbook.core.errors import NotFound, ValidationError
from clinicbook.db.store import KeyValueStore
from clinicbook.modules.appointments import repository as appointments_repo
from clinicbook.modules.log import write_audit_log
from clinicbook.modules.users import repository as users_repo
from clinicbook.modules.users import session as session_store
from clinicbook.modules.users.models import AvailabilitySlot, User, Weekday

logger = logging.getLogger(__name__)

DAYS: tuple[str, ...] = tuple(d.value for d in Weekday)
# 09:00, 09:30, ... 17:00
SLOT_TIMES: tuple[str, ...] = tuple(
    f"{h:02d}:{m:02d}" for h in range(9, 18) for m in (0, 30) if (h, m) <= (17, 0)
)

DEFAULT_DAYS = ("monday", "tuesday", "wednesday", "thursday", "friday")
DEFAULT_TIMES = ("09:00", "10:00", "11:00", "14:00", "15:00", "16:00")

DateLike = Union[dt.date, str]


def parse_date(value: DateLike) -> dt.date:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    try:
        return dt.date.fromisoformat(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"invalid date: {value!r}") from exc


def is_valid_time(value: object) -> bool:
    return isinstance(value, str) and value in SLOT_TIMES


def validate_time(value: str) -> str:
    """A time on the half-hour grid, 09:00 to 17:00."""
    if not is_valid_time(value):
        raise ValidationError(f"invalid slot time: {value!r}")
    return value


def day_of_week(date: DateLike) -> str:
    """Lowercase English weekday name of a calendar date."""
    return DAYS[parse_date(date).weekday()]


def default_availability() -> List[AvailabilitySlot]:
    return [
        AvailabilitySlot(day=day, time=time, enabled=True)
        for day in DEFAULT_DAYS
        for time in DEFAULT_TIMES
    ]


def _template_enables(availability: Iterable[AvailabilitySlot], day: str, time: str) -> bool:
    return any(s.day.value == day and s.time == time and s.enabled for s in availability)


def is_slot_available(
    store: KeyValueStore,
    doctor_id: str,
    date: DateLike,
    time: str,
) -> bool:
    """
    Template match first, then the date-specific collision scan.
    Unknown doctors, doctors without a template and unparseable dates
    are never available.
    """
    doctor = users_repo.get_by_id(store, doctor_id)
    if doctor is None or not doctor.availability:
        return False

    try:
        date = parse_date(date)
    except ValidationError:
        return False

    if not _template_enables(doctor.availability, day_of_week(date), time):
        return False

    clashes = appointments_repo.find_active_at(store, doctor_id=doctor_id, date=date, time=time)
    return not clashes


def available_times(store: KeyValueStore, doctor_id: str, date: DateLike) -> list[str]:
    """Template times of that weekday still free on `date`, in grid order."""
    doctor = users_repo.get_by_id(store, doctor_id)
    if doctor is None or not doctor.availability:
        return []
    date = parse_date(date)
    day = day_of_week(date)
    candidates = sorted({s.time for s in doctor.availability if s.day.value == day and s.enabled})
    return [t for t in candidates if is_slot_available(store, doctor_id, date, t)]


def toggle_slot(
    availability: List[AvailabilitySlot], day: str, time: str
) -> List[AvailabilitySlot]:
    """
    Flip the (day, time) cell of an in-memory template, inserting it
    enabled when absent. Nothing is persisted; see save_availability.
    """
    if day not in DAYS:
        raise ValidationError(f"invalid day: {day!r}")
    validate_time(time)

    for slot in availability:
        if slot.day.value == day and slot.time == time:
            slot.enabled = not slot.enabled
            return availability
    availability.append(AvailabilitySlot(day=day, time=time, enabled=True))
    return availability


def _dedupe(availability: Iterable[AvailabilitySlot]) -> List[AvailabilitySlot]:
    # Last write wins for a repeated (day, time)
    cells: dict[tuple[str, str], AvailabilitySlot] = {}
    for slot in availability:
        validate_time(slot.time)
        cells[(slot.day.value, slot.time)] = slot
    return list(cells.values())


def get_availability(store: KeyValueStore, doctor_id: str) -> List[AvailabilitySlot]:
    doctor = _get_doctor(store, doctor_id)
    return list(doctor.availability or [])


def save_availability(
    store: KeyValueStore, doctor_id: str, availability: Iterable[AvailabilitySlot]
) -> User:
    """
    Persist the full template and refresh the session snapshot if it
    belongs to this doctor.
    """
    cells = _dedupe(availability)
    with store.transaction():
        _get_doctor(store, doctor_id)
        updated = users_repo.update_user(store, doctor_id, availability=cells)
        session_store.refresh_session(store, updated)

    enabled = sum(1 for s in cells if s.enabled)
    logger.debug("Saved %d slots (%d enabled) for doctor %s", len(cells), enabled, doctor_id)
    write_audit_log(doctor_id, "SAVE_AVAILABILITY", f"{enabled} enabled slots")
    return updated


def toggle_and_save(store: KeyValueStore, doctor_id: str, day: str, time: str) -> User:
    """Convenience for API callers: toggle one cell and persist."""
    with store.transaction():
        availability = get_availability(store, doctor_id)
        return save_availability(store, doctor_id, toggle_slot(availability, day, time))


def _get_doctor(store: KeyValueStore, doctor_id: str) -> User:
    doctor = users_repo.get_by_id(store, doctor_id)
    if doctor is None or not doctor.is_doctor:
        raise NotFound("doctor_not_found")
    return doctor
