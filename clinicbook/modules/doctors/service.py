# clinicbook/modules/doctors/service.py
from __future__ import annotations

import logging

from clinicbook.core.errors import Forbidden, ValidationError
from clinicbook.db.store import KeyValueStore
from clinicbook.modules.appointments import repository as appointments_repo
from clinicbook.modules.appointments.models import ApptStatus
from clinicbook.modules.log import write_audit_log
from clinicbook.modules.users import service as users_service
from clinicbook.modules.users.models import User, UserRole

logger = logging.getLogger(__name__)

# Statuses that let a patient rate the doctor they saw
RATEABLE_STATUSES = frozenset({ApptStatus.CONFIRMED, ApptStatus.COMPLETED})


def next_rating(current: float | None, score: float) -> float:
    """
    Two-term running average: the first score is taken as is, later ones
    are averaged with the stored value. Earlier scores are not kept.
    """
    current = current or 0.0
    return (current + score) / 2 if current > 0 else score


def rate_doctor(
    store: KeyValueStore, current_user: User, doctor_id: str, score: float
) -> User:
    """
    A patient rates a doctor they have a confirmed or completed appointment with.
    """
    if current_user.role != UserRole.PATIENT:
        raise Forbidden("only_patients_can_rate")
    if not 1 <= score <= 5:
        raise ValidationError("rating must be between 1 and 5")

    # the running average reads the stored rating, so read and write together
    with store.transaction():
        doctor = users_service.get_doctor(store, doctor_id)
        seen = any(
            a.doctor_id == doctor.id and a.status in RATEABLE_STATUSES
            for a in appointments_repo.get_by_patient(store, current_user.id)
        )
        if not seen:
            raise Forbidden("no_confirmed_appointment_with_doctor")

        rating = next_rating(doctor.rating, score)
        updated = users_service.update_user(store, doctor.id, rating=rating)
    logger.debug("Doctor %s rating %.2f -> %.2f", doctor.id, doctor.rating or 0.0, rating)
    write_audit_log(current_user.id, "RATE_DOCTOR", f"{doctor.id} {score}")
    return updated
