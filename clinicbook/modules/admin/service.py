# clinicbook/modules/admin/service.py
from __future__ import annotations

from pydantic import BaseModel

from clinicbook.core.config import settings
from clinicbook.db.store import KeyValueStore
from clinicbook.modules.appointments import repository as appointments_repo
from clinicbook.modules.appointments.models import ApptStatus
from clinicbook.modules.log import write_audit_log
from clinicbook.modules.users import repository as users_repo
from clinicbook.modules.users.models import User, UserRole
from clinicbook.seed import ensure_admin, seed_initial_data


class SystemStats(BaseModel):
    total_users: int
    total_patients: int
    total_doctors: int
    approved_doctors: int
    pending_doctors: int
    total_appointments: int
    pending_appointments: int
    confirmed_appointments: int
    completed_appointments: int
    cancelled_appointments: int


def system_stats(store: KeyValueStore) -> SystemStats:
    users = users_repo.get_all(store)
    appointments = appointments_repo.get_all(store)
    doctors = [u for u in users if u.role == UserRole.DOCTOR]

    def by_status(status: ApptStatus) -> int:
        return sum(1 for a in appointments if a.status == status)

    return SystemStats(
        total_users=len(users),
        total_patients=sum(1 for u in users if u.role == UserRole.PATIENT),
        total_doctors=len(doctors),
        approved_doctors=sum(1 for d in doctors if d.approved),
        pending_doctors=sum(1 for d in doctors if not d.approved),
        total_appointments=len(appointments),
        pending_appointments=by_status(ApptStatus.PENDING),
        confirmed_appointments=by_status(ApptStatus.CONFIRMED),
        completed_appointments=by_status(ApptStatus.COMPLETED),
        cancelled_appointments=by_status(ApptStatus.CANCELLED),
    )


def clear_all_data(store: KeyValueStore, current_user: User) -> None:
    """
    Delete every user and appointment, the session and the first-run flag,
    then start over as on a first run so the admin account exists again.
    """
    with store.transaction():
        store.clear()
        if settings.SEED_SAMPLE_DATA:
            seed_initial_data(store)
        else:
            ensure_admin(store)
    write_audit_log(current_user.id, "CLEAR_ALL_DATA")
