# clinicbook/seed.py
"""
First-run sample data and the well-known admin account.
"""
from __future__ import annotations

import datetime as dt
import logging
from typing import Optional

from clinicbook.core.config import settings
from clinicbook.core.errors import DuplicateEmail
from clinicbook.core.security import hash_password
from clinicbook.db.store import INITIALIZED, KeyValueStore
from clinicbook.modules.appointments import repository as appointments_repo
from clinicbook.modules.appointments.models import Appointment, ApptStatus
from clinicbook.modules.log import write_audit_log
from clinicbook.modules.users import repository as users_repo
from clinicbook.modules.users import service as users_service
from clinicbook.modules.users.models import UserRole

logger = logging.getLogger(__name__)

SAMPLE_PASSWORD = "password123"

SAMPLE_DOCTORS = [
    {
        "name": "Dr. Sarah Wilson",
        "email": "doctor@example.com",
        "specialty": "Cardiology",
        "location": "New York, NY",
        "bio": "Experienced cardiologist with 15 years of practice. "
               "Specializing in heart disease prevention and treatment.",
        "rating": 4.8,
    },
    {
        "name": "Dr. Michael Chen",
        "email": "doctor2@example.com",
        "specialty": "Dermatology",
        "location": "Los Angeles, CA",
        "bio": "Board-certified dermatologist focused on skin health, "
               "cosmetic treatments and skin cancer screening.",
        "rating": 4.9,
    },
    {
        "name": "Dr. Emily Rodriguez",
        "email": "doctor3@example.com",
        "specialty": "Pediatrics",
        "location": "Chicago, IL",
        "bio": "Pediatrician dedicated to providing comprehensive care for "
               "children from infancy through adolescence.",
        "rating": 4.7,
    },
]


def seed_initial_data(store: KeyValueStore, *, today: Optional[dt.date] = None) -> bool:
    """
    Populate an empty store once; later runs only repair the admin account.
    Returns True when sample data was written.
    """
    with store.transaction():
        if store.get_value(INITIALIZED):
            ensure_admin(store)
            return False
        _seed_sample_data(store, today or dt.date.today())

    logger.info("Sample data created")
    return True


def _seed_sample_data(store: KeyValueStore, today: dt.date) -> None:
    patient = users_service.create_user(
        store,
        name="John Patient",
        email="patient@example.com",
        password=SAMPLE_PASSWORD,
        role=UserRole.PATIENT,
    )

    doctors = []
    for sample in SAMPLE_DOCTORS:
        doctor = users_service.create_user(
            store,
            name=sample["name"],
            email=sample["email"],
            password=SAMPLE_PASSWORD,
            role=UserRole.DOCTOR,
            specialty=sample["specialty"],
            location=sample["location"],
            bio=sample["bio"],
        )
        doctors.append(
            users_repo.update_user(store, doctor.id, approved=True, rating=sample["rating"])
        )

    ensure_admin(store)

    appointments_repo.create_appointment(
        store,
        Appointment(
            doctor_id=doctors[0].id,
            patient_id=patient.id,
            date=today + dt.timedelta(days=7),
            time="10:00",
            status=ApptStatus.CONFIRMED,
            reason="Regular checkup",
        ),
    )
    appointments_repo.create_appointment(
        store,
        Appointment(
            doctor_id=doctors[1].id,
            patient_id=patient.id,
            date=today + dt.timedelta(days=14),
            time="14:30",
            status=ApptStatus.PENDING,
            reason="Skin consultation",
        ),
    )

    store.set_value(INITIALIZED, True)


def ensure_admin(store: KeyValueStore) -> None:
    """
    Idempotent repair of the admin account: create it when no admin exists,
    and reset email and password when its email differs from ADMIN_EMAIL.
    An admin that kept the configured email is left as is.
    """
    with store.transaction():
        _repair_admin(store)


def _repair_admin(store: KeyValueStore) -> None:
    admin = next((u for u in users_repo.get_all(store) if u.role == UserRole.ADMIN), None)
    if admin is None:
        users_service.create_user(
            store,
            name=settings.ADMIN_NAME,
            email=settings.ADMIN_EMAIL,
            password=settings.ADMIN_PASSWORD,
            role=UserRole.ADMIN,
        )
        logger.info("Admin user created with email: %s", settings.ADMIN_EMAIL)
        return

    if admin.email == users_repo.normalize_email(settings.ADMIN_EMAIL):
        return

    try:
        users_repo.update_user(
            store,
            admin.id,
            email=settings.ADMIN_EMAIL,
            password_hash=hash_password(settings.ADMIN_PASSWORD),
        )
    except DuplicateEmail:
        logger.warning("Cannot repair admin: %s belongs to another account", settings.ADMIN_EMAIL)
        return
    logger.info("Admin credentials updated to %s", settings.ADMIN_EMAIL)


def reset_sample_data(store: KeyValueStore, *, today: Optional[dt.date] = None) -> None:
    """Wipe everything and seed again."""
    with store.transaction():
        store.clear()
        seed_initial_data(store, today=today)
    write_audit_log(None, "RESET", "sample data reseeded")
