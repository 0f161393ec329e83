"""Shared test fixtures."""
import datetime as dt
import os

# Cheap hashing for tests; must be set before clinicbook.core.security is imported
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "1000")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest

from clinicbook.db.store import MemoryStore
from clinicbook.modules.users import repository as users_repo
from clinicbook.modules.users import service as users_service
from clinicbook.modules.users.models import UserRole

# 2030-01-07 is a Monday
MONDAY = dt.date(2030, 1, 7)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def today():
    """A fixed "today" one week before MONDAY."""
    return MONDAY - dt.timedelta(days=7)


@pytest.fixture
def patient(store):
    return users_service.create_user(
        store,
        name="Pat Patient",
        email="pat@clinic.test",
        password="secret1",
        role=UserRole.PATIENT,
    )


@pytest.fixture
def other_patient(store):
    return users_service.create_user(
        store,
        name="Olive Other",
        email="olive@clinic.test",
        password="secret1",
        role=UserRole.PATIENT,
    )


@pytest.fixture
def make_doctor(store):
    """Factory for approved doctors with the default weekday template."""
    def _create(email="doc@clinic.test", name="Dr. Ada", specialty="Cardiology", location="Boston, MA"):
        doctor = users_service.create_user(
            store,
            name=name,
            email=email,
            password="secret1",
            role=UserRole.DOCTOR,
            specialty=specialty,
            location=location,
        )
        return users_repo.update_user(store, doctor.id, approved=True)
    return _create


@pytest.fixture
def doctor(make_doctor):
    return make_doctor()


@pytest.fixture
def admin(store):
    return users_service.create_user(
        store,
        name="Root Admin",
        email="root@clinic.test",
        password="secret1",
        role=UserRole.ADMIN,
    )
