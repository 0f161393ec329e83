# clinicbook/modules/doctors/search.py
from __future__ import annotations

from typing import Optional

from clinicbook.db.store import KeyValueStore
from clinicbook.modules.users import repository as users_repo
from clinicbook.modules.users.models import User


def _contains(haystack: Optional[str], needle: str) -> bool:
    return needle in (haystack or "").lower()


def search_doctors(
    store: KeyValueStore,
    query: Optional[str] = None,
    specialty: Optional[str] = None,
    location: Optional[str] = None,
) -> list[User]:
    """
    Approved doctors matching every non-empty filter.

    - query: case-insensitive substring of name, specialty or location
    - specialty: exact match
    - location: case-insensitive substring
    """
    query = (query or "").strip().lower()
    location = (location or "").strip().lower()

    results: list[User] = []
    for doctor in users_repo.list_doctors(store, approved=True):
        if query and not (
            _contains(doctor.name, query)
            or _contains(doctor.specialty, query)
            or _contains(doctor.location, query)
        ):
            continue
        if specialty and doctor.specialty != specialty:
            continue
        if location and not _contains(doctor.location, location):
            continue
        results.append(doctor)
    return results


def list_specialties(store: KeyValueStore) -> list[str]:
    """Distinct specialties of approved doctors, for filter menus."""
    return sorted({d.specialty for d in users_repo.list_doctors(store, approved=True) if d.specialty})
