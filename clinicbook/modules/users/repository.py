# clinicbook/modules/users/repository.py
from __future__ import annotations

from typing import Any, Optional

from pydantic_core import to_jsonable_python

from clinicbook.core.errors import DuplicateEmail, ValidationError
from clinicbook.db.store import USERS, KeyValueStore
from clinicbook.modules.appointments import repository as appointments_repo
from clinicbook.modules.users.models import User, UserRole

# Fields fixed at creation time
IMMUTABLE_FIELDS = frozenset({"id", "role", "created_at"})


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_all(store: KeyValueStore) -> list[User]:
    return [User.from_record(r) for r in store.get_collection(USERS)]


def get_by_id(store: KeyValueStore, user_id: str) -> Optional[User]:
    """
    Returns a User by id or None if not found.
    """
    for record in store.get_collection(USERS):
        if record.get("id") == user_id:
            return User.from_record(record)
    return None


def get_by_email(store: KeyValueStore, email: str) -> Optional[User]:
    """
    Returns a User by email (normalized to lowercase) or None.
    """
    email = normalize_email(email)
    for record in store.get_collection(USERS):
        if record.get("email") == email:
            return User.from_record(record)
    return None


def create_user(store: KeyValueStore, user: User) -> User:
    """
    Appends a new user record and returns it.

    Notes:
    - Expects an already *hashed* password on the model.
    - Email uniqueness is guarded here as well as in the service.
    """
    email = normalize_email(user.email)
    with store.transaction():
        records = store.get_collection(USERS)
        if any(r.get("email") == email for r in records):
            raise DuplicateEmail("Email already registered")

        user = user.model_copy(update={"email": email})
        records.append(user.to_record())
        store.set_collection(USERS, records)
    return user


def update_user(store: KeyValueStore, user_id: str, **fields: Any) -> Optional[User]:
    """
    Merges `fields` into the stored record. Returns the updated user or None.
    """
    forbidden = IMMUTABLE_FIELDS.intersection(fields)
    if forbidden:
        raise ValidationError(f"immutable fields: {', '.join(sorted(forbidden))}")

    updates = to_jsonable_python(fields)
    with store.transaction():
        records = store.get_collection(USERS)
        for index, record in enumerate(records):
            if record.get("id") != user_id:
                continue
            if "email" in updates:
                email = normalize_email(updates["email"])
                if any(r.get("email") == email and r.get("id") != user_id for r in records):
                    raise DuplicateEmail("Email already registered")
                updates["email"] = email
            user = User.from_record({**record, **updates})
            records[index] = user.to_record()
            store.set_collection(USERS, records)
            return user
    return None


def delete_user(store: KeyValueStore, user_id: str) -> bool:
    """
    Removes the user and every appointment where they are doctor or patient.
    """
    with store.transaction():
        records = store.get_collection(USERS)
        remaining = [r for r in records if r.get("id") != user_id]
        store.set_collection(USERS, remaining)
        appointments_repo.delete_by_participant(store, user_id)
    return len(remaining) != len(records)


def list_doctors(store: KeyValueStore, *, approved: Optional[bool] = None) -> list[User]:
    doctors = [u for u in get_all(store) if u.role == UserRole.DOCTOR]
    if approved is None:
        return doctors
    return [d for d in doctors if d.approved == approved]
