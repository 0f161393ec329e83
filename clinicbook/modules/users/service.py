# clinicbook/modules/users/service.py
from __future__ import annotations

import logging
from typing import Any, Optional

from clinicbook.core.config import settings
from clinicbook.core.errors import (
    DuplicateEmail,
    InvalidCredential,
    NotFound,
    PendingApproval,
    ValidationError,
)
from clinicbook.core.security import create_access_token, hash_password, verify_password
from clinicbook.db.store import KeyValueStore
from clinicbook.modules.doctors.availability import default_availability
from clinicbook.modules.log import write_audit_log
from clinicbook.modules.users import repository as users_repo
from clinicbook.modules.users import session as session_store
from clinicbook.modules.users.models import User, UserRole
from clinicbook.modules.users.schemas import (
    LoginRequest,
    LoginResponse,
    ProfileUpdateRequest,
    RegisterRequest,
    UserPublic,
)

logger = logging.getLogger(__name__)

DOCTOR_FIELDS = ("specialty", "location", "bio")


class UserNotFound(NotFound):
    code = "user_not_found"


def to_public(user: User) -> UserPublic:
    return UserPublic.model_validate(user)


def create_user(
    store: KeyValueStore,
    *,
    name: str,
    email: str,
    password: str,
    role: UserRole | str,
    specialty: Optional[str] = None,
    location: Optional[str] = None,
    bio: Optional[str] = None,
) -> User:
    """
    Core creation used by registration and seeding.

      - patients and admins are approved immediately, doctors wait for an admin
      - doctors start with rating 0 and the default weekday template
    """
    role = UserRole(role)
    if not name or not email or not password:
        raise ValidationError("name, email and password are required")

    if users_repo.get_by_email(store, email):
        raise DuplicateEmail("email_already_exists")

    fields: dict[str, Any] = {
        "name": name.strip(),
        "email": users_repo.normalize_email(email),
        "password_hash": hash_password(password),
        "role": role,
        "approved": role in (UserRole.PATIENT, UserRole.ADMIN),
    }
    if role == UserRole.DOCTOR:
        fields.update(
            specialty=specialty,
            location=location,
            bio=bio or "",
            rating=0.0,
            availability=default_availability(),
        )

    user = users_repo.create_user(store, User(**fields))
    logger.info("Created %s account %s", role.value, user.id)
    return user


def register_user(store: KeyValueStore, payload: RegisterRequest) -> User:
    """
    Public self-registration:
      1) Refuse admin accounts.
      2) Enforce password length and doctor-only required fields.
      3) Create the user (email uniqueness is checked there).
    """
    if payload.role == UserRole.ADMIN:
        raise ValidationError("admin_registration_not_allowed")

    password = payload.password.get_secret_value()
    if len(password) < settings.MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters long"
        )

    if payload.role == UserRole.DOCTOR and not (payload.specialty and payload.location):
        raise ValidationError("doctor_fields_required")

    user = create_user(
        store,
        name=payload.name,
        email=payload.email,
        password=password,
        role=payload.role,
        specialty=payload.specialty,
        location=payload.location,
        bio=payload.bio,
    )
    write_audit_log(user.id, "REGISTER", user.role.value)
    return user


def authenticate(store: KeyValueStore, email: str, password: str) -> User:
    """
    1) Fetch user by email
    2) Verify password
    3) Doctors must be approved before they can log in
    """
    user = users_repo.get_by_email(store, email)
    if not user:
        raise UserNotFound("user_not_found")

    if not verify_password(password, user.password_hash):
        raise InvalidCredential("invalid_credentials")

    if user.role == UserRole.DOCTOR and not user.approved:
        raise PendingApproval("Your account is pending approval by an administrator")

    return user


def login_user(store: KeyValueStore, payload: LoginRequest) -> LoginResponse:
    user = authenticate(store, payload.email, payload.password.get_secret_value())
    session_store.start_session(store, user)
    write_audit_log(user.id, "LOGIN")

    access = create_access_token(subject=user.id, role=user.role.value)
    return LoginResponse(
        access_token=access,
        expires_in=settings.ACCESS_EXPIRES_MIN * 60,
        user=to_public(user),
    )


def logout_user(store: KeyValueStore, current_user: User) -> None:
    session_store.clear_session(store)
    write_audit_log(current_user.id, "LOGOUT")


def get_user(store: KeyValueStore, user_id: str) -> User:
    user = users_repo.get_by_id(store, user_id)
    if not user:
        raise UserNotFound("user_not_found")
    return user


def update_user(store: KeyValueStore, user_id: str, **fields: Any) -> User:
    """
    Merge fields into the user and keep the session snapshot fresh.
    """
    with store.transaction():
        user = users_repo.update_user(store, user_id, **fields)
        if user is None:
            raise UserNotFound("user_not_found")
        session_store.refresh_session(store, user)
    write_audit_log(user_id, "UPDATE_USER", ",".join(sorted(fields)))
    return user


def update_profile(
    store: KeyValueStore, current_user: User, payload: ProfileUpdateRequest
) -> User:
    fields = payload.model_dump(exclude_none=True)
    if current_user.role != UserRole.DOCTOR:
        fields = {k: v for k, v in fields.items() if k not in DOCTOR_FIELDS}
    if not fields:
        return current_user
    return update_user(store, current_user.id, **fields)


def delete_user(store: KeyValueStore, user_id: str) -> None:
    """
    Remove a user together with every appointment they take part in,
    and end their session if they hold it.
    """
    with store.transaction():
        if not users_repo.get_by_id(store, user_id):
            raise UserNotFound("user_not_found")
        users_repo.delete_user(store, user_id)
        session_store.drop_session_of(store, user_id)
    write_audit_log(user_id, "DELETE_USER")


def list_users(store: KeyValueStore) -> list[User]:
    return users_repo.get_all(store)


def list_approved_doctors(store: KeyValueStore) -> list[User]:
    return users_repo.list_doctors(store, approved=True)


def list_pending_doctors(store: KeyValueStore) -> list[User]:
    return users_repo.list_doctors(store, approved=False)


def get_doctor(store: KeyValueStore, doctor_id: str) -> User:
    user = users_repo.get_by_id(store, doctor_id)
    if not user or user.role != UserRole.DOCTOR:
        raise UserNotFound("doctor_not_found")
    return user


def approve_doctor(store: KeyValueStore, doctor_id: str) -> User:
    get_doctor(store, doctor_id)
    user = update_user(store, doctor_id, approved=True)
    write_audit_log(doctor_id, "APPROVE_DOCTOR")
    return user


def reject_doctor(store: KeyValueStore, doctor_id: str) -> None:
    """A rejected registration is removed outright."""
    get_doctor(store, doctor_id)
    delete_user(store, doctor_id)
    write_audit_log(doctor_id, "REJECT_DOCTOR")
