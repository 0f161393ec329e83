# clinicbook/routers/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm

from clinicbook.db.sql import get_store
from clinicbook.db.store import KeyValueStore
from clinicbook.dependencies import get_current_user
from clinicbook.modules.users.models import User
from clinicbook.modules.users.schemas import (
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    MeResponse,
    ProfileUpdateRequest,
    RegisterRequest,
    RegisterResponse,
)
from clinicbook.modules.users.service import (
    login_user,
    logout_user,
    register_user,
    to_public,
    update_profile,
)

router = APIRouter(tags=["auth"])


@router.post(
    "/auth/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new patient or doctor account",
    responses={
        201: {"description": "User created"},
        400: {"model": ErrorResponse, "description": "Invalid payload or admin role requested"},
        409: {"model": ErrorResponse, "description": "Email already registered"},
    },
)
def auth_register(
    payload: RegisterRequest,
    store: KeyValueStore = Depends(get_store),
):
    """
    Register a new user.

    Notes:
    - Email is normalized to lowercase.
    - Doctors need specialty and location and stay unapproved until an admin acts.
    - Admin accounts cannot be registered.
    """
    return to_public(register_user(store, payload))


@router.post(
    "/auth/login",
    response_model=LoginResponse,
    summary="Obtain a Bearer token with email and password (JSON body)",
    responses={
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
        403: {"model": ErrorResponse, "description": "Doctor pending approval"},
        404: {"model": ErrorResponse, "description": "User not found"},
    },
)
def auth_login(
    payload: LoginRequest,
    store: KeyValueStore = Depends(get_store),
):
    return login_user(store, payload)


@router.post(
    "/auth/token",
    response_model=LoginResponse,
    summary="OAuth2 password flow login (for Swagger UI)",
)
def auth_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    store: KeyValueStore = Depends(get_store),
):
    """
    Swagger sends form data:
    - username: user email
    - password: user password
    """
    login_payload = LoginRequest(
        email=form_data.username,
        password=form_data.password,
    )
    return login_user(store, login_payload)


@router.post("/auth/logout", status_code=status.HTTP_204_NO_CONTENT)
def auth_logout(
    store: KeyValueStore = Depends(get_store),
    current_user: User = Depends(get_current_user),
):
    logout_user(store, current_user)
    return None


@router.get(
    "/auth/me",
    response_model=MeResponse,
    summary="Return the current user's profile",
)
def auth_me(current_user: User = Depends(get_current_user)):
    return to_public(current_user)


@router.patch(
    "/auth/me",
    response_model=MeResponse,
    summary="Update the current user's profile",
)
def auth_update_me(
    payload: ProfileUpdateRequest,
    store: KeyValueStore = Depends(get_store),
    current_user: User = Depends(get_current_user),
):
    return to_public(update_profile(store, current_user, payload))
