# clinicbook/routers/appointments.py
from __future__ import annotations

from fastapi import APIRouter, Depends, status

from clinicbook.db.sql import get_store
from clinicbook.db.store import KeyValueStore
from clinicbook.dependencies import get_current_user, require_roles
from clinicbook.modules.appointments import service as appt_svc
from clinicbook.modules.appointments.schemas import (
    AppointmentCreateRequest,
    AppointmentList,
    AppointmentPublic,
    RescheduleRequest,
)
from clinicbook.modules.users.models import User

router = APIRouter(prefix="/appointments", tags=["appointments"])


def _page(store: KeyValueStore, appointments) -> AppointmentList:
    items = appt_svc.with_details(store, appointments)
    return AppointmentList(items=items, total=len(items))


@router.post(
    "",
    response_model=AppointmentPublic,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment (patients only)",
    responses={409: {"description": "Slot unavailable"}},
)
def appointments_create(
    payload: AppointmentCreateRequest,
    store: KeyValueStore = Depends(get_store),
    current_user: User = Depends(require_roles("patient")),
):
    return appt_svc.book_appointment(store, payload, current_user)


@router.get(
    "/upcoming",
    response_model=AppointmentList,
    summary="Current user's appointments from today on, not cancelled",
)
def appointments_upcoming(
    store: KeyValueStore = Depends(get_store),
    current_user: User = Depends(require_roles("patient", "doctor")),
):
    return _page(store, appt_svc.list_upcoming(store, current_user.id, current_user.role))


@router.get(
    "/history",
    response_model=AppointmentList,
    summary="Current user's past, completed or cancelled appointments",
)
def appointments_history(
    store: KeyValueStore = Depends(get_store),
    current_user: User = Depends(require_roles("patient", "doctor")),
):
    return _page(store, appt_svc.list_history(store, current_user.id, current_user.role))


@router.put("/{appointment_id}/reschedule", response_model=AppointmentPublic)
def appointments_reschedule(
    appointment_id: str,
    payload: RescheduleRequest,
    store: KeyValueStore = Depends(get_store),
    current_user: User = Depends(require_roles("patient")),
):
    return appt_svc.reschedule_appointment(store, appointment_id, payload, current_user)


@router.put("/{appointment_id}/cancel", response_model=AppointmentPublic)
def appointments_cancel(
    appointment_id: str,
    store: KeyValueStore = Depends(get_store),
    current_user: User = Depends(get_current_user),
):
    return appt_svc.cancel_appointment(store, appointment_id, current_user)


@router.put("/{appointment_id}/approve", response_model=AppointmentPublic)
def appointments_approve(
    appointment_id: str,
    store: KeyValueStore = Depends(get_store),
    current_user: User = Depends(require_roles("doctor")),
):
    return appt_svc.approve_appointment(store, appointment_id, current_user)


@router.put("/{appointment_id}/decline", response_model=AppointmentPublic)
def appointments_decline(
    appointment_id: str,
    store: KeyValueStore = Depends(get_store),
    current_user: User = Depends(require_roles("doctor")),
):
    return appt_svc.decline_appointment(store, appointment_id, current_user)


@router.put("/{appointment_id}/complete", response_model=AppointmentPublic)
def appointments_complete(
    appointment_id: str,
    store: KeyValueStore = Depends(get_store),
    current_user: User = Depends(require_roles("doctor")),
):
    return appt_svc.complete_appointment(store, appointment_id, current_user)
