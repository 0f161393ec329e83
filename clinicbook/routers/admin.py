# clinicbook/routers/admin.py
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, status
from pydantic import BaseModel

from clinicbook.backup import export_snapshot, import_snapshot
from clinicbook.db.sql import get_store
from clinicbook.db.store import KeyValueStore
from clinicbook.dependencies import require_confirmation, require_roles
from clinicbook.modules.admin.service import SystemStats, clear_all_data, system_stats
from clinicbook.modules.appointments import service as appt_svc
from clinicbook.modules.appointments.schemas import AppointmentList, AppointmentPublic
from clinicbook.modules.users import service as users_svc
from clinicbook.modules.users.models import User
from clinicbook.modules.users.schemas import UserPublic
from clinicbook.seed import reset_sample_data

router = APIRouter(prefix="/admin", tags=["admin"])


require_admin = require_roles("admin")


class ImportResult(BaseModel):
    users: int
    appointments: int


@router.get("/users", response_model=list[UserPublic])
def admin_users(
    store: KeyValueStore = Depends(get_store),
    current_admin: User = Depends(require_admin),
):
    return [users_svc.to_public(u) for u in users_svc.list_users(store)]


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def admin_delete_user(
    user_id: str,
    store: KeyValueStore = Depends(get_store),
    current_admin: User = Depends(require_admin),
):
    """Deletes the user and all of their appointments."""
    users_svc.delete_user(store, user_id)
    return None


@router.get("/doctors/pending", response_model=list[UserPublic])
def admin_pending_doctors(
    store: KeyValueStore = Depends(get_store),
    current_admin: User = Depends(require_admin),
):
    return [users_svc.to_public(u) for u in users_svc.list_pending_doctors(store)]


@router.put("/doctors/{doctor_id}/approve", response_model=UserPublic)
def admin_approve_doctor(
    doctor_id: str,
    store: KeyValueStore = Depends(get_store),
    current_admin: User = Depends(require_admin),
):
    return users_svc.to_public(users_svc.approve_doctor(store, doctor_id))


@router.delete("/doctors/{doctor_id}", status_code=status.HTTP_204_NO_CONTENT)
def admin_reject_doctor(
    doctor_id: str,
    store: KeyValueStore = Depends(get_store),
    current_admin: User = Depends(require_admin),
):
    users_svc.reject_doctor(store, doctor_id)
    return None


@router.get("/appointments", response_model=AppointmentList)
def admin_appointments(
    store: KeyValueStore = Depends(get_store),
    current_admin: User = Depends(require_admin),
):
    items = appt_svc.with_details(store, appt_svc.list_all(store))
    return AppointmentList(items=items, total=len(items))


@router.put("/appointments/{appointment_id}/force-approve", response_model=AppointmentPublic)
def admin_force_approve(
    appointment_id: str,
    store: KeyValueStore = Depends(get_store),
    current_admin: User = Depends(require_admin),
):
    return appt_svc.force_approve_appointment(store, appointment_id, current_admin)


@router.delete("/appointments/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
def admin_delete_appointment(
    appointment_id: str,
    store: KeyValueStore = Depends(get_store),
    current_admin: User = Depends(require_admin),
):
    appt_svc.delete_appointment(store, appointment_id, current_admin)
    return None


@router.get("/stats", response_model=SystemStats)
def admin_stats(
    store: KeyValueStore = Depends(get_store),
    current_admin: User = Depends(require_admin),
):
    return system_stats(store)


@router.get("/export", summary="Snapshot of users and appointments")
def admin_export(
    store: KeyValueStore = Depends(get_store),
    current_admin: User = Depends(require_admin),
) -> dict[str, Any]:
    return export_snapshot(store)


@router.post(
    "/import",
    response_model=ImportResult,
    summary="Replace all users and appointments (requires ?confirm=true)",
    dependencies=[Depends(require_confirmation)],
)
def admin_import(
    data: dict[str, Any] = Body(...),
    store: KeyValueStore = Depends(get_store),
    current_admin: User = Depends(require_admin),
):
    users, appointments = import_snapshot(store, data)
    return ImportResult(users=users, appointments=appointments)


@router.post(
    "/reset",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Wipe and reseed sample data (requires ?confirm=true)",
    dependencies=[Depends(require_confirmation)],
)
def admin_reset(
    store: KeyValueStore = Depends(get_store),
    current_admin: User = Depends(require_admin),
):
    reset_sample_data(store)
    return None


@router.delete(
    "/data",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete ALL data (requires ?confirm=true)",
    dependencies=[Depends(require_confirmation)],
)
def admin_clear_data(
    store: KeyValueStore = Depends(get_store),
    current_admin: User = Depends(require_admin),
):
    clear_all_data(store, current_admin)
    return None
