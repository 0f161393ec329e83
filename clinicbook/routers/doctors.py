# clinicbook/routers/doctors.py
from __future__ import annotations

import datetime as dt

from fastapi import APIRouter, Depends, Query

from clinicbook.db.sql import get_store
from clinicbook.db.store import KeyValueStore
from clinicbook.dependencies import require_roles
from clinicbook.modules.doctors import availability as availability_svc
from clinicbook.modules.doctors.schemas import (
    AvailabilityPayload,
    AvailabilityPublic,
    DoctorCard,
    DoctorSearchParams,
    FreeTimesResponse,
    RatingRequest,
    SlotToggle,
)
from clinicbook.modules.doctors.search import list_specialties, search_doctors
from clinicbook.modules.doctors.service import rate_doctor
from clinicbook.modules.users.models import User
from clinicbook.modules.users.service import get_doctor

router = APIRouter(prefix="/doctors", tags=["doctors"])


@router.get("", response_model=list[DoctorCard], summary="Search approved doctors")
def doctors_index(
    params: DoctorSearchParams = Depends(),
    store: KeyValueStore = Depends(get_store),
):
    doctors = search_doctors(store, params.q, params.specialty, params.location)
    return [DoctorCard.model_validate(d) for d in doctors]


@router.get("/specialties", response_model=list[str])
def doctors_specialties(store: KeyValueStore = Depends(get_store)):
    return list_specialties(store)


# The doctor's own template; declared before /{doctor_id} routes
@router.get("/me/availability", response_model=AvailabilityPublic)
def my_availability(
    store: KeyValueStore = Depends(get_store),
    user: User = Depends(require_roles("doctor")),
):
    return AvailabilityPublic(
        doctor_id=user.id,
        availability=availability_svc.get_availability(store, user.id),
    )


@router.put("/me/availability", response_model=AvailabilityPublic)
def save_my_availability(
    payload: AvailabilityPayload,
    store: KeyValueStore = Depends(get_store),
    user: User = Depends(require_roles("doctor")),
):
    updated = availability_svc.save_availability(store, user.id, payload.availability)
    return AvailabilityPublic(doctor_id=updated.id, availability=updated.availability or [])


@router.post("/me/availability/toggle", response_model=AvailabilityPublic)
def toggle_my_slot(
    payload: SlotToggle,
    store: KeyValueStore = Depends(get_store),
    user: User = Depends(require_roles("doctor")),
):
    updated = availability_svc.toggle_and_save(store, user.id, payload.day.value, payload.time)
    return AvailabilityPublic(doctor_id=updated.id, availability=updated.availability or [])


@router.get("/{doctor_id}", response_model=DoctorCard)
def doctor_detail(doctor_id: str, store: KeyValueStore = Depends(get_store)):
    return DoctorCard.model_validate(get_doctor(store, doctor_id))


@router.get("/{doctor_id}/availability", response_model=AvailabilityPublic)
def doctor_availability(doctor_id: str, store: KeyValueStore = Depends(get_store)):
    return AvailabilityPublic(
        doctor_id=doctor_id,
        availability=availability_svc.get_availability(store, doctor_id),
    )


@router.get("/{doctor_id}/free-times", response_model=FreeTimesResponse)
def doctor_free_times(
    doctor_id: str,
    date: dt.date = Query(..., description="ISO date"),
    store: KeyValueStore = Depends(get_store),
):
    get_doctor(store, doctor_id)
    return FreeTimesResponse(
        doctor_id=doctor_id,
        date=date.isoformat(),
        times=availability_svc.available_times(store, doctor_id, date),
    )


@router.post("/{doctor_id}/rating", response_model=DoctorCard)
def doctor_rate(
    doctor_id: str,
    payload: RatingRequest,
    store: KeyValueStore = Depends(get_store),
    user: User = Depends(require_roles("patient")),
):
    return DoctorCard.model_validate(rate_doctor(store, user, doctor_id, payload.score))
