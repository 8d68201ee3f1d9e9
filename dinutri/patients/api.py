# -*- coding: utf-8 -*-
"""Patients: API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from .. import activity
from ..auth.security import get_current_user, hash_password, require_nutritionist, require_patient
from ..errors import NotFoundError, ValidationError
from .models import (
    AnamnesisRecord,
    AnamnesisRecordCreateRequest,
    AnamnesisRecordsResponse,
    DeletionCheckResponse,
    Patient,
    PatientCreateRequest,
    PatientsResponse,
    PatientUpdateRequest,
)
from .storage import (
    add_anamnesis_record,
    create_patient,
    delete_patient,
    get_managed_patient,
    get_patient_by_user_id,
    get_visible_patient,
    is_linked_patient,
    list_all_patients,
    list_anamnesis_records,
    list_patients_by_owner,
    patient_deletion_blockers,
    update_patient,
)

router = APIRouter(prefix="/api/patients", tags=["Patients"])
self_router = APIRouter(prefix="/api/patient", tags=["Patient"])


@router.get("", response_model=PatientsResponse, summary="List my patients")
def list_patients_api(user: dict = Depends(require_nutritionist)):
    rows = list_all_patients() if user["role"] == "admin" else list_patients_by_owner(user["id"])
    return PatientsResponse(count=len(rows), patients=rows)


@router.post("", response_model=Patient, status_code=201, summary="Create a patient")
def create_patient_api(request: PatientCreateRequest, user: dict = Depends(require_nutritionist)):
    fields = request.model_dump(exclude={"password"}, mode="json")
    password_hash = None
    if request.password:
        if not request.email:
            raise ValidationError("Email is required to create a patient login")
        password_hash = hash_password(request.password)
    return create_patient(owner_id=user["id"], fields=fields, password_hash=password_hash)


@router.get("/{patient_id}", response_model=Patient, summary="Get a patient")
def get_patient_api(patient_id: str, user: dict = Depends(require_nutritionist)):
    return get_managed_patient(patient_id, user)


@router.put("/{patient_id}", response_model=Patient, summary="Update a patient")
def update_patient_api(patient_id: str, request: PatientUpdateRequest, user: dict = Depends(require_nutritionist)):
    get_managed_patient(patient_id, user)
    return update_patient(patient_id, request.model_dump(exclude_unset=True, mode="json"))


@router.get("/{patient_id}/deletion-check", response_model=DeletionCheckResponse, summary="Why a patient cannot be deleted")
def patient_deletion_check_api(patient_id: str, user: dict = Depends(require_nutritionist)):
    get_managed_patient(patient_id, user)
    blockers = patient_deletion_blockers(patient_id)
    return DeletionCheckResponse(can_delete=not blockers, blockers=blockers)


@router.delete("/{patient_id}", summary="Delete a patient")
def delete_patient_api(
    patient_id: str,
    confirm: bool = Query(default=False, description="Must be true"),
    user: dict = Depends(require_nutritionist),
):
    get_managed_patient(patient_id, user)
    if not confirm:
        raise ValidationError("Confirmation required: pass confirm=true")
    delete_patient(patient_id)
    return {"status": "ok", "patient_id": patient_id}


@router.post(
    "/{patient_id}/anamnesis-records",
    response_model=AnamnesisRecord,
    status_code=201,
    summary="Submit a follow-up anamnesis",
)
def create_anamnesis_api(patient_id: str, request: AnamnesisRecordCreateRequest, user: dict = Depends(get_current_user)):
    patient = get_visible_patient(patient_id, user)
    record = add_anamnesis_record(patient_id, request.model_dump(mode="json"))
    if is_linked_patient(user, patient):
        activity.log_activity(user["id"], activity.ANAMNESIS_SUBMITTED, record["id"])
    return record


@router.get("/{patient_id}/anamnesis-records", response_model=AnamnesisRecordsResponse, summary="List anamnesis records")
def list_anamnesis_api(patient_id: str, user: dict = Depends(get_current_user)):
    get_visible_patient(patient_id, user)
    records = list_anamnesis_records(patient_id)
    return AnamnesisRecordsResponse(patient_id=patient_id, count=len(records), records=records)


# ---------- patient self-service ----------


def current_patient_profile(user: dict) -> dict:
    patient = get_patient_by_user_id(user["id"])
    if not patient:
        raise NotFoundError("Patient profile not found")
    return patient


@self_router.get("/my-profile", response_model=Patient, summary="My patient profile")
def my_profile_api(user: dict = Depends(require_patient)):
    return current_patient_profile(user)
