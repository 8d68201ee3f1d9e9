# -*- coding: utf-8 -*-
"""Prescription endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import Response

from .. import activity
from ..auth.security import get_current_user, require_nutritionist, require_patient
from ..errors import NotFoundError, ValidationError
from ..patients.api import current_patient_profile
from ..patients.storage import get_managed_patient, get_visible_patient, is_linked_patient
from .models import (
    CsvImportRequest,
    CsvImportResponse,
    Meal,
    Prescription,
    PrescriptionCreateRequest,
    PrescriptionDuplicateRequest,
    PrescriptionPublishRequest,
    PrescriptionsResponse,
    PrescriptionUpdateRequest,
)
from .storage import (
    create_prescription,
    delete_prescription,
    duplicate_prescription,
    get_latest_published_prescription,
    get_managed_prescription,
    get_visible_prescription,
    list_prescriptions_by_patient,
    list_published_by_patient,
    publish_prescription,
    update_prescription,
)
from .transfer import export_document, export_filename, meals_from_csv

router = APIRouter(prefix="/api/prescriptions", tags=["Prescriptions"])
patient_router = APIRouter(prefix="/api/patients", tags=["Prescriptions"])
self_router = APIRouter(prefix="/api/patient", tags=["Patient"])


def _dump_meals(meals: list[Meal]) -> list[dict]:
    return [m.model_dump(mode="json") for m in meals]


@router.post("", response_model=Prescription, status_code=201, summary="Create a draft prescription")
def create_prescription_api(request: PrescriptionCreateRequest, user: dict = Depends(require_nutritionist)):
    get_managed_patient(request.patient_id, user)
    return create_prescription(
        patient_id=request.patient_id,
        nutritionist_id=user["id"],
        title=request.title,
        meals=_dump_meals(request.meals),
        general_notes=request.general_notes,
    )


@router.post("/import/csv", response_model=CsvImportResponse, summary="Parse a CSV meal plan (not persisted)")
def import_csv_api(request: CsvImportRequest, user: dict = Depends(require_nutritionist)):
    return CsvImportResponse(meals=meals_from_csv(request.content))


@router.get("/{prescription_id}", response_model=Prescription, summary="Get a prescription")
def get_prescription_api(prescription_id: str, user: dict = Depends(get_current_user)):
    prescription = get_visible_prescription(prescription_id, user)
    if user["role"] == "patient":
        activity.log_activity(user["id"], activity.VIEW_PRESCRIPTION, prescription_id)
    return prescription


@router.put("/{prescription_id}", response_model=Prescription, summary="Save the whole prescription document")
def update_prescription_api(
    prescription_id: str,
    request: PrescriptionUpdateRequest,
    user: dict = Depends(require_nutritionist),
):
    get_managed_prescription(prescription_id, user)
    return update_prescription(
        prescription_id,
        meals=_dump_meals(request.meals),
        title=request.title,
        general_notes=request.general_notes,
    )


@router.delete("/{prescription_id}", summary="Delete a draft prescription")
def delete_prescription_api(
    prescription_id: str,
    confirm: bool = Query(default=False, description="Must be true"),
    user: dict = Depends(require_nutritionist),
):
    get_managed_prescription(prescription_id, user)
    if not confirm:
        raise ValidationError("Confirmation required: pass confirm=true")
    delete_prescription(prescription_id)
    return {"status": "ok", "prescription_id": prescription_id}


@router.post("/{prescription_id}/publish", response_model=Prescription, summary="Publish a prescription")
def publish_prescription_api(
    prescription_id: str,
    request: Optional[PrescriptionPublishRequest] = Body(default=None),
    user: dict = Depends(require_nutritionist),
):
    get_managed_prescription(prescription_id, user)
    return publish_prescription(prescription_id, expires_at=request.expires_at if request else None)


@router.post(
    "/{prescription_id}/duplicate",
    response_model=Prescription,
    status_code=201,
    summary="Duplicate a prescription as a new draft",
)
def duplicate_prescription_api(
    prescription_id: str,
    request: PrescriptionDuplicateRequest,
    user: dict = Depends(require_nutritionist),
):
    get_managed_prescription(prescription_id, user)
    return duplicate_prescription(prescription_id, request.title)


@router.get("/{prescription_id}/export", summary="Download the prescription as JSON")
def export_prescription_api(prescription_id: str, user: dict = Depends(get_current_user)):
    prescription = get_visible_prescription(prescription_id, user)
    meals = [Meal.model_validate(m) for m in prescription["meals"]]
    body = export_document(prescription["title"], prescription.get("general_notes"), meals)
    filename = export_filename(prescription["title"], "json")
    return Response(
        content=body.encode("utf-8"),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ---------- per patient ----------


@patient_router.get("/{patient_id}/prescriptions", response_model=PrescriptionsResponse, summary="List a patient's prescriptions")
def list_patient_prescriptions_api(patient_id: str, user: dict = Depends(require_nutritionist)):
    get_managed_patient(patient_id, user)
    items = list_prescriptions_by_patient(patient_id)
    return PrescriptionsResponse(patient_id=patient_id, count=len(items), prescriptions=items)


@patient_router.get("/{patient_id}/latest-prescription", response_model=Prescription, summary="Latest published prescription")
def latest_prescription_api(patient_id: str, user: dict = Depends(get_current_user)):
    patient = get_visible_patient(patient_id, user)
    prescription = get_latest_published_prescription(patient_id)
    if not prescription:
        raise NotFoundError("No published prescription")
    if is_linked_patient(user, patient):
        activity.log_activity(user["id"], activity.VIEW_PRESCRIPTION, prescription["id"])
    return prescription


# ---------- patient self-service ----------


@self_router.get("/my-prescription", response_model=Prescription, summary="My current prescription")
def my_prescription_api(user: dict = Depends(require_patient)):
    patient = current_patient_profile(user)
    prescription = get_latest_published_prescription(patient["id"])
    if not prescription:
        raise NotFoundError("No published prescription")
    activity.log_activity(user["id"], activity.VIEW_PRESCRIPTION, prescription["id"])
    return prescription


@self_router.get("/my-prescriptions", response_model=PrescriptionsResponse, summary="My published prescriptions")
def my_prescriptions_api(user: dict = Depends(require_patient)):
    patient = current_patient_profile(user)
    items = list_published_by_patient(patient["id"])
    return PrescriptionsResponse(patient_id=patient["id"], count=len(items), prescriptions=items)
