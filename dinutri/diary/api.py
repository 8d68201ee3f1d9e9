# -*- coding: utf-8 -*-
"""Diary: API endpoints for the patient's mood and food photo entries."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from .. import activity
from ..auth.security import require_patient
from ..errors import ForbiddenError, NotFoundError, ValidationError
from ..patients.api import current_patient_profile
from ..prescriptions.storage import get_visible_prescription
from .models import (
    FoodDiaryEntriesResponse,
    FoodDiaryEntry,
    FoodDiaryEntryUpsertRequest,
    MoodEntriesResponse,
    MoodEntry,
    MoodEntryUpdateRequest,
    MoodEntryUpsertRequest,
)
from .storage import (
    get_mood_entry,
    list_food_diary_entries,
    list_mood_entries,
    update_mood_entry,
    upsert_food_diary_entry,
    upsert_mood_entry,
)

mood_router = APIRouter(prefix="/api/mood-entries", tags=["Diary"])
food_router = APIRouter(prefix="/api/food-diary", tags=["Diary"])

_DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


def _entry_key(request, user: dict) -> dict:
    """Check the entry points at a meal of one of the caller's published prescriptions."""
    prescription = get_visible_prescription(request.prescription_id, user)
    if not any(m.get("id") == request.meal_id for m in prescription["meals"]):
        raise ValidationError("Meal not found in this prescription")
    return {
        "prescription_id": request.prescription_id,
        "meal_id": request.meal_id,
        "entry_date": request.entry_date,
    }


@mood_router.post("", response_model=MoodEntry, summary="Record the mood around a meal (one per meal and day)")
def upsert_mood_api(request: MoodEntryUpsertRequest, user: dict = Depends(require_patient)):
    patient = current_patient_profile(user)
    key = _entry_key(request, user)
    entry = upsert_mood_entry(
        patient_id=patient["id"],
        key=key,
        values=request.model_dump(include={"mood_before", "mood_after", "notes"}, mode="json"),
    )
    activity.log_activity(user["id"], activity.MOOD_ENTRY, entry["id"])
    return entry


@mood_router.get("", response_model=MoodEntriesResponse, summary="List my mood entries")
def list_mood_api(
    prescription_id: str | None = Query(default=None),
    start: str | None = Query(default=None, pattern=_DATE_PATTERN),
    end: str | None = Query(default=None, pattern=_DATE_PATTERN),
    user: dict = Depends(require_patient),
):
    patient = current_patient_profile(user)
    entries = list_mood_entries(patient["id"], prescription_id=prescription_id, start=start, end=end)
    return MoodEntriesResponse(count=len(entries), entries=entries)


@mood_router.put("/{entry_id}", response_model=MoodEntry, summary="Update a mood entry")
def update_mood_api(entry_id: str, request: MoodEntryUpdateRequest, user: dict = Depends(require_patient)):
    patient = current_patient_profile(user)
    entry = get_mood_entry(entry_id)
    if not entry:
        raise NotFoundError("Mood entry not found")
    if entry["patient_id"] != patient["id"]:
        raise ForbiddenError("Forbidden")
    return update_mood_entry(entry_id, request.model_dump(exclude_unset=True, mode="json"))


@food_router.post("/entries", response_model=FoodDiaryEntry, summary="Record a meal photo (one per meal and day)")
def upsert_food_diary_api(request: FoodDiaryEntryUpsertRequest, user: dict = Depends(require_patient)):
    patient = current_patient_profile(user)
    key = _entry_key(request, user)
    entry = upsert_food_diary_entry(
        patient_id=patient["id"],
        key=key,
        values=request.model_dump(include={"photo_url", "notes"}),
    )
    activity.log_activity(user["id"], activity.FOOD_DIARY_ENTRY, entry["id"])
    return entry


@food_router.get("/entries", response_model=FoodDiaryEntriesResponse, summary="List my food diary")
def list_food_diary_api(
    prescription_id: str | None = Query(default=None),
    start: str | None = Query(default=None, pattern=_DATE_PATTERN),
    end: str | None = Query(default=None, pattern=_DATE_PATTERN),
    user: dict = Depends(require_patient),
):
    patient = current_patient_profile(user)
    entries = list_food_diary_entries(patient["id"], prescription_id=prescription_id, start=start, end=end)
    return FoodDiaryEntriesResponse(count=len(entries), entries=entries)
