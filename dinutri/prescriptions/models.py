# -*- coding: utf-8 -*-
"""Prescriptions: Pydantic models.

The meal plan is a nested document: meals -> items -> substitutes. Meals and
items carry opaque string ids so the editor can target them without relying
on array positions; the order of both lists is the display order.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..timestamps import normalize_timestamp


def new_id() -> str:
    return str(uuid4())


class PrescriptionStatus(str, Enum):
    draft = "draft"
    published = "published"


class MealItem(BaseModel):
    # The editor patches these in place; assignments go through validation.
    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=new_id, min_length=1)
    description: str = ""
    amount: str = ""
    substitutes: List[str] = Field(default_factory=list)


class Meal(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=new_id, min_length=1)
    name: str = ""
    notes: Optional[str] = None
    items: List[MealItem] = Field(default_factory=list)


def check_unique_ids(meals: List[Meal]) -> List[Meal]:
    meal_ids = [m.id for m in meals]
    if len(set(meal_ids)) != len(meal_ids):
        raise ValueError("meal ids must be unique")
    item_ids = [i.id for m in meals for i in m.items]
    if len(set(item_ids)) != len(item_ids):
        raise ValueError("item ids must be unique")
    return meals


class PrescriptionCreateRequest(BaseModel):
    patient_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=200)
    general_notes: Optional[str] = Field(None, max_length=8000)
    meals: List[Meal] = Field(default_factory=list)

    @field_validator("meals")
    @classmethod
    def unique_ids(cls, meals: List[Meal]) -> List[Meal]:
        return check_unique_ids(meals)


class PrescriptionUpdateRequest(BaseModel):
    """Whole-document save: `meals` replaces the stored list."""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    general_notes: Optional[str] = Field(None, max_length=8000)
    meals: List[Meal]

    @field_validator("meals")
    @classmethod
    def unique_ids(cls, meals: List[Meal]) -> List[Meal]:
        return check_unique_ids(meals)


class PrescriptionPublishRequest(BaseModel):
    expires_at: Optional[str] = Field(None, description="ISO-8601 date or timestamp, stored in UTC")

    @field_validator("expires_at")
    @classmethod
    def utc_expiry(cls, value: Optional[str]) -> Optional[str]:
        return normalize_timestamp(value)


class PrescriptionDuplicateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)


class Prescription(BaseModel):
    id: str
    patient_id: str
    nutritionist_id: str
    title: str
    status: PrescriptionStatus
    meals: List[Meal] = Field(default_factory=list)
    general_notes: Optional[str] = None
    published_at: Optional[str] = None
    expires_at: Optional[str] = None
    created_at: str
    updated_at: str


class PrescriptionsResponse(BaseModel):
    patient_id: str
    count: int
    prescriptions: List[Prescription]


class PrescriptionDocument(BaseModel):
    """Shape of the JSON export file (camelCase keys)."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = ""
    general_notes: Optional[str] = Field("", alias="generalNotes")
    meals: List[Meal] = Field(default_factory=list)

    @field_validator("meals")
    @classmethod
    def unique_ids(cls, meals: List[Meal]) -> List[Meal]:
        return check_unique_ids(meals)


class CsvImportRequest(BaseModel):
    content: str = Field(..., description="CSV text, header included")


class CsvImportResponse(BaseModel):
    meals: List[Meal]
