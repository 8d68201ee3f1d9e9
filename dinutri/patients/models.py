# -*- coding: utf-8 -*-
"""Patients: Pydantic models.

A patient always has an owning nutritionist. The `user_id` link stays empty
until the person gets a login of their own (manual creation with a password,
or self-registration through an invitation).
"""

from __future__ import annotations

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

Sex = Literal["M", "F", "Outro"]


class Goal(str, Enum):
    lose_weight = "lose_weight"
    maintain_weight = "maintain_weight"
    gain_weight = "gain_weight"


class AlcoholConsumption(str, Enum):
    no = "no"
    moderate = "moderate"
    yes = "yes"


class Biotype(str, Enum):
    gain_weight_easily = "gain_weight_easily"
    hard_to_gain = "hard_to_gain"
    gain_muscle_easily = "gain_muscle_easily"


class PatientFields(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = Field(None, max_length=254, pattern=r"^[^@\s]+@[^@\s]+$")
    birth_date: Optional[str] = Field(None, pattern=r"^\d{4}-\d{2}-\d{2}$", description="YYYY-MM-DD")
    sex: Optional[Sex] = None
    height_cm: Optional[int] = Field(None, ge=0, le=300)
    weight_kg: Optional[float] = Field(None, ge=0, le=500)
    goal: Optional[Goal] = None
    activity_level: Optional[int] = Field(None, ge=1, le=5)
    intolerances: List[str] = Field(default_factory=list)
    notes: Optional[str] = Field(None, max_length=4000)


class PatientCreateRequest(PatientFields):
    password: Optional[str] = Field(
        None, min_length=6, max_length=128, description="When given, a patient login is created too"
    )


class PatientUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[str] = Field(None, max_length=254, pattern=r"^[^@\s]+@[^@\s]+$")
    birth_date: Optional[str] = Field(None, pattern=r"^\d{4}-\d{2}-\d{2}$")
    sex: Optional[Sex] = None
    height_cm: Optional[int] = Field(None, ge=0, le=300)
    weight_kg: Optional[float] = Field(None, ge=0, le=500)
    goal: Optional[Goal] = None
    activity_level: Optional[int] = Field(None, ge=1, le=5)
    intolerances: Optional[List[str]] = None
    notes: Optional[str] = Field(None, max_length=4000)


class Patient(BaseModel):
    id: str
    owner_id: str
    user_id: Optional[str] = None
    name: str
    email: Optional[str] = None
    birth_date: Optional[str] = None
    sex: Optional[Sex] = None
    height_cm: Optional[int] = None
    weight_kg: Optional[float] = None
    goal: Optional[Goal] = None
    activity_level: Optional[int] = None
    intolerances: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    created_at: str
    updated_at: str


class PatientsResponse(BaseModel):
    count: int
    patients: List[Patient]


class AnamnesisRecordCreateRequest(BaseModel):
    weight_kg: Optional[float] = Field(None, ge=0, le=500)
    goal: Optional[Goal] = None
    activity_level: Optional[int] = Field(None, ge=1, le=5)
    liked_healthy_foods: List[str] = Field(default_factory=list)
    disliked_foods: List[str] = Field(default_factory=list)
    has_intolerance: bool = False
    intolerances: List[str] = Field(default_factory=list)
    can_eat_morning_solids: bool = False
    meals_per_day_current: Optional[int] = Field(None, ge=1, le=12)
    meals_per_day_willing: Optional[int] = Field(None, ge=1, le=12)
    alcohol_consumption: Optional[AlcoholConsumption] = None
    supplements: Optional[str] = Field(None, max_length=2000)
    diseases: Optional[str] = Field(None, max_length=2000)
    medications: Optional[str] = Field(None, max_length=2000)
    biotype: Optional[Biotype] = None
    notes: Optional[str] = Field(None, max_length=4000)


class AnamnesisRecord(AnamnesisRecordCreateRequest):
    id: str
    patient_id: str
    created_at: str


class AnamnesisRecordsResponse(BaseModel):
    patient_id: str
    count: int
    records: List[AnamnesisRecord]


class DeletionCheckResponse(BaseModel):
    can_delete: bool
    blockers: List[str] = Field(default_factory=list)
