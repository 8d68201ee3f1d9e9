# -*- coding: utf-8 -*-
"""Diary: Pydantic models (mood + food photo entries per meal and day)."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class MoodLevel(str, Enum):
    very_sad = "very_sad"
    sad = "sad"
    neutral = "neutral"
    happy = "happy"
    very_happy = "very_happy"


class DiaryKey(BaseModel):
    prescription_id: str = Field(..., min_length=1)
    meal_id: str = Field(..., min_length=1)
    entry_date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$", description="YYYY-MM-DD")


class MoodEntryUpsertRequest(DiaryKey):
    mood_before: Optional[MoodLevel] = None
    mood_after: Optional[MoodLevel] = None
    notes: Optional[str] = Field(None, max_length=2000)


class MoodEntryUpdateRequest(BaseModel):
    mood_before: Optional[MoodLevel] = None
    mood_after: Optional[MoodLevel] = None
    notes: Optional[str] = Field(None, max_length=2000)


class MoodEntry(MoodEntryUpsertRequest):
    id: str
    patient_id: str
    created_at: str
    updated_at: str


class MoodEntriesResponse(BaseModel):
    count: int
    entries: List[MoodEntry]


class FoodDiaryEntryUpsertRequest(DiaryKey):
    photo_url: Optional[str] = Field(None, max_length=2048, description="URL of the uploaded photo")
    notes: Optional[str] = Field(None, max_length=2000)


class FoodDiaryEntry(FoodDiaryEntryUpsertRequest):
    id: str
    patient_id: str
    created_at: str
    updated_at: str


class FoodDiaryEntriesResponse(BaseModel):
    count: int
    entries: List[FoodDiaryEntry]
