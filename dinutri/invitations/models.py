# -*- coding: utf-8 -*-
"""Invitations: Pydantic models."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from ..auth.models import AuthResponse
from ..patients.models import Patient, PatientFields


class InvitationStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    expired = "expired"


class InvitationCreateRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+$")


class Invitation(BaseModel):
    id: str
    email: str
    nutritionist_id: str
    token: str
    status: InvitationStatus
    expires_at: str
    created_at: str
    accepted_at: Optional[str] = None


class InvitationValidateResponse(BaseModel):
    valid: bool
    email: str
    nutritionist_name: Optional[str] = None
    expires_at: str


class PatientRegisterRequest(PatientFields):
    """Self-registration; the email always comes from the invitation."""

    token: str = Field(..., min_length=8, max_length=256)
    password: str = Field(..., min_length=6, max_length=128)


class PatientRegisterResponse(AuthResponse):
    patient: Patient
