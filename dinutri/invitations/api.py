# -*- coding: utf-8 -*-
"""Invitations: API endpoints (minting, validation, patient self-registration)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response

from ..auth.api import issue_session, user_public
from ..auth.security import hash_password, require_nutritionist
from ..auth.storage import get_user_by_id
from .models import (
    Invitation,
    InvitationCreateRequest,
    InvitationValidateResponse,
    PatientRegisterRequest,
    PatientRegisterResponse,
)
from .storage import create_invitation, get_valid_invitation, register_patient

router = APIRouter(prefix="/api/invitations", tags=["Invitations"])
register_router = APIRouter(prefix="/api/patient", tags=["Patient"])


@router.post("", response_model=Invitation, status_code=201, summary="Invite a patient")
def create_invitation_api(request: InvitationCreateRequest, user: dict = Depends(require_nutritionist)):
    return create_invitation(nutritionist_id=user["id"], email=request.email)


@router.get("/validate", response_model=InvitationValidateResponse, summary="Check an invitation token")
def validate_invitation_api(token: str = Query(..., min_length=1)):
    invitation = get_valid_invitation(token)
    nutritionist = get_user_by_id(invitation["nutritionist_id"]) or {}
    name = " ".join(p for p in (nutritionist.get("first_name"), nutritionist.get("last_name")) if p) or None
    return InvitationValidateResponse(
        valid=True,
        email=invitation["email"],
        nutritionist_name=name,
        expires_at=invitation["expires_at"],
    )


@register_router.post("/register", response_model=PatientRegisterResponse, status_code=201, summary="Register with an invitation")
def register_patient_api(request: PatientRegisterRequest, response: Response):
    fields = request.model_dump(exclude={"token", "password"}, mode="json")
    user, patient = register_patient(
        token=request.token,
        password_hash=hash_password(request.password),
        fields=fields,
    )
    token = issue_session(response, user)
    return PatientRegisterResponse(user=user_public(user), token=token, patient=patient)
