# -*- coding: utf-8 -*-
"""Auth: Pydantic models."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class UserRole(str, Enum):
    admin = "admin"
    nutritionist = "nutritionist"
    patient = "patient"


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=1, max_length=128)


class UserPublic(BaseModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: UserRole
    created_at: str
    updated_at: Optional[str] = None


class AuthResponse(BaseModel):
    user: UserPublic
    token: str


class UserCreateRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=6, max_length=128)
    first_name: Optional[str] = Field(None, max_length=128)
    last_name: Optional[str] = Field(None, max_length=128)
    role: UserRole = UserRole.nutritionist


class UserUpdateRequest(BaseModel):
    email: Optional[str] = Field(None, min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+$")
    first_name: Optional[str] = Field(None, max_length=128)
    last_name: Optional[str] = Field(None, max_length=128)
    role: Optional[UserRole] = None


class PasswordChangeRequest(BaseModel):
    password: str = Field(..., min_length=6, max_length=128)


class UsersResponse(BaseModel):
    count: int
    users: List[UserPublic]


class DeletionCheckResponse(BaseModel):
    can_delete: bool
    blockers: List[str] = Field(default_factory=list)
