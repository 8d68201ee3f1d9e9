# -*- coding: utf-8 -*-
"""Subscriptions: Pydantic models."""

from __future__ import annotations

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ..timestamps import normalize_timestamp


class PlanType(str, Enum):
    free = "free"
    monthly = "monthly"
    quarterly = "quarterly"


class SubscriptionStatus(str, Enum):
    active = "active"
    pending_payment = "pending_payment"
    pending_approval = "pending_approval"
    expired = "expired"
    canceled = "canceled"


class SubscriptionCreateRequest(BaseModel):
    plan_type: PlanType
    expires_at: Optional[str] = Field(None, description="Only honoured for nutritionist-created plans")

    @field_validator("expires_at")
    @classmethod
    def utc_expiry(cls, value: Optional[str]) -> Optional[str]:
        return normalize_timestamp(value)


class SubscriptionManageRequest(BaseModel):
    action: Literal["approve", "reject"]


class Subscription(BaseModel):
    id: str
    patient_id: str
    plan_type: PlanType
    status: SubscriptionStatus
    start_date: Optional[str] = None
    expires_at: Optional[str] = None
    created_at: str
    updated_at: str


class CurrentSubscriptionResponse(BaseModel):
    patient_id: str
    subscription: Optional[Subscription] = None


class PendingSubscription(Subscription):
    patient_name: str
    patient_email: Optional[str] = None


class PendingSubscriptionsResponse(BaseModel):
    count: int
    subscriptions: List[PendingSubscription]
