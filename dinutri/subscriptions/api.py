# -*- coding: utf-8 -*-
"""Subscriptions: API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from .. import activity
from ..auth.security import get_current_user, require_nutritionist
from ..errors import NotFoundError, ValidationError
from ..patients.storage import get_managed_patient, get_visible_patient, is_owner
from .models import (
    CurrentSubscriptionResponse,
    PendingSubscriptionsResponse,
    Subscription,
    SubscriptionCreateRequest,
    SubscriptionManageRequest,
)
from .storage import (
    create_subscription,
    delete_subscription,
    get_current_subscription,
    get_subscription,
    list_pending_subscriptions,
    manage_subscription,
    request_subscription,
)

router = APIRouter(prefix="/api/subscriptions", tags=["Subscriptions"])
patient_router = APIRouter(prefix="/api/patients", tags=["Subscriptions"])
nutritionist_router = APIRouter(prefix="/api/nutritionist/subscriptions", tags=["Subscriptions"])


def _managed_subscription(subscription_id: str, user: dict) -> dict:
    subscription = get_subscription(subscription_id)
    if not subscription:
        raise NotFoundError("Subscription not found")
    get_managed_patient(subscription["patient_id"], user)
    return subscription


@patient_router.get("/{patient_id}/subscription", response_model=CurrentSubscriptionResponse, summary="Current subscription")
def current_subscription_api(patient_id: str, user: dict = Depends(get_current_user)):
    get_visible_patient(patient_id, user)
    return CurrentSubscriptionResponse(patient_id=patient_id, subscription=get_current_subscription(patient_id))


@patient_router.post(
    "/{patient_id}/subscription",
    response_model=Subscription,
    status_code=201,
    summary="Assign a plan (nutritionist) or request one (patient)",
)
def create_subscription_api(patient_id: str, request: SubscriptionCreateRequest, user: dict = Depends(get_current_user)):
    patient = get_visible_patient(patient_id, user)
    if is_owner(user, patient):
        return create_subscription(
            patient_id=patient_id,
            plan_type=request.plan_type.value,
            expires_at=request.expires_at,
        )
    subscription = request_subscription(patient_id=patient_id, plan_type=request.plan_type.value)
    activity.log_activity(user["id"], activity.SUBSCRIPTION_REQUEST, request.plan_type.value)
    return subscription


@nutritionist_router.get("/pending", response_model=PendingSubscriptionsResponse, summary="Subscriptions awaiting approval")
def pending_subscriptions_api(user: dict = Depends(require_nutritionist)):
    rows = list_pending_subscriptions(None if user["role"] == "admin" else user["id"])
    return PendingSubscriptionsResponse(count=len(rows), subscriptions=rows)


@router.patch("/{subscription_id}/manage", response_model=Subscription, summary="Approve or reject a request")
def manage_subscription_api(
    subscription_id: str,
    request: SubscriptionManageRequest,
    user: dict = Depends(require_nutritionist),
):
    _managed_subscription(subscription_id, user)
    return manage_subscription(subscription_id, request.action)


@router.delete("/{subscription_id}", summary="Delete a subscription")
def delete_subscription_api(
    subscription_id: str,
    confirm: bool = Query(default=False, description="Must be true"),
    user: dict = Depends(require_nutritionist),
):
    _managed_subscription(subscription_id, user)
    if not confirm:
        raise ValidationError("Confirmation required: pass confirm=true")
    delete_subscription(subscription_id)
    return {"status": "ok", "subscription_id": subscription_id}
