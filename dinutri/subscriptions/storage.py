# -*- coding: utf-8 -*-
"""Subscriptions: SQLite storage helpers."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..app_db import db_conn
from ..config import settings
from ..errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)

PLAN_DURATION_DAYS = {"monthly": 30, "quarterly": 90}
DEFAULT_DURATION_DAYS = 30
# Statuses that count as the patient's current plan.
OPEN_STATUSES = ("active", "pending_payment", "pending_approval")


def _iso(value: datetime) -> str:
    return value.isoformat(timespec="microseconds").replace("+00:00", "Z")


def _utc_now() -> str:
    return _iso(datetime.now(timezone.utc))


def effective_status(status: Optional[str], expires_at: Optional[str], now: Optional[str] = None) -> Optional[str]:
    """An `active` plan past its expiry reads as `expired`; the stored row is not rewritten."""
    if status == "active" and expires_at and expires_at < (now or _utc_now()):
        return "expired"
    return status


def _with_effective_status(row: Any, now: Optional[str] = None) -> Dict[str, Any]:
    data = dict(row)
    data["status"] = effective_status(data["status"], data.get("expires_at"), now)
    return data


def plan_expiry(plan_type: str, start: datetime) -> str:
    return _iso(start + timedelta(days=PLAN_DURATION_DAYS.get(plan_type, DEFAULT_DURATION_DAYS)))


def get_subscription(subscription_id: str) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute("SELECT * FROM subscriptions WHERE id = ?", (subscription_id,)).fetchone()
    return _with_effective_status(row) if row else None


def get_current_subscription(patient_id: str) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute(
            "SELECT * FROM subscriptions WHERE patient_id = ? ORDER BY created_at DESC LIMIT 1",
            (patient_id,),
        ).fetchone()
    return _with_effective_status(row) if row else None


def _insert(conn, *, patient_id: str, plan_type: str, status: str, start_date: Optional[str], expires_at: Optional[str]) -> str:
    subscription_id = str(uuid4())
    now = _utc_now()
    conn.execute(
        """
        INSERT INTO subscriptions (id, patient_id, plan_type, status, start_date, expires_at, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (subscription_id, patient_id, plan_type, status, start_date, expires_at, now, now),
    )
    return subscription_id


def create_subscription(*, patient_id: str, plan_type: str, expires_at: Optional[str] = None) -> Dict[str, Any]:
    """Nutritionist-assigned plan: active immediately, replacing any open one."""
    start = datetime.now(timezone.utc)
    if expires_at is None and plan_type != "free":
        expires_at = plan_expiry(plan_type, start)
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            f"""
            UPDATE subscriptions SET status = 'canceled', updated_at = ?
            WHERE patient_id = ? AND status IN ({", ".join("?" for _ in OPEN_STATUSES)})
            """,
            (_iso(start), patient_id, *OPEN_STATUSES),
        )
        subscription_id = _insert(
            conn,
            patient_id=patient_id,
            plan_type=plan_type,
            status="active",
            start_date=_iso(start),
            expires_at=expires_at,
        )
        row = conn.execute("SELECT * FROM subscriptions WHERE id = ?", (subscription_id,)).fetchone()
    logger.info("Subscription %s (%s) created for patient %s", subscription_id, plan_type, patient_id)
    return _with_effective_status(row)


def request_subscription(*, patient_id: str, plan_type: str) -> Dict[str, Any]:
    """Patient-initiated request, waiting for the nutritionist's approval."""
    now = _utc_now()
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM subscriptions WHERE patient_id = ? AND status IN ('active', 'pending_approval', 'pending_payment')",
            (patient_id,),
        ).fetchall()
        for row in rows:
            current = _with_effective_status(row, now)
            if current["status"] != "expired":
                raise ConflictError("Já existe uma assinatura ativa ou pendente para este paciente.")
        subscription_id = _insert(
            conn,
            patient_id=patient_id,
            plan_type=plan_type,
            status="pending_approval",
            start_date=None,
            expires_at=None,
        )
        row = conn.execute("SELECT * FROM subscriptions WHERE id = ?", (subscription_id,)).fetchone()
    logger.info("Subscription %s requested by patient %s", subscription_id, patient_id)
    return dict(row)


def list_pending_subscriptions(owner_id: Optional[str] = None) -> List[Dict[str, Any]]:
    sql = """
        SELECT s.*, p.name AS patient_name, p.email AS patient_email
        FROM subscriptions s
        JOIN patients p ON p.id = s.patient_id
        WHERE s.status IN ('pending_approval', 'pending_payment')
    """
    params: list[Any] = []
    if owner_id:
        sql += " AND p.owner_id = ?"
        params.append(owner_id)
    sql += " ORDER BY s.created_at ASC"
    with db_conn(settings.app_db_path) as conn:
        return [dict(r) for r in conn.execute(sql, params).fetchall()]


def manage_subscription(subscription_id: str, action: str) -> Dict[str, Any]:
    """Approve (activate for the plan's duration) or reject (cancel) a pending request."""
    start = datetime.now(timezone.utc)
    now = _iso(start)
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute("SELECT * FROM subscriptions WHERE id = ?", (subscription_id,)).fetchone()
        if not row:
            raise NotFoundError("Subscription not found")
        if row["status"] not in ("pending_approval", "pending_payment"):
            raise ConflictError(f"Assinatura não está pendente (status: {row['status']}).")
        if action == "approve":
            cur = conn.execute(
                """
                UPDATE subscriptions SET status = 'active', start_date = ?, expires_at = ?, updated_at = ?
                WHERE id = ? AND status = ?
                """,
                (now, plan_expiry(row["plan_type"], start), now, subscription_id, row["status"]),
            )
        else:
            cur = conn.execute(
                "UPDATE subscriptions SET status = 'canceled', updated_at = ? WHERE id = ? AND status = ?",
                (now, subscription_id, row["status"]),
            )
        if cur.rowcount != 1:
            raise ConflictError("Assinatura alterada por outra operação.")
        updated = conn.execute("SELECT * FROM subscriptions WHERE id = ?", (subscription_id,)).fetchone()
    logger.info("Subscription %s %s", subscription_id, "approved" if action == "approve" else "rejected")
    return _with_effective_status(updated)


def delete_subscription(subscription_id: str) -> None:
    with db_conn(settings.app_db_path) as conn:
        cur = conn.execute("DELETE FROM subscriptions WHERE id = ?", (subscription_id,))
        if cur.rowcount == 0:
            raise NotFoundError("Subscription not found")
    logger.info("Subscription %s deleted", subscription_id)
