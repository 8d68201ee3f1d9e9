# -*- coding: utf-8 -*-
"""Prescription storage helpers (SQLite)."""

from __future__ import annotations

import copy
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..app_db import db_conn
from ..config import settings
from ..errors import ForbiddenError, NotFoundError
from ..patients.storage import get_patient, is_linked_patient, is_owner

logger = logging.getLogger(__name__)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


def _row_to_prescription(row: Any) -> Dict[str, Any]:
    data = dict(row)
    raw = data.pop("meals_json", None)
    try:
        data["meals"] = json.loads(raw) if raw else []
    except ValueError:
        logger.warning("Prescription %s has an unreadable meals document", data.get("id"))
        data["meals"] = []
    return data


def _dump_meals(meals: List[Dict[str, Any]]) -> str:
    return json.dumps(meals, ensure_ascii=False)


def regenerate_ids(meals: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Deep copy of a meals document with a fresh id on every meal and item."""
    fresh = copy.deepcopy(meals)
    for meal in fresh:
        meal["id"] = str(uuid4())
        for item in meal.get("items") or []:
            item["id"] = str(uuid4())
    return fresh


def _fetch(conn, prescription_id: str) -> Optional[Dict[str, Any]]:
    row = conn.execute("SELECT * FROM prescriptions WHERE id = ?", (prescription_id,)).fetchone()
    return _row_to_prescription(row) if row else None


def create_prescription(
    *,
    patient_id: str,
    nutritionist_id: str,
    title: str,
    meals: Optional[List[Dict[str, Any]]] = None,
    general_notes: Optional[str] = None,
) -> Dict[str, Any]:
    prescription_id = str(uuid4())
    now = _utc_now()
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            """
            INSERT INTO prescriptions (
                id, patient_id, nutritionist_id, title, status, meals_json, general_notes,
                published_at, expires_at, created_at, updated_at
            ) VALUES (?, ?, ?, ?, 'draft', ?, ?, NULL, NULL, ?, ?)
            """,
            (prescription_id, patient_id, nutritionist_id, title, _dump_meals(meals or []), general_notes, now, now),
        )
        return _fetch(conn, prescription_id)


def get_prescription(prescription_id: str) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        return _fetch(conn, prescription_id)


def list_prescriptions_by_patient(patient_id: str) -> List[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM prescriptions WHERE patient_id = ? ORDER BY created_at DESC",
            (patient_id,),
        ).fetchall()
    return [_row_to_prescription(r) for r in rows]


def list_published_by_patient(patient_id: str) -> List[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(
            """
            SELECT * FROM prescriptions
            WHERE patient_id = ? AND status = 'published'
            ORDER BY published_at DESC
            """,
            (patient_id,),
        ).fetchall()
    return [_row_to_prescription(r) for r in rows]


def get_latest_published_prescription(patient_id: str) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute(
            """
            SELECT * FROM prescriptions
            WHERE patient_id = ? AND status = 'published'
            ORDER BY published_at DESC, created_at DESC
            LIMIT 1
            """,
            (patient_id,),
        ).fetchone()
    return _row_to_prescription(row) if row else None


def update_prescription(
    prescription_id: str,
    *,
    meals: List[Dict[str, Any]],
    title: Optional[str] = None,
    general_notes: Optional[str] = None,
) -> Dict[str, Any]:
    """Replace the whole meals document (plus title/notes when given) in one statement."""
    fields: Dict[str, Any] = {"meals_json": _dump_meals(meals)}
    if title is not None:
        fields["title"] = title
    if general_notes is not None:
        fields["general_notes"] = general_notes
    fields["updated_at"] = _utc_now()
    assignments = ", ".join(f"{k} = ?" for k in fields)
    with db_conn(settings.app_db_path) as conn:
        cur = conn.execute(
            f"UPDATE prescriptions SET {assignments} WHERE id = ?",
            (*fields.values(), prescription_id),
        )
        if cur.rowcount == 0:
            raise NotFoundError("Prescription not found")
        return _fetch(conn, prescription_id)


def publish_prescription(prescription_id: str, expires_at: Optional[str] = None) -> Dict[str, Any]:
    now = _utc_now()
    with db_conn(settings.app_db_path) as conn:
        current = _fetch(conn, prescription_id)
        if not current:
            raise NotFoundError("Prescription not found")
        if current["status"] == "published":
            return current
        conn.execute(
            """
            UPDATE prescriptions
            SET status = 'published', published_at = ?, expires_at = ?, updated_at = ?
            WHERE id = ? AND status = 'draft'
            """,
            (now, expires_at, now, prescription_id),
        )
        published = _fetch(conn, prescription_id)
    logger.info("Prescription %s published (expires_at=%s)", prescription_id, expires_at)
    return published


def duplicate_prescription(prescription_id: str, title: str) -> Dict[str, Any]:
    source = get_prescription(prescription_id)
    if not source:
        raise NotFoundError("Prescription not found")
    duplicate = create_prescription(
        patient_id=source["patient_id"],
        nutritionist_id=source["nutritionist_id"],
        title=title,
        meals=regenerate_ids(source["meals"]),
        general_notes=source.get("general_notes"),
    )
    logger.info("Prescription %s duplicated as %s", prescription_id, duplicate["id"])
    return duplicate


def delete_prescription(prescription_id: str) -> None:
    with db_conn(settings.app_db_path) as conn:
        current = _fetch(conn, prescription_id)
        if not current:
            raise NotFoundError("Prescription not found")
        if current["status"] == "published":
            raise ForbiddenError("Prescrições publicadas não podem ser excluídas.")
        cur = conn.execute("DELETE FROM prescriptions WHERE id = ? AND status = 'draft'", (prescription_id,))
        if cur.rowcount == 0:
            raise ForbiddenError("Prescrições publicadas não podem ser excluídas.")
    logger.info("Prescription %s deleted", prescription_id)


# ---------- access ----------


def get_managed_prescription(prescription_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
    """Prescription whose patient the caller owns (admins see all)."""
    prescription = get_prescription(prescription_id)
    if not prescription:
        raise NotFoundError("Prescription not found")
    patient = get_patient(prescription["patient_id"])
    if not patient or not is_owner(user, patient):
        raise ForbiddenError("Forbidden")
    return prescription


def get_visible_prescription(prescription_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
    """Owner access, or the linked patient once the prescription is published."""
    prescription = get_prescription(prescription_id)
    if not prescription:
        raise NotFoundError("Prescription not found")
    patient = get_patient(prescription["patient_id"])
    if patient and is_owner(user, patient):
        return prescription
    if patient and is_linked_patient(user, patient) and prescription["status"] == "published":
        return prescription
    # Drafts stay invisible to the patient.
    if patient and is_linked_patient(user, patient):
        raise NotFoundError("Prescription not found")
    raise ForbiddenError("Forbidden")
