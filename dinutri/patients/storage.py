# -*- coding: utf-8 -*-
"""Patients: SQLite storage helpers + ownership checks."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..app_db import db_conn
from ..auth.storage import insert_user
from ..config import settings
from ..errors import DependencyError, ForbiddenError, NotFoundError

logger = logging.getLogger(__name__)

_PATIENT_FIELDS = (
    "name",
    "email",
    "birth_date",
    "sex",
    "height_cm",
    "weight_kg",
    "goal",
    "activity_level",
    "intolerances",
    "notes",
)
# Anamnesis answers that are mirrored onto the patient profile.
_ANAMNESIS_PROFILE_FIELDS = ("weight_kg", "goal", "activity_level", "intolerances")


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


def _row_to_patient(row: Any) -> Dict[str, Any]:
    data = dict(row)
    raw = data.get("intolerances")
    try:
        data["intolerances"] = json.loads(raw) if raw else []
    except ValueError:
        data["intolerances"] = []
    return data


def _encode(field: str, value: Any) -> Any:
    if field == "intolerances":
        return json.dumps(list(value or []), ensure_ascii=False)
    if field == "email" and value:
        return value.lower().strip()
    return value


def get_patient(patient_id: str) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute("SELECT * FROM patients WHERE id = ?", (patient_id,)).fetchone()
    return _row_to_patient(row) if row else None


def get_patient_by_user_id(user_id: str) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute(
            "SELECT * FROM patients WHERE user_id = ? ORDER BY created_at DESC LIMIT 1", (user_id,)
        ).fetchone()
    return _row_to_patient(row) if row else None


def list_patients_by_owner(owner_id: str) -> List[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM patients WHERE owner_id = ? ORDER BY created_at DESC", (owner_id,)
        ).fetchall()
    return [_row_to_patient(r) for r in rows]


def list_all_patients() -> List[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute("SELECT * FROM patients ORDER BY created_at DESC").fetchall()
    return [_row_to_patient(r) for r in rows]


def insert_patient(conn, *, owner_id: str, fields: Dict[str, Any], user_id: Optional[str] = None) -> str:
    """Insert on an open connection; the caller owns the transaction."""
    patient_id = str(uuid4())
    now = _utc_now()
    values = {k: _encode(k, fields.get(k)) for k in _PATIENT_FIELDS}
    if values["intolerances"] is None:
        values["intolerances"] = "[]"
    conn.execute(
        f"""
        INSERT INTO patients (id, owner_id, user_id, {", ".join(_PATIENT_FIELDS)}, created_at, updated_at)
        VALUES (?, ?, ?, {", ".join("?" for _ in _PATIENT_FIELDS)}, ?, ?)
        """,
        (patient_id, owner_id, user_id, *values.values(), now, now),
    )
    return patient_id


def create_patient(
    *,
    owner_id: str,
    fields: Dict[str, Any],
    user_id: Optional[str] = None,
    password_hash: Optional[str] = None,
) -> Dict[str, Any]:
    """Create a patient; with `password_hash` a linked patient login is created in the same transaction."""
    with db_conn(settings.app_db_path) as conn:
        if password_hash:
            account = insert_user(
                conn,
                email=fields["email"],
                password_hash=password_hash,
                role="patient",
                first_name=fields.get("name"),
            )
            user_id = account["id"]
        patient_id = insert_patient(conn, owner_id=owner_id, fields=fields, user_id=user_id)
        row = conn.execute("SELECT * FROM patients WHERE id = ?", (patient_id,)).fetchone()
    return _row_to_patient(row)


def update_patient(patient_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    fields = {k: _encode(k, v) for k, v in changes.items() if k in _PATIENT_FIELDS}
    with db_conn(settings.app_db_path) as conn:
        if fields:
            fields["updated_at"] = _utc_now()
            assignments = ", ".join(f"{k} = ?" for k in fields)
            cur = conn.execute(f"UPDATE patients SET {assignments} WHERE id = ?", (*fields.values(), patient_id))
            if cur.rowcount == 0:
                raise NotFoundError("Patient not found")
        row = conn.execute("SELECT * FROM patients WHERE id = ?", (patient_id,)).fetchone()
    if not row:
        raise NotFoundError("Patient not found")
    return _row_to_patient(row)


def patient_deletion_blockers(patient_id: str) -> List[str]:
    with db_conn(settings.app_db_path) as conn:
        prescriptions = conn.execute(
            "SELECT COUNT(*) FROM prescriptions WHERE patient_id = ?", (patient_id,)
        ).fetchone()[0]
        subscriptions = conn.execute(
            "SELECT COUNT(*) FROM subscriptions WHERE patient_id = ?", (patient_id,)
        ).fetchone()[0]

    blockers: List[str] = []
    if prescriptions:
        blockers.append(f"{prescriptions} prescrição(ões) vinculada(s) a este paciente")
    if subscriptions:
        blockers.append(f"{subscriptions} assinatura(s) vinculada(s) a este paciente")
    return blockers


def delete_patient(patient_id: str) -> None:
    if not get_patient(patient_id):
        raise NotFoundError("Patient not found")
    blockers = patient_deletion_blockers(patient_id)
    if blockers:
        raise DependencyError("Paciente possui registros dependentes.", blockers=blockers)
    with db_conn(settings.app_db_path) as conn:
        conn.execute("DELETE FROM patients WHERE id = ?", (patient_id,))
    logger.info("Patient %s deleted", patient_id)


# ---------- anamnesis ----------


def _row_to_anamnesis(row: Any) -> Dict[str, Any]:
    data = dict(row)
    try:
        payload = json.loads(data.pop("payload_json") or "{}")
    except ValueError:
        payload = {}
    payload.update(data)
    return payload


def add_anamnesis_record(patient_id: str, answers: Dict[str, Any]) -> Dict[str, Any]:
    """Store a questionnaire and mirror its profile answers onto the patient."""
    record_id = str(uuid4())
    now = _utc_now()
    profile = {k: answers[k] for k in _ANAMNESIS_PROFILE_FIELDS if answers.get(k) not in (None, [])}
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            "INSERT INTO anamnesis_records (id, patient_id, payload_json, created_at) VALUES (?, ?, ?, ?)",
            (record_id, patient_id, json.dumps(answers, ensure_ascii=False), now),
        )
        if profile:
            values = {k: _encode(k, v) for k, v in profile.items()}
            values["updated_at"] = now
            assignments = ", ".join(f"{k} = ?" for k in values)
            conn.execute(f"UPDATE patients SET {assignments} WHERE id = ?", (*values.values(), patient_id))
    return {**answers, "id": record_id, "patient_id": patient_id, "created_at": now}


def list_anamnesis_records(patient_id: str) -> List[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM anamnesis_records WHERE patient_id = ? ORDER BY created_at DESC", (patient_id,)
        ).fetchall()
    return [_row_to_anamnesis(r) for r in rows]


# ---------- access ----------


def is_owner(user: Dict[str, Any], patient: Dict[str, Any]) -> bool:
    return user.get("role") == "admin" or patient.get("owner_id") == user.get("id")


def is_linked_patient(user: Dict[str, Any], patient: Dict[str, Any]) -> bool:
    return bool(patient.get("user_id")) and patient.get("user_id") == user.get("id")


def get_managed_patient(patient_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
    """Patient the caller owns (admins see everyone)."""
    patient = get_patient(patient_id)
    if not patient:
        raise NotFoundError("Patient not found")
    if not is_owner(user, patient):
        raise ForbiddenError("Forbidden")
    return patient


def get_visible_patient(patient_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
    """Patient the caller owns or is linked to."""
    patient = get_patient(patient_id)
    if not patient:
        raise NotFoundError("Patient not found")
    if not (is_owner(user, patient) or is_linked_patient(user, patient)):
        raise ForbiddenError("Forbidden")
    return patient
