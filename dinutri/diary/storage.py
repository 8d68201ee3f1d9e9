# -*- coding: utf-8 -*-
"""Diary storage helpers (SQLite).

Both tables are keyed by (prescription_id, meal_id, entry_date); writes are
upserts against that unique index, so a meal has at most one entry per day.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4

from ..app_db import db_conn
from ..config import settings
from ..errors import NotFoundError

MOOD_TABLE = "mood_entries"
MOOD_FIELDS = ("mood_before", "mood_after", "notes")
FOOD_DIARY_TABLE = "food_diary_entries"
FOOD_DIARY_FIELDS = ("photo_url", "notes")


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


def _upsert(table: str, fields: Sequence[str], *, patient_id: str, key: Dict[str, str], values: Dict[str, Any]) -> Dict[str, Any]:
    now = _utc_now()
    columns = ("id", "patient_id", "prescription_id", "meal_id", "entry_date", *fields, "created_at", "updated_at")
    params = (
        str(uuid4()),
        patient_id,
        key["prescription_id"],
        key["meal_id"],
        key["entry_date"],
        *(values.get(f) for f in fields),
        now,
        now,
    )
    updates = ", ".join(f"{f} = excluded.{f}" for f in (*fields, "updated_at"))
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            f"""
            INSERT INTO {table} ({", ".join(columns)})
            VALUES ({", ".join("?" for _ in columns)})
            ON CONFLICT(prescription_id, meal_id, entry_date) DO UPDATE SET {updates}
            """,
            params,
        )
        row = conn.execute(
            f"SELECT * FROM {table} WHERE prescription_id = ? AND meal_id = ? AND entry_date = ?",
            (key["prescription_id"], key["meal_id"], key["entry_date"]),
        ).fetchone()
    return dict(row)


def _list(
    table: str,
    *,
    patient_id: str,
    prescription_id: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> List[Dict[str, Any]]:
    sql = f"SELECT * FROM {table} WHERE patient_id = ?"
    params: list[Any] = [patient_id]
    if prescription_id:
        sql += " AND prescription_id = ?"
        params.append(prescription_id)
    if start:
        sql += " AND entry_date >= ?"
        params.append(start)
    if end:
        sql += " AND entry_date <= ?"
        params.append(end)
    sql += " ORDER BY entry_date DESC, updated_at DESC"
    with db_conn(settings.app_db_path) as conn:
        return [dict(r) for r in conn.execute(sql, params).fetchall()]


def upsert_mood_entry(*, patient_id: str, key: Dict[str, str], values: Dict[str, Any]) -> Dict[str, Any]:
    return _upsert(MOOD_TABLE, MOOD_FIELDS, patient_id=patient_id, key=key, values=values)


def list_mood_entries(patient_id: str, **filters: Optional[str]) -> List[Dict[str, Any]]:
    return _list(MOOD_TABLE, patient_id=patient_id, **filters)


def get_mood_entry(entry_id: str) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute(f"SELECT * FROM {MOOD_TABLE} WHERE id = ?", (entry_id,)).fetchone()
    return dict(row) if row else None


def update_mood_entry(entry_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    fields = {k: v for k, v in changes.items() if k in MOOD_FIELDS}
    fields["updated_at"] = _utc_now()
    assignments = ", ".join(f"{k} = ?" for k in fields)
    with db_conn(settings.app_db_path) as conn:
        cur = conn.execute(f"UPDATE {MOOD_TABLE} SET {assignments} WHERE id = ?", (*fields.values(), entry_id))
        if cur.rowcount == 0:
            raise NotFoundError("Mood entry not found")
        row = conn.execute(f"SELECT * FROM {MOOD_TABLE} WHERE id = ?", (entry_id,)).fetchone()
    return dict(row)


def upsert_food_diary_entry(*, patient_id: str, key: Dict[str, str], values: Dict[str, Any]) -> Dict[str, Any]:
    return _upsert(FOOD_DIARY_TABLE, FOOD_DIARY_FIELDS, patient_id=patient_id, key=key, values=values)


def list_food_diary_entries(patient_id: str, **filters: Optional[str]) -> List[Dict[str, Any]]:
    return _list(FOOD_DIARY_TABLE, patient_id=patient_id, **filters)
