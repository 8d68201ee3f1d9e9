# -*- coding: utf-8 -*-
"""App database: SQLite helpers.

One short-lived connection per repository call; `db_conn` commits on success.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator


def connect(db_path: Path) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def init_app_db(db_path: Path) -> None:
    conn = connect(db_path)
    try:
        cur = conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                email TEXT NOT NULL UNIQUE,
                first_name TEXT,
                last_name TEXT,
                role TEXT NOT NULL DEFAULT 'patient',
                password_hash TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS patients (
                id TEXT PRIMARY KEY,
                owner_id TEXT NOT NULL,
                user_id TEXT,
                name TEXT NOT NULL,
                email TEXT,
                birth_date TEXT,
                sex TEXT,
                height_cm INTEGER,
                weight_kg REAL,
                goal TEXT,
                activity_level INTEGER,
                intolerances TEXT NOT NULL DEFAULT '[]',
                notes TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                FOREIGN KEY(owner_id) REFERENCES users(id),
                FOREIGN KEY(user_id) REFERENCES users(id)
            );
            """
        )
        cur.execute("CREATE INDEX IF NOT EXISTS idx_patients_owner_created ON patients(owner_id, created_at DESC);")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_patients_user ON patients(user_id);")
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS anamnesis_records (
                id TEXT PRIMARY KEY,
                patient_id TEXT NOT NULL,
                payload_json TEXT NOT NULL,
                created_at TEXT NOT NULL,
                FOREIGN KEY(patient_id) REFERENCES patients(id) ON DELETE CASCADE
            );
            """
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_anamnesis_patient_created ON anamnesis_records(patient_id, created_at DESC);"
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS invitations (
                id TEXT PRIMARY KEY,
                email TEXT NOT NULL,
                nutritionist_id TEXT NOT NULL,
                token TEXT NOT NULL UNIQUE,
                status TEXT NOT NULL DEFAULT 'pending',
                expires_at TEXT NOT NULL,
                created_at TEXT NOT NULL,
                accepted_at TEXT,
                FOREIGN KEY(nutritionist_id) REFERENCES users(id)
            );
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS prescriptions (
                id TEXT PRIMARY KEY,
                patient_id TEXT NOT NULL,
                nutritionist_id TEXT NOT NULL,
                title TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'draft',
                meals_json TEXT NOT NULL DEFAULT '[]',
                general_notes TEXT,
                published_at TEXT,
                expires_at TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                FOREIGN KEY(patient_id) REFERENCES patients(id),
                FOREIGN KEY(nutritionist_id) REFERENCES users(id)
            );
            """
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_prescriptions_patient_status ON prescriptions(patient_id, status, published_at DESC);"
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS subscriptions (
                id TEXT PRIMARY KEY,
                patient_id TEXT NOT NULL,
                plan_type TEXT NOT NULL,
                status TEXT NOT NULL,
                start_date TEXT,
                expires_at TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                FOREIGN KEY(patient_id) REFERENCES patients(id)
            );
            """
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_subscriptions_patient_created ON subscriptions(patient_id, created_at DESC);"
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS mood_entries (
                id TEXT PRIMARY KEY,
                patient_id TEXT NOT NULL,
                prescription_id TEXT NOT NULL,
                meal_id TEXT NOT NULL,
                entry_date TEXT NOT NULL,
                mood_before TEXT,
                mood_after TEXT,
                notes TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                FOREIGN KEY(prescription_id) REFERENCES prescriptions(id) ON DELETE CASCADE
            );
            """
        )
        cur.execute(
            "CREATE UNIQUE INDEX IF NOT EXISTS idx_mood_entries_key ON mood_entries(prescription_id, meal_id, entry_date);"
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS food_diary_entries (
                id TEXT PRIMARY KEY,
                patient_id TEXT NOT NULL,
                prescription_id TEXT NOT NULL,
                meal_id TEXT NOT NULL,
                entry_date TEXT NOT NULL,
                photo_url TEXT,
                notes TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                FOREIGN KEY(prescription_id) REFERENCES prescriptions(id) ON DELETE CASCADE
            );
            """
        )
        cur.execute(
            "CREATE UNIQUE INDEX IF NOT EXISTS idx_food_diary_key ON food_diary_entries(prescription_id, meal_id, entry_date);"
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS activity_log (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                activity_type TEXT NOT NULL,
                details TEXT,
                created_at TEXT NOT NULL
            );
            """
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_activity_user_created ON activity_log(user_id, created_at DESC);"
        )
        conn.commit()
    finally:
        conn.close()


@contextmanager
def db_conn(db_path: Path) -> Iterator[sqlite3.Connection]:
    conn = connect(db_path)
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()
