# -*- coding: utf-8 -*-
"""Activity log: feeds the nutritionist access report."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from .app_db import db_conn
from .config import settings

logger = logging.getLogger(__name__)

LOGIN = "login"
VIEW_PRESCRIPTION = "view_prescription"
DOWNLOAD_PRESCRIPTION_PDF = "download_prescription_pdf"
MOOD_ENTRY = "mood_entry"
FOOD_DIARY_ENTRY = "food_diary_entry"
ANAMNESIS_SUBMITTED = "anamnesis_submitted"
SUBSCRIPTION_REQUEST = "subscription_request"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


def log_activity(user_id: str, activity_type: str, details: Optional[str] = None) -> None:
    # A failed audit write must never fail the request that triggered it.
    try:
        with db_conn(settings.app_db_path) as conn:
            conn.execute(
                "INSERT INTO activity_log (id, user_id, activity_type, details, created_at) VALUES (?, ?, ?, ?, ?)",
                (str(uuid4()), user_id, activity_type, details, _utc_now()),
            )
    except sqlite3.Error as exc:
        logger.warning("Failed to log activity %s for user %s: %s", activity_type, user_id, exc)
