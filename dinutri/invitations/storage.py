# -*- coding: utf-8 -*-
"""Invitations: SQLite storage helpers."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple
from uuid import uuid4

from ..app_db import db_conn
from ..auth.storage import insert_user, normalize_email
from ..config import settings
from ..errors import ConflictError, NotFoundError
from ..patients.storage import get_patient, insert_patient

logger = logging.getLogger(__name__)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


def _is_expired(invitation: Dict[str, Any], now: Optional[str] = None) -> bool:
    return invitation["expires_at"] <= (now or _utc_now())


def create_invitation(*, nutritionist_id: str, email: str) -> Dict[str, Any]:
    now = datetime.now(timezone.utc)
    invitation = {
        "id": str(uuid4()),
        "email": normalize_email(email),
        "nutritionist_id": nutritionist_id,
        "token": secrets.token_urlsafe(32),
        "status": "pending",
        "expires_at": (now + timedelta(days=int(settings.invitation_ttl_days)))
        .isoformat(timespec="microseconds")
        .replace("+00:00", "Z"),
        "created_at": now.isoformat(timespec="microseconds").replace("+00:00", "Z"),
        "accepted_at": None,
    }
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            """
            INSERT INTO invitations (id, email, nutritionist_id, token, status, expires_at, created_at)
            VALUES (:id, :email, :nutritionist_id, :token, :status, :expires_at, :created_at)
            """,
            invitation,
        )
    return invitation


def get_invitation_by_token(token: str) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute("SELECT * FROM invitations WHERE token = ?", (token,)).fetchone()
    return dict(row) if row else None


def get_valid_invitation(token: str) -> Dict[str, Any]:
    """A pending, unexpired invitation. Used tokens conflict; unknown or expired ones read as not found."""
    invitation = get_invitation_by_token(token)
    if invitation and invitation["status"] == "accepted":
        raise ConflictError("Este convite já foi utilizado.")
    if not invitation or invitation["status"] != "pending":
        raise NotFoundError("Convite inválido ou expirado.")
    if _is_expired(invitation):
        with db_conn(settings.app_db_path) as conn:
            conn.execute(
                "UPDATE invitations SET status = 'expired' WHERE id = ? AND status = 'pending'",
                (invitation["id"],),
            )
        raise NotFoundError("Convite inválido ou expirado.")
    return invitation


def register_patient(*, token: str, password_hash: str, fields: Dict[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Consume an invitation: mark it accepted, create the login and the patient.

    All three writes share one transaction; the conditional update from
    `pending` makes a token usable for exactly one registration.
    """
    invitation = get_valid_invitation(token)
    now = _utc_now()
    with db_conn(settings.app_db_path) as conn:
        cur = conn.execute(
            """
            UPDATE invitations SET status = 'accepted', accepted_at = ?
            WHERE id = ? AND status = 'pending' AND expires_at > ?
            """,
            (now, invitation["id"], now),
        )
        if cur.rowcount != 1:
            raise ConflictError("Este convite já foi utilizado.")
        user = insert_user(
            conn,
            email=invitation["email"],
            password_hash=password_hash,
            role="patient",
            first_name=fields.get("name"),
        )
        patient_id = insert_patient(
            conn,
            owner_id=invitation["nutritionist_id"],
            fields={**fields, "email": invitation["email"]},
            user_id=user["id"],
        )
    logger.info("Invitation %s accepted by user %s", invitation["id"], user["id"])
    return user, get_patient(patient_id)
