# -*- coding: utf-8 -*-
"""Auth: DB storage helpers."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..app_db import db_conn
from ..config import settings
from ..errors import ConflictError, DependencyError, NotFoundError

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = ("email", "first_name", "last_name", "role")


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


def normalize_email(email: str) -> str:
    return email.lower().strip()


def get_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute("SELECT * FROM users WHERE email = ?", (normalize_email(email),)).fetchone()
        return dict(row) if row else None


def get_user_by_id(user_id: str) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return dict(row) if row else None


def list_users(*, role: Optional[str] = None) -> List[Dict[str, Any]]:
    sql = "SELECT * FROM users"
    params: list[Any] = []
    if role:
        sql += " WHERE role = ?"
        params.append(role)
    sql += " ORDER BY created_at DESC"
    with db_conn(settings.app_db_path) as conn:
        return [dict(r) for r in conn.execute(sql, params).fetchall()]


def create_user(
    *,
    email: str,
    password_hash: Optional[str],
    role: str = "patient",
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> Dict[str, Any]:
    with db_conn(settings.app_db_path) as conn:
        return insert_user(
            conn,
            email=email,
            password_hash=password_hash,
            role=role,
            first_name=first_name,
            last_name=last_name,
        )


def insert_user(
    conn,
    *,
    email: str,
    password_hash: Optional[str],
    role: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> Dict[str, Any]:
    """Insert on an open connection; the caller owns the transaction."""
    email_norm = normalize_email(email)
    if conn.execute("SELECT 1 FROM users WHERE email = ?", (email_norm,)).fetchone():
        raise ConflictError("Este email já está em uso.")
    user_id = str(uuid4())
    now = _utc_now()
    conn.execute(
        """
        INSERT INTO users (id, email, first_name, last_name, role, password_hash, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (user_id, email_norm, first_name, last_name, role, password_hash, now, now),
    )
    return {
        "id": user_id,
        "email": email_norm,
        "first_name": first_name,
        "last_name": last_name,
        "role": role,
        "password_hash": password_hash,
        "created_at": now,
        "updated_at": now,
    }


def update_user(user_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    current = get_user_by_id(user_id)
    if not current:
        raise NotFoundError("User not found")
    fields = {k: v for k, v in changes.items() if k in _UPDATABLE_FIELDS and v is not None}
    if "email" in fields:
        fields["email"] = normalize_email(fields["email"])
        other = get_user_by_email(fields["email"])
        if other and other["id"] != user_id:
            raise ConflictError("Este email já está em uso.")
    if not fields:
        return current
    fields["updated_at"] = _utc_now()
    assignments = ", ".join(f"{k} = ?" for k in fields)
    with db_conn(settings.app_db_path) as conn:
        conn.execute(f"UPDATE users SET {assignments} WHERE id = ?", (*fields.values(), user_id))
    current.update(fields)
    return current


def set_password_hash(user_id: str, password_hash: str) -> None:
    with db_conn(settings.app_db_path) as conn:
        cur = conn.execute(
            "UPDATE users SET password_hash = ?, updated_at = ? WHERE id = ?",
            (password_hash, _utc_now(), user_id),
        )
        if cur.rowcount == 0:
            raise NotFoundError("User not found")


def user_deletion_blockers(user_id: str) -> List[str]:
    """Human-readable reasons why a user cannot be removed yet."""
    with db_conn(settings.app_db_path) as conn:
        owned = conn.execute("SELECT COUNT(*) FROM patients WHERE owner_id = ?", (user_id,)).fetchone()[0]
        authored = conn.execute(
            "SELECT COUNT(*) FROM prescriptions WHERE nutritionist_id = ?", (user_id,)
        ).fetchone()[0]
        invites = conn.execute(
            "SELECT COUNT(*) FROM invitations WHERE nutritionist_id = ?", (user_id,)
        ).fetchone()[0]
        linked = conn.execute("SELECT COUNT(*) FROM patients WHERE user_id = ?", (user_id,)).fetchone()[0]

    blockers: List[str] = []
    if owned:
        blockers.append(f"{owned} paciente(s) vinculado(s) a este nutricionista")
    if authored:
        blockers.append(f"{authored} prescrição(ões) criada(s) por este usuário")
    if invites:
        blockers.append(f"{invites} convite(s) emitido(s) por este usuário")
    if linked:
        blockers.append("perfil de paciente vinculado a esta conta")
    return blockers


def delete_user(user_id: str) -> None:
    if not get_user_by_id(user_id):
        raise NotFoundError("User not found")
    # Read-then-decide; a dependent row created in between will trip the foreign key instead.
    blockers = user_deletion_blockers(user_id)
    if blockers:
        raise DependencyError("Usuário possui registros dependentes.", blockers=blockers)
    with db_conn(settings.app_db_path) as conn:
        conn.execute("DELETE FROM activity_log WHERE user_id = ?", (user_id,))
        conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
    logger.info("User %s deleted", user_id)
