# -*- coding: utf-8 -*-
"""Credentials and sessions.

Passwords are stored as `pbkdf2_<alg>$<iterations>$<salt>$<digest>`. A
session is an HS256-signed token carrying the user's id, email and role; it
travels in the `Authorization: Bearer` header or the `dinutri_token` cookie.
The role gates at the bottom are the FastAPI dependencies used by every
router.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from fastapi import Depends, Request

from ..config import settings
from ..errors import AuthError, ForbiddenError
from .storage import get_user_by_id

TOKEN_COOKIE_NAME = "dinutri_token"

PASSWORD_HASH_ALG = "sha256"
PASSWORD_HASH_ITERATIONS = 200_000
_SALT_BYTES = 16
_TOKEN_HEADER = {"alg": "HS256", "typ": "JWT"}


def _encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _decode(text: str) -> bytes:
    return base64.urlsafe_b64decode((text + "=" * (-len(text) % 4)).encode("ascii"))


def _derive(password: str, salt: bytes, alg: str = PASSWORD_HASH_ALG, iterations: int = PASSWORD_HASH_ITERATIONS) -> bytes:
    return hashlib.pbkdf2_hmac(alg, password.encode("utf-8"), salt, iterations)


def hash_password(password: str) -> str:
    salt = os.urandom(_SALT_BYTES)
    digest = _derive(password, salt)
    return "$".join([f"pbkdf2_{PASSWORD_HASH_ALG}", str(PASSWORD_HASH_ITERATIONS), _encode(salt), _encode(digest)])


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    """False for users without a password (patients created without login)."""
    if not password_hash:
        return False
    try:
        scheme, iterations, salt, digest = password_hash.split("$", 3)
        if not scheme.startswith("pbkdf2_"):
            return False
        candidate = _derive(password, _decode(salt), scheme[len("pbkdf2_"):], int(iterations))
        return hmac.compare_digest(candidate, _decode(digest))
    except (ValueError, TypeError):
        return False


def _signature(signing_input: str) -> bytes:
    return hmac.new(settings.jwt_secret.encode("utf-8"), signing_input.encode("ascii"), hashlib.sha256).digest()


def issue_session_token(user: Dict[str, Any]) -> str:
    issued = datetime.now(timezone.utc)
    claims = {
        "sub": user["id"],
        "email": user["email"],
        "role": user["role"],
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(days=int(settings.token_ttl_days))).timestamp()),
    }
    header = _encode(json.dumps(_TOKEN_HEADER, separators=(",", ":")).encode("utf-8"))
    body = _encode(json.dumps(claims, separators=(",", ":"), ensure_ascii=False).encode("utf-8"))
    signing_input = f"{header}.{body}"
    return f"{signing_input}.{_encode(_signature(signing_input))}"


def read_session_token(token: str) -> Dict[str, Any]:
    """Verified claims of a session token; AuthError when forged, malformed or expired."""
    try:
        header, body, signature = token.split(".")
        if not hmac.compare_digest(_signature(f"{header}.{body}"), _decode(signature)):
            raise AuthError("Invalid token")
        claims = json.loads(_decode(body).decode("utf-8"))
    except (ValueError, TypeError) as exc:
        raise AuthError("Invalid token") from exc
    if not isinstance(claims, dict):
        raise AuthError("Invalid token")
    expires = int(claims.get("exp") or 0)
    if expires and expires < int(datetime.now(timezone.utc).timestamp()):
        raise AuthError("Token expired")
    return claims


def session_token_from_request(request: Request) -> Optional[str]:
    auth = request.headers.get("authorization") or ""
    if auth.lower().startswith("bearer "):
        return auth.split(" ", 1)[1].strip() or None
    return request.cookies.get(TOKEN_COOKIE_NAME) or None


def authenticate_request(request: Request) -> Dict[str, Any]:
    # The auth-gate middleware may already have resolved the user.
    user = getattr(request.state, "user", None)
    if user:
        return user

    token = session_token_from_request(request)
    if not token:
        raise AuthError("Not authenticated")

    user_id = str(read_session_token(token).get("sub") or "")
    user = get_user_by_id(user_id) if user_id else None
    if not user:
        raise AuthError("User not found")

    request.state.user = user
    return user


def get_current_user(user: Dict[str, Any] = Depends(authenticate_request)) -> Dict[str, Any]:
    return user


def require_roles(*roles: str) -> Callable[..., Dict[str, Any]]:
    """Dependency factory: current user, limited to the given roles."""

    allowed = set(roles)

    def _dependency(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        if user.get("role") not in allowed:
            raise ForbiddenError("Forbidden")
        return user

    return _dependency


require_admin = require_roles("admin")
require_nutritionist = require_roles("nutritionist", "admin")
require_patient = require_roles("patient")
