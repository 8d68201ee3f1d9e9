# -*- coding: utf-8 -*-
"""Auth: API endpoints (session + admin user management)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response

from .. import activity
from ..config import settings
from ..errors import AuthError, NotFoundError, ValidationError
from .models import (
    AuthResponse,
    DeletionCheckResponse,
    LoginRequest,
    PasswordChangeRequest,
    UserCreateRequest,
    UserPublic,
    UserRole,
    UsersResponse,
    UserUpdateRequest,
)
from .security import (
    TOKEN_COOKIE_NAME,
    get_current_user,
    hash_password,
    issue_session_token,
    require_admin,
    verify_password,
)
from .storage import (
    create_user,
    delete_user,
    get_user_by_email,
    get_user_by_id,
    list_users,
    set_password_hash,
    update_user,
    user_deletion_blockers,
)

router = APIRouter(prefix="/api/auth", tags=["Auth"])
admin_router = APIRouter(prefix="/api/admin/users", tags=["Admin"])


def user_public(row: dict) -> UserPublic:
    return UserPublic(
        id=row["id"],
        email=row["email"],
        first_name=row.get("first_name"),
        last_name=row.get("last_name"),
        role=row["role"],
        created_at=row["created_at"],
        updated_at=row.get("updated_at"),
    )


def _set_auth_cookie(resp: Response, token: str) -> None:
    max_age = int(settings.token_ttl_days) * 24 * 60 * 60
    resp.set_cookie(
        TOKEN_COOKIE_NAME,
        token,
        httponly=True,
        secure=bool(settings.cookie_secure),
        samesite="lax",
        max_age=max_age,
        path="/",
    )


def issue_session(response: Response, user: dict) -> str:
    token = issue_session_token(user)
    _set_auth_cookie(response, token)
    return token


@router.post("/login", response_model=AuthResponse, summary="Login")
def login(request: LoginRequest, response: Response):
    user = get_user_by_email(request.email)
    if not user or not verify_password(request.password, user.get("password_hash")):
        raise AuthError("Invalid email or password")

    token = issue_session(response, user)
    activity.log_activity(user["id"], activity.LOGIN)
    return AuthResponse(user=user_public(user), token=token)


@router.post("/logout", summary="Logout")
def logout(response: Response):
    response.delete_cookie(TOKEN_COOKIE_NAME, path="/")
    return {"status": "ok"}


@router.get("/me", response_model=UserPublic, summary="Get current user")
def me(user: dict = Depends(get_current_user)):
    return user_public(user)


@router.post("/change-password", summary="Change own password")
def change_password(request: PasswordChangeRequest, user: dict = Depends(get_current_user)):
    set_password_hash(user["id"], hash_password(request.password))
    return {"status": "ok"}


# ---------- admin ----------


@admin_router.get("", response_model=UsersResponse, summary="List users")
def list_users_api(role: UserRole | None = Query(default=None), admin: dict = Depends(require_admin)):
    rows = list_users(role=role.value if role else None)
    return UsersResponse(count=len(rows), users=[user_public(r) for r in rows])


@admin_router.post("", response_model=UserPublic, status_code=201, summary="Create a user")
def create_user_api(request: UserCreateRequest, admin: dict = Depends(require_admin)):
    row = create_user(
        email=request.email,
        password_hash=hash_password(request.password),
        role=request.role.value,
        first_name=request.first_name,
        last_name=request.last_name,
    )
    return user_public(row)


@admin_router.get("/{user_id}", response_model=UserPublic, summary="Get a user")
def get_user_api(user_id: str, admin: dict = Depends(require_admin)):
    row = get_user_by_id(user_id)
    if not row:
        raise NotFoundError("User not found")
    return user_public(row)


@admin_router.put("/{user_id}", response_model=UserPublic, summary="Update a user")
def update_user_api(user_id: str, request: UserUpdateRequest, admin: dict = Depends(require_admin)):
    changes = request.model_dump(exclude_unset=True)
    if changes.get("role") is not None:
        changes["role"] = UserRole(changes["role"]).value
    return user_public(update_user(user_id, changes))


@admin_router.put("/{user_id}/password", summary="Reset a user's password")
def reset_password_api(user_id: str, request: PasswordChangeRequest, admin: dict = Depends(require_admin)):
    set_password_hash(user_id, hash_password(request.password))
    return {"status": "ok", "user_id": user_id}


@admin_router.get("/{user_id}/deletion-check", response_model=DeletionCheckResponse, summary="Why a user cannot be deleted")
def user_deletion_check_api(user_id: str, admin: dict = Depends(require_admin)):
    blockers = user_deletion_blockers(user_id)
    return DeletionCheckResponse(can_delete=not blockers, blockers=blockers)


@admin_router.delete("/{user_id}", summary="Delete a user")
def delete_user_api(
    user_id: str,
    confirm: bool = Query(default=False, description="Must be true"),
    admin: dict = Depends(require_admin),
):
    if not confirm:
        raise ValidationError("Confirmation required: pass confirm=true")
    if user_id == admin["id"]:
        raise ValidationError("Administrators cannot delete their own account")
    delete_user(user_id)
    return {"status": "ok", "user_id": user_id}
