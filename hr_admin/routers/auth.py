from typing import Any

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from hr_admin.db import get_db
from hr_admin.schemas import (
    AuthResponse,
    ChangePasswordRequest,
    HrUserRead,
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    envelope,
)
from hr_admin.security import current_user_id, require_hr_user
from hr_admin.services import auth as auth_service

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db)) -> dict[str, Any]:
    result = auth_service.register(db, email=payload.email, password=payload.password, name=payload.name)
    return envelope("User registered successfully", AuthResponse.model_validate(result))


@router.post("/login")
def login(payload: LoginRequest, db: Session = Depends(get_db)) -> dict[str, Any]:
    result = auth_service.login(db, email=payload.email, password=payload.password)
    return envelope("Login successful", AuthResponse.model_validate(result))


@router.get("/me")
def me(
    claims: dict[str, Any] = Depends(require_hr_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    user = auth_service.get_profile(db, current_user_id(claims))
    return envelope("Profile retrieved successfully", HrUserRead.model_validate(user))


@router.put("/change-password")
def change_password(
    payload: ChangePasswordRequest,
    claims: dict[str, Any] = Depends(require_hr_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    auth_service.change_password(
        db,
        current_user_id(claims),
        old_password=payload.old_password,
        new_password=payload.new_password,
    )
    return envelope("Password changed successfully")


@router.post("/refresh")
def refresh(
    claims: dict[str, Any] = Depends(require_hr_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    result = auth_service.refresh_token(db, current_user_id(claims))
    return envelope("Token refreshed successfully", TokenResponse.model_validate(result))


@router.post("/logout")
def logout(claims: dict[str, Any] = Depends(require_hr_user)) -> dict[str, Any]:
    auth_service.logout(current_user_id(claims))
    return envelope("Logout successful")
