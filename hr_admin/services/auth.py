from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from hr_admin.errors import ConflictError, NotFoundError, UnauthorizedError
from hr_admin.models import HrUser
from hr_admin.repositories import hr_users as hr_user_repo
from hr_admin.security import create_access_token, get_expires_in, hash_password, verify_password

logger = logging.getLogger("hr_admin.auth")

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _user_payload(user: HrUser) -> dict[str, Any]:
    return {"id": user.id, "email": user.email, "name": user.name}


def _issue_token(user: HrUser) -> dict[str, Any]:
    token, _claims = create_access_token(user_id=user.id, email=user.email, name=user.name)
    return {"user": _user_payload(user), "token": token, "expires_in": get_expires_in()}


def register(db: Session, *, email: str, password: str, name: str) -> dict[str, Any]:
    normalized_email = _normalize_email(email)
    if hr_user_repo.email_exists(db, normalized_email):
        raise ConflictError(
            "User already exists with this email",
            {"email": normalized_email},
            code="USER_ALREADY_EXISTS",
        )

    user = hr_user_repo.create_hr_user(
        db,
        email=normalized_email,
        password_hash=hash_password(password),
        name=name.strip(),
    )
    logger.info("hr_user_registered", extra={"user_id": str(user.id)})
    return _issue_token(user)


def login(db: Session, *, email: str, password: str) -> dict[str, Any]:
    user = hr_user_repo.find_by_email(db, _normalize_email(email))
    if user is None or not verify_password(password, user.password_hash):
        logger.warning("hr_user_login_failed", extra={"email": _normalize_email(email)})
        raise UnauthorizedError(INVALID_CREDENTIALS_MESSAGE, code="INVALID_CREDENTIALS")

    logger.info("hr_user_logged_in", extra={"user_id": str(user.id)})
    return _issue_token(user)


def verify_user(db: Session, *, email: str, password: str) -> HrUser | None:
    user = hr_user_repo.find_by_email(db, _normalize_email(email))
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user


def get_profile(db: Session, user_id: UUID) -> HrUser:
    user = hr_user_repo.find_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User not found!", code="USER_NOT_FOUND")
    return user


def change_password(db: Session, user_id: UUID, *, old_password: str, new_password: str) -> None:
    user = get_profile(db, user_id)
    if not verify_password(old_password, user.password_hash):
        raise UnauthorizedError("Invalid old password!", code="INVALID_OLD_PASSWORD")

    if not hr_user_repo.update_password_hash(db, user_id, hash_password(new_password)):
        raise NotFoundError("User not found!", code="USER_NOT_FOUND")
    logger.info("hr_user_password_changed", extra={"user_id": str(user_id)})


def refresh_token(db: Session, user_id: UUID) -> dict[str, Any]:
    user = get_profile(db, user_id)
    token, _claims = create_access_token(user_id=user.id, email=user.email, name=user.name)
    return {"token": token, "expires_in": get_expires_in()}


def logout(user_id: UUID) -> None:
    # Tokens are stateless; clients discard them.
    logger.info("hr_user_logged_out", extra={"user_id": str(user_id)})
