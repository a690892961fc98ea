from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from hr_admin.models import HrUser
from hr_admin.repositories import base


def find_by_email(db: Session, email: str) -> HrUser | None:
    return db.scalar(select(HrUser).where(HrUser.email == email))


def find_by_id(db: Session, user_id: UUID) -> HrUser | None:
    return base.find_by_id(db, HrUser, user_id)


def email_exists(db: Session, email: str) -> bool:
    return find_by_email(db, email) is not None


def create_hr_user(db: Session, *, email: str, password_hash: str, name: str) -> HrUser:
    return base.create(db, HrUser, {"email": email, "password_hash": password_hash, "name": name})


def update_password_hash(db: Session, user_id: UUID, password_hash: str) -> bool:
    return base.update_by_id(db, HrUser, user_id, {"password_hash": password_hash}) is not None
