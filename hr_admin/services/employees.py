from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, BinaryIO
from uuid import UUID

from sqlalchemy.orm import Session

from hr_admin.errors import ApiError, BadRequestError, ConflictError, InternalServerError, NotFoundError
from hr_admin.models import Employee
from hr_admin.repositories import attendance as attendance_repo
from hr_admin.repositories import employees as employee_repo
from hr_admin.repositories.base import PageResult
from hr_admin.services import photo_storage

logger = logging.getLogger("hr_admin.employees")

DAYS_PER_YEAR = 365.25
MAX_AGE_DRIFT_YEARS = 1


@dataclass(frozen=True, slots=True)
class EmployeeFilters:
    search: str | None = None
    page: int = 1
    limit: int = 10


def _today() -> date:
    return date.today()


def calculate_age(date_of_birth: date, *, today: date | None = None) -> int:
    reference = today or _today()
    return math.floor((reference - date_of_birth).days / DAYS_PER_YEAR)


def _ensure_age_matches_dob(age: int, date_of_birth: date) -> None:
    if abs(calculate_age(date_of_birth) - age) > MAX_AGE_DRIFT_YEARS:
        raise ConflictError(
            "Age does not match with date of birth provided",
            {"age": age, "date_of_birth": date_of_birth.isoformat()},
            code="AGE_DOB_MISMATCH",
        )


def _ensure_hiring_date_not_future(hiring_date: date) -> None:
    if hiring_date > _today():
        raise ConflictError(
            "Hiring date cannot be in the future",
            {"hiring_date": hiring_date.isoformat()},
            code="HIRING_DATE_IN_FUTURE",
        )


def _require_active(db: Session, employee_id: UUID) -> Employee:
    employee = employee_repo.find_by_id_active(db, employee_id)
    if employee is None:
        raise NotFoundError("Employee not found", code="EMPLOYEE_NOT_FOUND")
    return employee


def _discard_photo_file(photo_path: str, *, employee_id: UUID) -> None:
    try:
        if photo_storage.photo_exists(photo_path):
            photo_storage.delete_photo(photo_path)
    except (OSError, ApiError) as exc:
        logger.exception(
            "employee_photo_delete_failed",
            extra={"employee_id": str(employee_id), "photo_path": photo_path},
        )
        raise InternalServerError("Failed to delete photo file", code="PHOTO_DELETE_FAILED") from exc


def get_all_employees(db: Session, filters: EmployeeFilters) -> PageResult[Employee]:
    page = filters.page or 1
    limit = filters.limit or 10
    if filters.search:
        return employee_repo.search(db, search=filters.search, page=page, limit=limit)
    return employee_repo.find_all_paginated(db, page=page, limit=limit)


def search_employees(db: Session, search_term: str, *, page: int = 1, limit: int = 10) -> PageResult[Employee]:
    return employee_repo.search(db, search=search_term, page=page, limit=limit)


def get_employee_by_id(db: Session, employee_id: UUID) -> Employee:
    return _require_active(db, employee_id)


def create_employee(db: Session, data: dict[str, Any]) -> Employee:
    _ensure_age_matches_dob(data["age"], data["date_of_birth"])
    _ensure_hiring_date_not_future(data["hiring_date"])

    values = dict(data)
    # Photos are attached only through the upload flow.
    values["photo_path"] = None
    employee = employee_repo.create_employee(db, values)
    logger.info("employee_created", extra={"employee_id": str(employee.id)})
    return employee


def update_employee(db: Session, employee_id: UUID, data: dict[str, Any]) -> Employee:
    if not employee_repo.exists_active(db, employee_id):
        raise NotFoundError("Employee not found", code="EMPLOYEE_NOT_FOUND")

    if data.get("age") is not None and data.get("date_of_birth") is not None:
        _ensure_age_matches_dob(data["age"], data["date_of_birth"])
    if data.get("hiring_date") is not None:
        _ensure_hiring_date_not_future(data["hiring_date"])

    if not data:
        return _require_active(db, employee_id)

    updated = employee_repo.update_employee(db, employee_id, data)
    if updated is None:
        raise NotFoundError("Employee not found", code="EMPLOYEE_NOT_FOUND")

    logger.info(
        "employee_updated",
        extra={"employee_id": str(employee_id), "fields": sorted(data)},
    )
    return updated


def delete_employee(db: Session, employee_id: UUID) -> bool:
    employee = _require_active(db, employee_id)

    if employee.photo_path:
        _discard_photo_file(employee.photo_path, employee_id=employee_id)

    deleted = employee_repo.soft_delete(db, employee_id)
    logger.info("employee_soft_deleted", extra={"employee_id": str(employee_id), "deleted": deleted})
    return deleted


def restore_employee(db: Session, employee_id: UUID) -> Employee:
    if not employee_repo.restore(db, employee_id):
        raise NotFoundError("Deleted employee not found", code="EMPLOYEE_NOT_FOUND")
    logger.info("employee_restored", extra={"employee_id": str(employee_id)})
    return _require_active(db, employee_id)


def purge_employee(db: Session, employee_id: UUID) -> bool:
    employee = employee_repo.find_by_id(db, employee_id)
    if employee is None:
        raise NotFoundError("Employee not found", code="EMPLOYEE_NOT_FOUND")
    if employee.photo_path:
        _discard_photo_file(employee.photo_path, employee_id=employee_id)
    attendance_repo.delete_by_employee_id(db, employee_id)
    purged = employee_repo.hard_delete(db, employee_id)
    logger.warning("employee_purged", extra={"employee_id": str(employee_id)})
    return purged


def update_employee_photo(db: Session, employee_id: UUID, photo_path: str) -> Employee:
    employee = _require_active(db, employee_id)

    if employee.photo_path:
        _discard_photo_file(employee.photo_path, employee_id=employee_id)

    updated = employee_repo.update_photo_path(db, employee_id, photo_path)
    if updated is None:
        raise NotFoundError("Employee not found", code="EMPLOYEE_NOT_FOUND")
    return updated


def remove_employee_photo(db: Session, employee_id: UUID) -> Employee:
    employee = _require_active(db, employee_id)

    if not employee.photo_path:
        raise NotFoundError("Employee photo not found", code="PHOTO_NOT_FOUND")

    _discard_photo_file(employee.photo_path, employee_id=employee_id)

    updated = employee_repo.remove_photo(db, employee_id)
    if updated is None:
        raise NotFoundError("Employee not found", code="EMPLOYEE_NOT_FOUND")
    return updated


def get_employees_by_designation(db: Session, designation: str) -> list[Employee]:
    return employee_repo.find_by_designation(db, designation)


def get_employees_by_salary_range(db: Session, min_salary: Decimal, max_salary: Decimal) -> list[Employee]:
    if min_salary > max_salary:
        raise BadRequestError("Min salary must be less than max salary", code="INVALID_SALARY_RANGE")
    return employee_repo.find_by_salary_range(db, min_salary, max_salary)


def get_employees_by_hiring_date_range(db: Session, start_date: date, end_date: date) -> list[Employee]:
    if start_date > end_date:
        raise BadRequestError("Start date must be before or equal to end date", code="INVALID_DATE_RANGE")
    return employee_repo.find_by_hiring_date_range(db, start_date, end_date)


def get_employee_count_by_designation(db: Session) -> list[dict[str, Any]]:
    return employee_repo.count_by_designation(db)


def upload_employee_photo(
    db: Session,
    employee_id: UUID,
    stream: BinaryIO,
    *,
    filename: str | None,
    content_type: str | None,
) -> Employee:
    _require_active(db, employee_id)
    stored_name = photo_storage.save_photo(stream, filename=filename, content_type=content_type)
    try:
        return update_employee_photo(db, employee_id, stored_name)
    except Exception:
        photo_storage.resolve_path(stored_name).unlink(missing_ok=True)
        raise
