from __future__ import annotations

import logging
import re
from calendar import monthrange
from datetime import date, time
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from hr_admin.errors import ApiError, BadRequestError, InternalServerError, NotFoundError
from hr_admin.models import Attendance
from hr_admin.repositories import attendance as attendance_repo
from hr_admin.repositories import employees as employee_repo
from hr_admin.repositories.attendance import AttendanceFilters
from hr_admin.repositories.base import PageResult
from hr_admin.schemas import TIME_PATTERN
from hr_admin.settings import get_settings

logger = logging.getLogger("hr_admin.attendance")

_TIME_PATTERN = re.compile(TIME_PATTERN)
_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_MONTH_PATTERN = re.compile(r"^\d{4}-\d{2}$")

DateInput = date | str


def _today() -> date:
    return date.today()


def late_threshold() -> time:
    return get_settings().late_threshold


def parse_check_in_time(value: str | time) -> time:
    if isinstance(value, time):
        return value.replace(microsecond=0, tzinfo=None)
    if not isinstance(value, str) or not _TIME_PATTERN.match(value):
        raise BadRequestError("Invalid check-in time format. Use HH:MM:SS", code="INVALID_TIME_FORMAT")
    return time.fromisoformat(value)


def parse_date(value: DateInput) -> date:
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _DATE_PATTERN.match(value):
        raise BadRequestError("Invalid date format. Use YYYY-MM-DD", code="INVALID_DATE_FORMAT")
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise BadRequestError("Invalid date format. Use YYYY-MM-DD", code="INVALID_DATE_FORMAT") from exc


def parse_date_range(start: DateInput, end: DateInput) -> tuple[date, date]:
    start_date = parse_date(start)
    end_date = parse_date(end)
    if start_date > end_date:
        raise BadRequestError("Start date must be before or equal to end date", code="INVALID_DATE_RANGE")
    return start_date, end_date


def month_bounds(month: str) -> tuple[date, date]:
    if not isinstance(month, str) or not _MONTH_PATTERN.match(month):
        raise BadRequestError("Invalid month format. Use YYYY-MM", code="INVALID_MONTH_FORMAT")
    year, month_number = (int(part) for part in month.split("-"))
    if not 1 <= month_number <= 12 or year < 1:
        raise BadRequestError("Invalid month format. Use YYYY-MM", code="INVALID_MONTH_FORMAT")
    last_day = monthrange(year, month_number)[1]
    return date(year, month_number, 1), date(year, month_number, last_day)


def _require_active_employee(db: Session, employee_id: UUID) -> None:
    if not employee_repo.exists_active(db, employee_id):
        raise NotFoundError("Employee not found", code="EMPLOYEE_NOT_FOUND")


def _require_attendance(db: Session, attendance_id: UUID) -> None:
    if not attendance_repo.exists(db, attendance_id):
        raise NotFoundError("Attendance record not found", code="ATTENDANCE_NOT_FOUND")


def get_all_attendance(db: Session, filters: AttendanceFilters) -> PageResult[dict[str, Any]]:
    return attendance_repo.search(db, filters)


def search(db: Session, filters: AttendanceFilters) -> PageResult[dict[str, Any]]:
    return attendance_repo.search(db, filters)


def get_attendance_by_id(db: Session, attendance_id: UUID) -> Attendance:
    attendance = attendance_repo.find_by_id(db, attendance_id)
    if attendance is None:
        raise NotFoundError("Attendance record not found", code="ATTENDANCE_NOT_FOUND")
    return attendance


def create_or_update_attendance(db: Session, data: dict[str, Any]) -> Attendance:
    employee_id: UUID = data["employee_id"]
    _require_active_employee(db, employee_id)

    attendance_date = parse_date(data["date"])
    if attendance_date > _today():
        raise BadRequestError("Attendance date cannot be in the future", code="DATE_IN_FUTURE")

    check_in_time = parse_check_in_time(data["check_in_time"])

    record = attendance_repo.upsert_attendance(
        db,
        employee_id=employee_id,
        attendance_date=attendance_date,
        check_in_time=check_in_time,
    )
    logger.info(
        "attendance_upserted",
        extra={
            "attendance_id": str(record.id),
            "employee_id": str(employee_id),
            "date": attendance_date.isoformat(),
        },
    )
    return record


def update_attendance(db: Session, attendance_id: UUID, data: dict[str, Any]) -> Attendance:
    _require_attendance(db, attendance_id)

    values: dict[str, Any] = {}
    if data.get("check_in_time"):
        values["check_in_time"] = parse_check_in_time(data["check_in_time"])

    if not values:
        return get_attendance_by_id(db, attendance_id)

    updated = attendance_repo.update_attendance(db, attendance_id, values)
    if updated is None:
        # Row vanished between the existence check and the update.
        raise InternalServerError("Failed to update attendance record", code="ATTENDANCE_UPDATE_FAILED")
    logger.info("attendance_updated", extra={"attendance_id": str(attendance_id)})
    return updated


def delete_attendance(db: Session, attendance_id: UUID) -> bool:
    _require_attendance(db, attendance_id)
    deleted = attendance_repo.delete_attendance(db, attendance_id)
    logger.info("attendance_deleted", extra={"attendance_id": str(attendance_id), "deleted": deleted})
    return deleted


def get_attendance_by_employee_id(db: Session, employee_id: UUID) -> list[Attendance]:
    _require_active_employee(db, employee_id)
    return attendance_repo.find_by_employee_id(db, employee_id)


def get_attendance_by_date(db: Session, attendance_date: DateInput) -> list[dict[str, Any]]:
    return attendance_repo.find_by_date(db, parse_date(attendance_date))


def get_attendance_by_date_range(db: Session, start: DateInput, end: DateInput) -> list[Attendance]:
    start_date, end_date = parse_date_range(start, end)
    return attendance_repo.find_by_date_range(db, start_date, end_date)


def get_monthly_report(db: Session, month: str, employee_id: UUID | None = None) -> list[dict[str, Any]]:
    start_date, end_date = month_bounds(month)
    if employee_id is not None:
        _require_active_employee(db, employee_id)

    return attendance_repo.get_monthly_report(
        db,
        start_date=start_date,
        end_date=end_date,
        late_threshold=late_threshold(),
        employee_id=employee_id,
    )


def get_employee_statistics(
    db: Session,
    employee_id: UUID,
    start: DateInput | None = None,
    end: DateInput | None = None,
) -> dict[str, Any]:
    _require_active_employee(db, employee_id)

    start_date: date | None = None
    end_date: date | None = None
    if start and end:
        start_date, end_date = parse_date_range(start, end)

    return attendance_repo.get_employee_statistics(
        db,
        employee_id,
        late_threshold=late_threshold(),
        start_date=start_date,
        end_date=end_date,
    )


def check_attendance_exists(db: Session, employee_id: UUID, attendance_date: DateInput) -> bool:
    return attendance_repo.exists_for_employee_on_date(db, employee_id, parse_date(attendance_date))


def get_late_arrivals_count(db: Session, employee_id: UUID, start: DateInput, end: DateInput) -> int:
    _require_active_employee(db, employee_id)
    start_date, end_date = parse_date_range(start, end)
    return attendance_repo.count_late_arrivals_by_employee_and_date_range(
        db,
        employee_id,
        start_date,
        end_date,
        late_threshold=late_threshold(),
    )


def bulk_create_attendance(db: Session, records: list[dict[str, Any]]) -> list[Attendance]:
    results: list[Attendance] = []
    for record in records:
        try:
            results.append(create_or_update_attendance(db, record))
        except ApiError as exc:
            raise BadRequestError(
                f"Failed to create attendance for employee {record.get('employee_id')}",
                {
                    "employee_id": str(record.get("employee_id")),
                    "status_code": exc.status_code,
                    "code": exc.code,
                    "message": exc.message,
                    "saved_count": len(results),
                },
                code="BULK_ATTENDANCE_FAILED",
            ) from exc
    logger.info("attendance_bulk_upserted", extra={"count": len(results)})
    return results
