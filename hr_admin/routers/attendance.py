from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from hr_admin.db import get_db
from hr_admin.repositories.attendance import AttendanceFilters
from hr_admin.schemas import (
    AttendanceBulkCreate,
    AttendanceCreate,
    AttendanceRead,
    AttendanceStatistics,
    AttendanceUpdate,
    AttendanceWithEmployeeRead,
    MonthlyAttendanceReportRow,
    envelope,
)
from hr_admin.security import require_hr_user
from hr_admin.services import attendance as attendance_service

router = APIRouter(
    prefix="/api/attendance",
    tags=["attendance"],
    dependencies=[Depends(require_hr_user)],
)


def _read(record: Any) -> AttendanceRead:
    return AttendanceRead.model_validate(record)


def _optional_date(value: str | None):  # type: ignore[no-untyped-def]
    return attendance_service.parse_date(value) if value else None


@router.get("")
def list_attendance(
    employee_id: UUID | None = Query(default=None),
    date: str | None = Query(default=None),
    date_from: str | None = Query(default=None, alias="from"),
    date_to: str | None = Query(default=None, alias="to"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    filters = AttendanceFilters(
        employee_id=employee_id,
        date=_optional_date(date),
        date_from=_optional_date(date_from),
        date_to=_optional_date(date_to),
        page=page,
        limit=limit,
    )
    result = attendance_service.get_all_attendance(db, filters)
    return envelope(
        "Attendance records retrieved successfully",
        [AttendanceWithEmployeeRead.model_validate(row) for row in result.data],
        pagination=result.pagination(),
    )


@router.get("/report/monthly")
def monthly_report(
    month: str = Query(),
    employee_id: UUID | None = Query(default=None),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    rows = attendance_service.get_monthly_report(db, month, employee_id)
    return envelope(
        "Monthly report generated successfully",
        [MonthlyAttendanceReportRow.model_validate(row) for row in rows],
    )


@router.get("/range")
def list_by_date_range(
    start_date: str = Query(),
    end_date: str = Query(),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    records = attendance_service.get_attendance_by_date_range(db, start_date, end_date)
    return envelope("Attendance records retrieved successfully", [_read(item) for item in records])


@router.get("/employee/{employee_id}")
def list_by_employee(employee_id: UUID, db: Session = Depends(get_db)) -> dict[str, Any]:
    records = attendance_service.get_attendance_by_employee_id(db, employee_id)
    return envelope("Attendance records retrieved successfully", [_read(item) for item in records])


@router.get("/date/{attendance_date}")
def list_by_date(attendance_date: str, db: Session = Depends(get_db)) -> dict[str, Any]:
    rows = attendance_service.get_attendance_by_date(db, attendance_date)
    return envelope(
        "Attendance records retrieved successfully",
        [AttendanceWithEmployeeRead.model_validate(row) for row in rows],
    )


@router.get("/stats/{employee_id}")
def employee_statistics(
    employee_id: UUID,
    start_date: str | None = Query(default=None),
    end_date: str | None = Query(default=None),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    stats = attendance_service.get_employee_statistics(db, employee_id, start_date, end_date)
    return envelope("Employee statistics retrieved successfully", AttendanceStatistics.model_validate(stats))


@router.get("/late-count/{employee_id}")
def late_arrivals_count(
    employee_id: UUID,
    start_date: str = Query(),
    end_date: str = Query(),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    late_count = attendance_service.get_late_arrivals_count(db, employee_id, start_date, end_date)
    return envelope("Late arrivals count retrieved successfully", {"late_count": late_count})


@router.get("/{attendance_id}")
def get_attendance(attendance_id: UUID, db: Session = Depends(get_db)) -> dict[str, Any]:
    record = attendance_service.get_attendance_by_id(db, attendance_id)
    return envelope("Attendance record retrieved successfully", _read(record))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_or_update_attendance(payload: AttendanceCreate, db: Session = Depends(get_db)) -> dict[str, Any]:
    record = attendance_service.create_or_update_attendance(db, payload.model_dump())
    return envelope("Attendance recorded successfully", _read(record))


@router.post("/bulk", status_code=status.HTTP_201_CREATED)
def bulk_create_attendance(payload: AttendanceBulkCreate, db: Session = Depends(get_db)) -> dict[str, Any]:
    records = attendance_service.bulk_create_attendance(db, [item.model_dump() for item in payload.records])
    return envelope(
        f"{len(records)} attendance records processed successfully",
        [_read(item) for item in records],
    )


@router.put("/{attendance_id}")
def update_attendance(
    attendance_id: UUID,
    payload: AttendanceUpdate,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    record = attendance_service.update_attendance(db, attendance_id, payload.model_dump())
    return envelope("Attendance record updated successfully", _read(record))


@router.delete("/{attendance_id}")
def delete_attendance(attendance_id: UUID, db: Session = Depends(get_db)) -> dict[str, Any]:
    attendance_service.delete_attendance(db, attendance_id)
    return envelope("Attendance record deleted successfully")
