from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from typing import Any, Callable
from uuid import UUID, uuid4

from sqlalchemy import Select, case, func, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from hr_admin.models import Attendance, Employee
from hr_admin.repositories import base
from hr_admin.repositories.base import PageResult

# Dialects that can express "insert, on conflict update" as one statement.
_UPSERT_INSERTS: dict[str, Callable[..., Any]] = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


@dataclass(frozen=True, slots=True)
class AttendanceFilters:
    employee_id: UUID | None = None
    date: date | None = None
    date_from: date | None = None
    date_to: date | None = None
    page: int = 1
    limit: int = 10


def to_dict(record: Attendance, *, employee_name: str | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": record.id,
        "employee_id": record.employee_id,
        "date": record.date,
        "check_in_time": record.check_in_time,
        "created_at": record.created_at,
        "updated_at": record.updated_at,
    }
    if employee_name is not None:
        payload["employee_name"] = employee_name
    return payload


def _joined_active_query() -> Select[Any]:
    return (
        select(Attendance, Employee.name.label("employee_name"))
        .join(Employee, Attendance.employee_id == Employee.id)
        .where(Employee.deleted_at.is_(None))
    )


def _late_case(late_threshold: time):  # type: ignore[no-untyped-def]
    return case((Attendance.check_in_time > late_threshold, 1), else_=0)


def find_by_id(db: Session, attendance_id: UUID) -> Attendance | None:
    return base.find_by_id(db, Attendance, attendance_id)


def exists(db: Session, attendance_id: UUID) -> bool:
    return base.exists(db, Attendance, attendance_id)


def create_attendance(db: Session, *, employee_id: UUID, attendance_date: date, check_in_time: time) -> Attendance:
    return base.create(
        db,
        Attendance,
        {"employee_id": employee_id, "date": attendance_date, "check_in_time": check_in_time},
    )


def upsert_attendance(
    db: Session,
    *,
    employee_id: UUID,
    attendance_date: date,
    check_in_time: time,
) -> Attendance:
    dialect_name = db.get_bind().dialect.name
    insert_fn = _UPSERT_INSERTS.get(dialect_name)
    if insert_fn is None:
        return _upsert_check_then_write(
            db,
            employee_id=employee_id,
            attendance_date=attendance_date,
            check_in_time=check_in_time,
        )

    now = base.utcnow()
    stmt = insert_fn(Attendance).values(
        id=uuid4(),
        employee_id=employee_id,
        date=attendance_date,
        check_in_time=check_in_time,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["employee_id", "date"],
        set_={
            "check_in_time": stmt.excluded.check_in_time,
            "updated_at": stmt.excluded.updated_at,
        },
    ).returning(Attendance)
    record = db.scalars(stmt, execution_options={"populate_existing": True}).one()
    db.commit()
    return record


def _upsert_check_then_write(
    db: Session,
    *,
    employee_id: UUID,
    attendance_date: date,
    check_in_time: time,
) -> Attendance:
    # Not atomic: a concurrent insert surfaces as IntegrityError on the unique key.
    existing = find_by_employee_and_date(db, employee_id, attendance_date)
    if existing is not None:
        updated = base.update_by_id(db, Attendance, existing.id, {"check_in_time": check_in_time})
        if updated is not None:
            return updated
    return create_attendance(
        db,
        employee_id=employee_id,
        attendance_date=attendance_date,
        check_in_time=check_in_time,
    )


def update_attendance(db: Session, attendance_id: UUID, values: dict[str, Any]) -> Attendance | None:
    return base.update_by_id(db, Attendance, attendance_id, values)


def delete_attendance(db: Session, attendance_id: UUID) -> bool:
    return base.delete_by_id(db, Attendance, attendance_id)


def delete_by_employee_id(db: Session, employee_id: UUID) -> int:
    return base.delete_where(db, Attendance, [Attendance.employee_id == employee_id])


def find_by_employee_id(db: Session, employee_id: UUID) -> list[Attendance]:
    stmt = select(Attendance).where(Attendance.employee_id == employee_id).order_by(Attendance.date.desc())
    return list(db.scalars(stmt).all())


def find_by_employee_and_date(db: Session, employee_id: UUID, attendance_date: date) -> Attendance | None:
    return base.find_one_where(db, Attendance, employee_id=employee_id, date=attendance_date)


def exists_for_employee_on_date(db: Session, employee_id: UUID, attendance_date: date) -> bool:
    return find_by_employee_and_date(db, employee_id, attendance_date) is not None


def find_by_date(db: Session, attendance_date: date) -> list[dict[str, Any]]:
    stmt = _joined_active_query().where(Attendance.date == attendance_date).order_by(Employee.name.asc())
    return [to_dict(row.Attendance, employee_name=row.employee_name) for row in db.execute(stmt)]


def find_by_date_range(db: Session, start_date: date, end_date: date) -> list[Attendance]:
    stmt = (
        select(Attendance)
        .where(Attendance.date.between(start_date, end_date))
        .order_by(Attendance.date.asc(), Attendance.employee_id.asc())
    )
    return list(db.scalars(stmt).all())


def search(db: Session, filters: AttendanceFilters) -> PageResult[dict[str, Any]]:
    stmt = _joined_active_query()
    if filters.employee_id is not None:
        stmt = stmt.where(Attendance.employee_id == filters.employee_id)
    if filters.date is not None:
        stmt = stmt.where(Attendance.date == filters.date)

    if filters.date_from is not None and filters.date_to is not None:
        stmt = stmt.where(Attendance.date.between(filters.date_from, filters.date_to))
    elif filters.date_from is not None:
        stmt = stmt.where(Attendance.date >= filters.date_from)
    elif filters.date_to is not None:
        stmt = stmt.where(Attendance.date <= filters.date_to)

    stmt = stmt.order_by(Attendance.date.desc(), Attendance.employee_id.asc())
    result = base.paginate(db, stmt, page=filters.page, limit=filters.limit, scalars=False)
    rows = [to_dict(row.Attendance, employee_name=row.employee_name) for row in result.data]
    return PageResult(data=rows, page=result.page, limit=result.limit, total=result.total)


def find_all_paginated(db: Session, *, page: int = 1, limit: int = 10) -> PageResult[dict[str, Any]]:
    return search(db, AttendanceFilters(page=page, limit=limit))


def get_monthly_report(
    db: Session,
    *,
    start_date: date,
    end_date: date,
    late_threshold: time,
    employee_id: UUID | None = None,
) -> list[dict[str, Any]]:
    stmt = (
        select(
            Attendance.employee_id,
            Employee.name.label("employee_name"),
            func.count(func.distinct(Attendance.date)).label("days_present"),
            func.coalesce(func.sum(_late_case(late_threshold)), 0).label("times_late"),
        )
        .join(Employee, Attendance.employee_id == Employee.id)
        .where(
            Attendance.date.between(start_date, end_date),
            Employee.deleted_at.is_(None),
        )
    )
    if employee_id is not None:
        stmt = stmt.where(Attendance.employee_id == employee_id)

    stmt = stmt.group_by(Attendance.employee_id, Employee.name).order_by(Employee.name.asc())
    return [
        {
            "employee_id": row.employee_id,
            "name": row.employee_name,
            "days_present": int(row.days_present or 0),
            "times_late": int(row.times_late or 0),
        }
        for row in db.execute(stmt)
    ]


def count_late_arrivals_by_employee_and_date_range(
    db: Session,
    employee_id: UUID,
    start_date: date,
    end_date: date,
    *,
    late_threshold: time,
) -> int:
    stmt = select(func.count()).select_from(Attendance).where(
        Attendance.employee_id == employee_id,
        Attendance.date.between(start_date, end_date),
        Attendance.check_in_time > late_threshold,
    )
    return int(db.scalar(stmt) or 0)


def get_employee_statistics(
    db: Session,
    employee_id: UUID,
    *,
    late_threshold: time,
    start_date: date | None = None,
    end_date: date | None = None,
) -> dict[str, Any]:
    on_time_case = case((Attendance.check_in_time <= late_threshold, 1), else_=0)
    stmt = select(
        func.count().label("total_days"),
        func.coalesce(func.sum(_late_case(late_threshold)), 0).label("late_days"),
        func.coalesce(func.sum(on_time_case), 0).label("on_time_days"),
    ).where(Attendance.employee_id == employee_id)
    if start_date is not None and end_date is not None:
        stmt = stmt.where(Attendance.date.between(start_date, end_date))

    row = db.execute(stmt).one()
    total_days = int(row.total_days or 0)
    late_days = int(row.late_days or 0)
    on_time_days = int(row.on_time_days or 0)
    late_percentage = round(late_days / total_days * 100, 2) if total_days > 0 else 0

    return {
        "total_days": total_days,
        "late_days": late_days,
        "on_time_days": on_time_days,
        "late_percentage": late_percentage,
    }
