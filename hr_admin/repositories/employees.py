from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Mapping
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from hr_admin.models import Employee
from hr_admin.repositories import base
from hr_admin.repositories.base import PageResult

_ACTIVE = Employee.deleted_at.is_(None)


def _active_query():  # type: ignore[no-untyped-def]
    return select(Employee).where(_ACTIVE)


def find_by_id(db: Session, employee_id: UUID) -> Employee | None:
    return base.find_by_id(db, Employee, employee_id)


def find_by_id_active(db: Session, employee_id: UUID) -> Employee | None:
    return db.scalar(_active_query().where(Employee.id == employee_id))


def exists_active(db: Session, employee_id: UUID) -> bool:
    return find_by_id_active(db, employee_id) is not None


def create_employee(db: Session, values: Mapping[str, Any]) -> Employee:
    return base.create(db, Employee, values)


def update_employee(db: Session, employee_id: UUID, values: Mapping[str, Any]) -> Employee | None:
    return base.update_by_id(db, Employee, employee_id, values, extra_criteria=[_ACTIVE])


def soft_delete(db: Session, employee_id: UUID) -> bool:
    updated = base.update_where(
        db,
        Employee,
        [Employee.id == employee_id, _ACTIVE],
        {"deleted_at": base.utcnow()},
    )
    return updated > 0


def hard_delete(db: Session, employee_id: UUID) -> bool:
    return base.delete_by_id(db, Employee, employee_id)


def restore(db: Session, employee_id: UUID) -> bool:
    updated = base.update_where(
        db,
        Employee,
        [Employee.id == employee_id, Employee.deleted_at.is_not(None)],
        {"deleted_at": None},
    )
    return updated > 0


def search(db: Session, *, search: str | None, page: int = 1, limit: int = 10) -> PageResult[Employee]:
    stmt = _active_query()
    if search:
        stmt = stmt.where(Employee.name.icontains(search, autoescape=True))
    stmt = stmt.order_by(Employee.created_at.desc())
    return base.paginate(db, stmt, page=page, limit=limit)


def find_all_paginated(db: Session, *, page: int = 1, limit: int = 10) -> PageResult[Employee]:
    return search(db, search=None, page=page, limit=limit)


def find_by_designation(db: Session, designation: str) -> list[Employee]:
    stmt = _active_query().where(Employee.designation == designation).order_by(Employee.created_at.desc())
    return list(db.scalars(stmt).all())


def find_by_hiring_date_range(db: Session, start_date: date, end_date: date) -> list[Employee]:
    stmt = (
        _active_query()
        .where(Employee.hiring_date.between(start_date, end_date))
        .order_by(Employee.hiring_date.desc())
    )
    return list(db.scalars(stmt).all())


def find_by_salary_range(db: Session, min_salary: Decimal, max_salary: Decimal) -> list[Employee]:
    stmt = (
        _active_query()
        .where(Employee.salary.between(min_salary, max_salary))
        .order_by(Employee.salary.desc())
    )
    return list(db.scalars(stmt).all())


def count_by_designation(db: Session) -> list[dict[str, Any]]:
    count_col = func.count().label("count")
    stmt = (
        select(Employee.designation, count_col)
        .where(_ACTIVE)
        .group_by(Employee.designation)
        .order_by(count_col.desc(), Employee.designation.asc())
    )
    return [{"designation": row.designation, "count": int(row.count)} for row in db.execute(stmt)]


def update_photo_path(db: Session, employee_id: UUID, photo_path: str) -> Employee | None:
    return update_employee(db, employee_id, {"photo_path": photo_path})


def remove_photo(db: Session, employee_id: UUID) -> Employee | None:
    return update_employee(db, employee_id, {"photo_path": None})
