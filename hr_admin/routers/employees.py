from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.orm import Session

from hr_admin.db import get_db
from hr_admin.schemas import DesignationCount, EmployeeCreate, EmployeeRead, EmployeeUpdate, envelope
from hr_admin.security import require_hr_user
from hr_admin.services import employees as employee_service
from hr_admin.services.employees import EmployeeFilters

router = APIRouter(
    prefix="/api/employees",
    tags=["employees"],
    dependencies=[Depends(require_hr_user)],
)


def _read(employee: Any) -> EmployeeRead:
    return EmployeeRead.model_validate(employee)


@router.get("")
def list_employees(
    search: str | None = Query(default=None, max_length=255),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    result = employee_service.get_all_employees(db, EmployeeFilters(search=search, page=page, limit=limit))
    return envelope(
        "Employees retrieved successfully",
        [_read(item) for item in result.data],
        pagination=result.pagination(),
    )


@router.get("/stats/count-by-designation")
def count_by_designation(db: Session = Depends(get_db)) -> dict[str, Any]:
    rows = employee_service.get_employee_count_by_designation(db)
    return envelope(
        "Employee count by designation retrieved successfully",
        [DesignationCount.model_validate(row) for row in rows],
    )


@router.get("/designation/{designation}")
def list_by_designation(designation: str, db: Session = Depends(get_db)) -> dict[str, Any]:
    employees = employee_service.get_employees_by_designation(db, designation)
    return envelope("Employees retrieved successfully", [_read(item) for item in employees])


@router.get("/salary-range")
def list_by_salary_range(
    min_salary: Decimal = Query(ge=0),
    max_salary: Decimal = Query(ge=0),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    employees = employee_service.get_employees_by_salary_range(db, min_salary, max_salary)
    return envelope("Employees retrieved successfully", [_read(item) for item in employees])


@router.get("/hired-between")
def list_hired_between(
    start_date: date = Query(),
    end_date: date = Query(),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    employees = employee_service.get_employees_by_hiring_date_range(db, start_date, end_date)
    return envelope("Employees retrieved successfully", [_read(item) for item in employees])


@router.get("/{employee_id}")
def get_employee(employee_id: UUID, db: Session = Depends(get_db)) -> dict[str, Any]:
    employee = employee_service.get_employee_by_id(db, employee_id)
    return envelope("Employee retrieved successfully", _read(employee))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_employee(payload: EmployeeCreate, db: Session = Depends(get_db)) -> dict[str, Any]:
    employee = employee_service.create_employee(db, payload.model_dump())
    return envelope("Employee created successfully", _read(employee))


@router.put("/{employee_id}")
def update_employee(
    employee_id: UUID,
    payload: EmployeeUpdate,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    changes = {key: value for key, value in payload.model_dump(exclude_unset=True).items() if value is not None}
    employee = employee_service.update_employee(db, employee_id, changes)
    return envelope("Employee updated successfully", _read(employee))


@router.delete("/{employee_id}")
def delete_employee(employee_id: UUID, db: Session = Depends(get_db)) -> dict[str, Any]:
    employee_service.delete_employee(db, employee_id)
    return envelope("Employee deleted successfully")


@router.post("/{employee_id}/restore")
def restore_employee(employee_id: UUID, db: Session = Depends(get_db)) -> dict[str, Any]:
    employee = employee_service.restore_employee(db, employee_id)
    return envelope("Employee restored successfully", _read(employee))


@router.put("/{employee_id}/photo")
def upload_photo(
    employee_id: UUID,
    photo: UploadFile = File(...),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    employee = employee_service.upload_employee_photo(
        db,
        employee_id,
        photo.file,
        filename=photo.filename,
        content_type=photo.content_type,
    )
    return envelope("Employee photo updated successfully", _read(employee))


@router.delete("/{employee_id}/photo")
def remove_photo(employee_id: UUID, db: Session = Depends(get_db)) -> dict[str, Any]:
    employee = employee_service.remove_employee_photo(db, employee_id)
    return envelope("Employee photo removed successfully", _read(employee))
