import re
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

TIME_PATTERN = r"^([01]\d|2[0-3]):([0-5]\d):([0-5]\d)$"
_PASSWORD_STRENGTH = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")


def _require_strong_password(value: str) -> str:
    if not _PASSWORD_STRENGTH.match(value):
        raise ValueError(
            "Password must contain at least one uppercase letter, one lowercase letter, and one number"
        )
    return value


# Auth


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    name: str = Field(min_length=3, max_length=255)

    @field_validator("password")
    @classmethod
    def _password_strength(cls, value: str) -> str:
        return _require_strong_password(value)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)


class ChangePasswordRequest(BaseModel):
    old_password: str = Field(min_length=1, alias="oldPassword")
    new_password: str = Field(min_length=6, alias="newPassword")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("new_password")
    @classmethod
    def _password_strength(cls, value: str) -> str:
        return _require_strong_password(value)


class HrUserRead(BaseModel):
    id: UUID
    email: str
    name: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class TokenUser(BaseModel):
    id: UUID
    email: str
    name: str


class AuthResponse(BaseModel):
    user: TokenUser
    token: str
    expires_in: str


class TokenResponse(BaseModel):
    token: str
    expires_in: str


# Employees


class EmployeeCreate(BaseModel):
    name: str = Field(min_length=2, max_length=255)
    age: int = Field(ge=18, le=100)
    designation: str = Field(min_length=2, max_length=255)
    hiring_date: date
    date_of_birth: date
    salary: Decimal = Field(gt=0, max_digits=12, decimal_places=2)

    @field_validator("date_of_birth")
    @classmethod
    def _dob_in_past(cls, value: date) -> date:
        if value > date.today():
            raise ValueError("Date of birth must be in the past")
        return value


class EmployeeUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=255)
    age: int | None = Field(default=None, ge=18, le=100)
    designation: str | None = Field(default=None, min_length=2, max_length=255)
    hiring_date: date | None = None
    date_of_birth: date | None = None
    salary: Decimal | None = Field(default=None, gt=0, max_digits=12, decimal_places=2)

    @field_validator("date_of_birth")
    @classmethod
    def _dob_in_past(cls, value: date | None) -> date | None:
        if value is not None and value > date.today():
            raise ValueError("Date of birth must be in the past")
        return value

    @model_validator(mode="after")
    def _at_least_one_field(self) -> "EmployeeUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided for update")
        return self


class EmployeeRead(BaseModel):
    id: UUID
    name: str
    age: int
    designation: str
    hiring_date: date
    date_of_birth: date
    salary: Decimal
    photo_path: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class DesignationCount(BaseModel):
    designation: str
    count: int


# Attendance


class AttendanceCreate(BaseModel):
    employee_id: UUID
    date: date
    check_in_time: str = Field(pattern=TIME_PATTERN)


class AttendanceUpdate(BaseModel):
    check_in_time: str = Field(pattern=TIME_PATTERN)


class AttendanceBulkCreate(BaseModel):
    records: list[AttendanceCreate] = Field(min_length=1, max_length=500)


class AttendanceRead(BaseModel):
    id: UUID
    employee_id: UUID
    date: date
    check_in_time: time
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class AttendanceWithEmployeeRead(AttendanceRead):
    employee_name: str


class MonthlyAttendanceReportRow(BaseModel):
    employee_id: UUID
    name: str
    days_present: int
    times_late: int


class AttendanceStatistics(BaseModel):
    total_days: int
    late_days: int
    on_time_days: int
    late_percentage: float


def envelope(message: str, data: Any = None, *, pagination: Any = None) -> dict[str, Any]:
    payload: dict[str, Any] = {"success": True, "message": message}
    if data is not None:
        payload["data"] = data
    if pagination is not None:
        payload["pagination"] = pagination
    return payload
