from __future__ import annotations

import unittest
from datetime import date, time
from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from hr_admin.db import Base
from hr_admin.errors import BadRequestError, NotFoundError
from hr_admin.models import Attendance, Employee
from hr_admin.repositories.attendance import AttendanceFilters
from hr_admin.services import attendance as attendance_service
from hr_admin.services import employees as employee_service


def _session() -> Session:
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()


def _create_employee(db: Session, name: str = "Ayse Yilmaz") -> Employee:
    employee = Employee(
        name=name,
        age=36,
        designation="Engineer",
        hiring_date=date(2022, 3, 1),
        date_of_birth=date(1990, 1, 15),
        salary=Decimal("50000.00"),
    )
    db.add(employee)
    db.commit()
    db.refresh(employee)
    return employee


def _record(employee: Employee, day: str, check_in: str) -> dict[str, object]:
    return {"employee_id": employee.id, "date": day, "check_in_time": check_in}


class AttendanceParsingTests(unittest.TestCase):
    def test_parse_check_in_time_rejects_out_of_range_hour(self) -> None:
        with self.assertRaises(BadRequestError) as ctx:
            attendance_service.parse_check_in_time("25:00:00")
        self.assertEqual(ctx.exception.message, "Invalid check-in time format. Use HH:MM:SS")

    def test_parse_date_rejects_impossible_calendar_date(self) -> None:
        with self.assertRaises(BadRequestError) as ctx:
            attendance_service.parse_date("2026-02-30")
        self.assertEqual(ctx.exception.message, "Invalid date format. Use YYYY-MM-DD")

    def test_month_bounds_handle_february(self) -> None:
        self.assertEqual(
            attendance_service.month_bounds("2026-02"),
            (date(2026, 2, 1), date(2026, 2, 28)),
        )
        self.assertEqual(
            attendance_service.month_bounds("2024-02"),
            (date(2024, 2, 1), date(2024, 2, 29)),
        )
        for bad in ("2026-13", "2026-2", "202602"):
            with self.assertRaises(BadRequestError):
                attendance_service.month_bounds(bad)


class AttendanceServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = _session()
        self.addCleanup(self.db.close)
        patcher = patch("hr_admin.services.attendance._today", return_value=date(2026, 3, 15))
        patcher.start()
        self.addCleanup(patcher.stop)
        self.employee = _create_employee(self.db)

    def _count_rows(self) -> int:
        return int(self.db.scalar(select(func.count()).select_from(Attendance)) or 0)

    def test_upsert_keeps_one_row_per_employee_and_day(self) -> None:
        first = attendance_service.create_or_update_attendance(
            self.db, _record(self.employee, "2026-02-02", "09:00:00")
        )
        second = attendance_service.create_or_update_attendance(
            self.db, _record(self.employee, "2026-02-02", "10:15:00")
        )

        self.assertEqual(first.id, second.id)
        self.assertEqual(second.check_in_time, time(10, 15))
        self.assertEqual(self._count_rows(), 1)

    def test_upsert_rejects_future_date(self) -> None:
        with self.assertRaises(BadRequestError) as ctx:
            attendance_service.create_or_update_attendance(
                self.db, _record(self.employee, "2026-03-16", "09:00:00")
            )
        self.assertEqual(ctx.exception.message, "Attendance date cannot be in the future")

        today = attendance_service.create_or_update_attendance(
            self.db, _record(self.employee, "2026-03-15", "09:00:00")
        )
        self.assertEqual(today.date, date(2026, 3, 15))

    def test_upsert_for_soft_deleted_employee_is_not_found(self) -> None:
        employee_service.delete_employee(self.db, self.employee.id)

        with self.assertRaises(NotFoundError):
            attendance_service.create_or_update_attendance(
                self.db, _record(self.employee, "2026-02-02", "09:00:00")
            )

    def test_update_missing_record_is_not_found(self) -> None:
        with self.assertRaises(NotFoundError) as ctx:
            attendance_service.update_attendance(self.db, uuid4(), {"check_in_time": "09:00:00"})
        self.assertEqual(ctx.exception.message, "Attendance record not found")

    def test_update_rejects_invalid_time(self) -> None:
        record = attendance_service.create_or_update_attendance(
            self.db, _record(self.employee, "2026-02-02", "09:00:00")
        )

        with self.assertRaises(BadRequestError):
            attendance_service.update_attendance(self.db, record.id, {"check_in_time": "25:00:00"})

        updated = attendance_service.update_attendance(self.db, record.id, {"check_in_time": "08:30:00"})
        self.assertEqual(updated.check_in_time, time(8, 30))

    def test_delete_removes_record(self) -> None:
        record = attendance_service.create_or_update_attendance(
            self.db, _record(self.employee, "2026-02-02", "09:00:00")
        )

        self.assertTrue(attendance_service.delete_attendance(self.db, record.id))
        with self.assertRaises(NotFoundError):
            attendance_service.delete_attendance(self.db, record.id)

    def test_statistics_count_threshold_as_on_time(self) -> None:
        for day, check_in in (
            ("2026-02-02", "09:00:00"),
            ("2026-02-03", "09:45:00"),
            ("2026-02-04", "09:46:00"),
            ("2026-02-05", "09:30:00"),
        ):
            attendance_service.create_or_update_attendance(self.db, _record(self.employee, day, check_in))

        stats = attendance_service.get_employee_statistics(self.db, self.employee.id)

        self.assertEqual(
            stats,
            {"total_days": 4, "late_days": 1, "on_time_days": 3, "late_percentage": 25.0},
        )

    def test_statistics_without_records_report_zero_percentage(self) -> None:
        stats = attendance_service.get_employee_statistics(self.db, self.employee.id)

        self.assertEqual(stats["total_days"], 0)
        self.assertEqual(stats["late_percentage"], 0)

    def test_monthly_report_counts_days_and_late_arrivals(self) -> None:
        for day, check_in in (
            ("2026-02-02", "09:50:00"),
            ("2026-02-03", "09:00:00"),
            ("2026-02-04", "10:30:00"),
            ("2026-02-05", "09:45:00"),
            ("2026-02-06", "08:55:00"),
            ("2026-01-30", "11:00:00"),
            ("2026-03-02", "11:00:00"),
        ):
            attendance_service.create_or_update_attendance(self.db, _record(self.employee, day, check_in))

        rows = attendance_service.get_monthly_report(self.db, "2026-02")

        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["employee_id"], self.employee.id)
        self.assertEqual(rows[0]["name"], "Ayse Yilmaz")
        self.assertEqual(rows[0]["days_present"], 5)
        self.assertEqual(rows[0]["times_late"], 2)

    def test_monthly_report_rejects_bad_month(self) -> None:
        with self.assertRaises(BadRequestError) as ctx:
            attendance_service.get_monthly_report(self.db, "2026/02")
        self.assertEqual(ctx.exception.message, "Invalid month format. Use YYYY-MM")

    def test_date_range_rejects_inverted_bounds(self) -> None:
        with self.assertRaises(BadRequestError) as ctx:
            attendance_service.get_attendance_by_date_range(self.db, "2026-02-10", "2026-02-01")
        self.assertEqual(ctx.exception.message, "Start date must be before or equal to end date")

    def test_date_range_orders_by_date_then_employee(self) -> None:
        other = _create_employee(self.db, name="Mehmet Kaya")
        attendance_service.create_or_update_attendance(self.db, _record(self.employee, "2026-02-03", "09:00:00"))
        attendance_service.create_or_update_attendance(self.db, _record(other, "2026-02-02", "09:00:00"))
        attendance_service.create_or_update_attendance(self.db, _record(self.employee, "2026-02-02", "09:00:00"))

        records = attendance_service.get_attendance_by_date_range(self.db, "2026-02-01", "2026-02-28")

        self.assertEqual(
            [(item.date, item.employee_id) for item in records],
            [
                (date(2026, 2, 2), min(self.employee.id, other.id)),
                (date(2026, 2, 2), max(self.employee.id, other.id)),
                (date(2026, 2, 3), self.employee.id),
            ],
        )

    def test_by_date_includes_employee_name(self) -> None:
        attendance_service.create_or_update_attendance(self.db, _record(self.employee, "2026-02-02", "09:00:00"))

        rows = attendance_service.get_attendance_by_date(self.db, "2026-02-02")

        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["employee_name"], "Ayse Yilmaz")

    def test_search_filters_and_paginates(self) -> None:
        for day in range(1, 24):
            attendance_service.create_or_update_attendance(
                self.db, _record(self.employee, f"2026-02-{day:02d}", "09:00:00")
            )

        page = attendance_service.get_all_attendance(
            self.db,
            AttendanceFilters(employee_id=self.employee.id, page=1, limit=10),
        )
        self.assertEqual(page.pagination()["totalPages"], 3)
        self.assertEqual(page.data[0]["date"], date(2026, 2, 23))

        beyond = attendance_service.get_all_attendance(self.db, AttendanceFilters(page=4, limit=10))
        self.assertEqual(beyond.data, [])
        self.assertEqual(beyond.total, 23)

        windowed = attendance_service.get_all_attendance(
            self.db,
            AttendanceFilters(date_from=date(2026, 2, 10), date_to=date(2026, 2, 12)),
        )
        self.assertEqual(windowed.total, 3)

    def test_late_arrivals_count_and_existence_check(self) -> None:
        attendance_service.create_or_update_attendance(self.db, _record(self.employee, "2026-02-02", "10:00:00"))
        attendance_service.create_or_update_attendance(self.db, _record(self.employee, "2026-02-03", "09:00:00"))

        late = attendance_service.get_late_arrivals_count(self.db, self.employee.id, "2026-02-01", "2026-02-28")

        self.assertEqual(late, 1)
        self.assertTrue(attendance_service.check_attendance_exists(self.db, self.employee.id, "2026-02-02"))
        self.assertFalse(attendance_service.check_attendance_exists(self.db, self.employee.id, "2026-02-04"))

    def test_bulk_stops_at_first_failure_and_keeps_earlier_records(self) -> None:
        records = [
            _record(self.employee, "2026-02-02", "09:00:00"),
            {"employee_id": uuid4(), "date": "2026-02-02", "check_in_time": "09:00:00"},
            _record(self.employee, "2026-02-03", "09:00:00"),
        ]

        with self.assertRaises(BadRequestError) as ctx:
            attendance_service.bulk_create_attendance(self.db, records)

        self.assertEqual(ctx.exception.code, "BULK_ATTENDANCE_FAILED")
        self.assertEqual(ctx.exception.details["code"], "EMPLOYEE_NOT_FOUND")
        self.assertEqual(ctx.exception.details["saved_count"], 1)
        self.assertEqual(self._count_rows(), 1)


if __name__ == "__main__":
    unittest.main()
