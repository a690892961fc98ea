from __future__ import annotations

import unittest
from collections.abc import Generator
from datetime import date
from decimal import Decimal
from uuid import uuid4

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from hr_admin.db import Base, get_db
from hr_admin.errors import classify_integrity_error
from hr_admin.main import app
from hr_admin.models import Employee
from hr_admin.security import create_access_token


def _session_factory() -> sessionmaker[Session]:
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def _override_get_db(factory: sessionmaker[Session]):
    def _override() -> Generator[Session, None, None]:
        db = factory()
        try:
            yield db
        finally:
            db.close()

    return _override


class ApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.factory = _session_factory()
        app.dependency_overrides[get_db] = _override_get_db(self.factory)
        self.client = TestClient(app)
        token, _claims = create_access_token(user_id=uuid4(), email="hr@example.com", name="HR Person")
        self.auth_headers = {"Authorization": f"Bearer {token}"}

    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    def _add_employee(self, name: str = "Ayse Yilmaz") -> Employee:
        with self.factory() as db:
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


class AuthEndpointTests(ApiTestCase):
    def test_register_login_and_me(self) -> None:
        register = self.client.post(
            "/api/auth/register",
            json={"email": "hr@example.com", "password": "Secret123", "name": "HR Person"},
        )
        self.assertEqual(register.status_code, 201)
        body = register.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["data"]["user"]["email"], "hr@example.com")

        duplicate = self.client.post(
            "/api/auth/register",
            json={"email": "hr@example.com", "password": "Secret123", "name": "HR Person"},
        )
        self.assertEqual(duplicate.status_code, 409)
        self.assertFalse(duplicate.json()["success"])

        login = self.client.post("/api/auth/login", json={"email": "hr@example.com", "password": "Secret123"})
        self.assertEqual(login.status_code, 200)
        token = login.json()["data"]["token"]

        me = self.client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.json()["data"]["name"], "HR Person")
        self.assertNotIn("password_hash", me.json()["data"])

    def test_login_failure_is_unauthorized(self) -> None:
        response = self.client.post("/api/auth/login", json={"email": "nobody@example.com", "password": "Secret123"})

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"]["message"], "Invalid email or password")

    def test_weak_password_is_validation_error(self) -> None:
        response = self.client.post(
            "/api/auth/register",
            json={"email": "hr@example.com", "password": "password", "name": "HR Person"},
        )

        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["error"]["code"], "VALIDATION_ERROR")


class EmployeeEndpointTests(ApiTestCase):
    def test_protected_routes_require_bearer_token(self) -> None:
        missing = self.client.get("/api/employees")
        self.assertEqual(missing.status_code, 401)
        self.assertEqual(missing.json()["error"]["message"], "Authorization header is missing")

        malformed = self.client.get("/api/employees", headers={"Authorization": "Token abc"})
        self.assertEqual(malformed.status_code, 401)

        invalid = self.client.get("/api/employees", headers={"Authorization": "Bearer not-a-jwt"})
        self.assertEqual(invalid.status_code, 401)
        self.assertEqual(invalid.json()["error"]["message"], "Invalid token")

    def test_create_get_and_soft_delete_employee(self) -> None:
        created = self.client.post(
            "/api/employees",
            headers=self.auth_headers,
            json={
                "name": "Ayse Yilmaz",
                "age": 36,
                "designation": "Engineer",
                "hiring_date": "2022-03-01",
                "date_of_birth": "1990-01-15",
                "salary": "50000.00",
            },
        )
        self.assertEqual(created.status_code, 201)
        data = created.json()["data"]
        self.assertEqual(Decimal(str(data["salary"])), Decimal("50000.00"))
        employee_id = data["id"]

        fetched = self.client.get(f"/api/employees/{employee_id}", headers=self.auth_headers)
        self.assertEqual(fetched.status_code, 200)

        deleted = self.client.delete(f"/api/employees/{employee_id}", headers=self.auth_headers)
        self.assertEqual(deleted.status_code, 200)

        gone = self.client.get(f"/api/employees/{employee_id}", headers=self.auth_headers)
        self.assertEqual(gone.status_code, 404)
        self.assertEqual(gone.json()["error"]["message"], "Employee not found")

    def test_create_ignores_photo_path_in_body(self) -> None:
        created = self.client.post(
            "/api/employees",
            headers=self.auth_headers,
            json={
                "name": "Ayse Yilmaz",
                "age": 36,
                "designation": "Engineer",
                "hiring_date": "2022-03-01",
                "date_of_birth": "1990-01-15",
                "salary": "50000.00",
                "photo_path": "../evil.png",
            },
        )

        self.assertEqual(created.status_code, 201)
        self.assertIsNone(created.json()["data"]["photo_path"])

    def test_list_returns_pagination_block(self) -> None:
        for index in range(3):
            self._add_employee(name=f"Employee {index}")

        response = self.client.get("/api/employees?page=1&limit=2", headers=self.auth_headers)

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(len(body["data"]), 2)
        self.assertEqual(body["pagination"], {"page": 1, "limit": 2, "total": 3, "totalPages": 2})

    def test_update_requires_at_least_one_field(self) -> None:
        employee = self._add_employee()

        response = self.client.put(f"/api/employees/{employee.id}", headers=self.auth_headers, json={})

        self.assertEqual(response.status_code, 422)

    def test_limit_above_maximum_is_rejected(self) -> None:
        response = self.client.get("/api/employees?limit=101", headers=self.auth_headers)

        self.assertEqual(response.status_code, 422)


class AttendanceEndpointTests(ApiTestCase):
    def test_upsert_then_read_statistics(self) -> None:
        employee = self._add_employee()

        for day, check_in in (("2026-02-02", "09:00:00"), ("2026-02-02", "10:00:00"), ("2026-02-03", "09:10:00")):
            response = self.client.post(
                "/api/attendance",
                headers=self.auth_headers,
                json={"employee_id": str(employee.id), "date": day, "check_in_time": check_in},
            )
            self.assertEqual(response.status_code, 201)

        listing = self.client.get(f"/api/attendance?employee_id={employee.id}", headers=self.auth_headers)
        self.assertEqual(listing.json()["pagination"]["total"], 2)
        self.assertEqual(listing.json()["data"][0]["employee_name"], "Ayse Yilmaz")

        stats = self.client.get(f"/api/attendance/stats/{employee.id}", headers=self.auth_headers)
        self.assertEqual(stats.status_code, 200)
        self.assertEqual(stats.json()["data"]["late_days"], 1)
        self.assertEqual(stats.json()["data"]["late_percentage"], 50.0)

    def test_bad_month_is_bad_request(self) -> None:
        response = self.client.get("/api/attendance/report/monthly?month=2026-2", headers=self.auth_headers)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["message"], "Invalid month format. Use YYYY-MM")

    def test_bad_check_in_time_is_validation_error(self) -> None:
        employee = self._add_employee()

        response = self.client.post(
            "/api/attendance",
            headers=self.auth_headers,
            json={"employee_id": str(employee.id), "date": "2026-02-02", "check_in_time": "25:00:00"},
        )

        self.assertEqual(response.status_code, 422)

    def test_update_missing_record_is_not_found(self) -> None:
        response = self.client.put(
            f"/api/attendance/{uuid4()}",
            headers=self.auth_headers,
            json={"check_in_time": "09:00:00"},
        )

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"]["message"], "Attendance record not found")


class IntegrityErrorMappingTests(unittest.TestCase):
    def test_unique_violation_maps_to_conflict(self) -> None:
        exc = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: hr_users.email"))

        error = classify_integrity_error(exc)

        self.assertEqual(error.status_code, 409)
        self.assertEqual(error.code, "ALREADY_EXISTS")

    def test_foreign_key_violation_maps_to_bad_request(self) -> None:
        exc = IntegrityError("INSERT", {}, Exception("FOREIGN KEY constraint failed"))

        error = classify_integrity_error(exc)

        self.assertEqual(error.status_code, 400)
        self.assertEqual(error.code, "INVALID_REFERENCE")


if __name__ == "__main__":
    unittest.main()
