#!/usr/bin/env python
from __future__ import annotations

import json
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from hr_admin.services.photo_storage import photo_exists
from hr_admin.services.schema_guard import verify_runtime_schema
from hr_admin.settings import get_settings

VERSIONS_DIR = ROOT_DIR / "hr_admin" / "migrations" / "versions"
_REVISION_PATTERN = re.compile(r'^\s*revision\s*:\s*str\s*=\s*"([^"]+)"\s*$', re.MULTILINE)
_DOWN_REVISION_PATTERN = re.compile(r'^\s*down_revision\s*:[^=]*=\s*"([^"]+)"\s*$', re.MULTILINE)


def expected_head(versions_dir: Path = VERSIONS_DIR) -> str | None:
    revisions: set[str] = set()
    parents: set[str] = set()
    for path in sorted(versions_dir.glob("*.py")):
        if path.name.startswith("__"):
            continue
        content = path.read_text(encoding="utf-8")
        revision = _REVISION_PATTERN.search(content)
        if revision:
            revisions.add(revision.group(1).strip())
        down_revision = _DOWN_REVISION_PATTERN.search(content)
        if down_revision:
            parents.add(down_revision.group(1).strip())
    heads = sorted(revisions - parents)
    return heads[-1] if heads else None


def run(engine: Engine) -> dict[str, Any]:
    report: dict[str, Any] = {
        "generated_at_utc": datetime.now(timezone.utc).isoformat(),
        "checks": [],
    }

    def add(name: str, status: str, details: dict[str, Any]) -> None:
        report["checks"].append(
            {
                "name": name,
                "status": status,
                "details": details,
            }
        )

    schema = verify_runtime_schema(engine)
    add("schema_guard", "ok" if schema.ok else "fail", schema.to_dict())

    tables = set(inspect(engine).get_table_names())
    with engine.connect() as conn:
        current_versions: list[str] = []
        if "alembic_version" in tables:
            current_versions = [
                str(row[0]) for row in conn.execute(text("select version_num from alembic_version")).fetchall()
            ]
        head = expected_head()
        add(
            "migration_up_to_date",
            "ok" if head in current_versions else "warn",
            {"expected_head": head, "current": current_versions},
        )

        if "attendance" in tables:
            duplicates = conn.execute(
                text(
                    """
                    select employee_id, date, count(*)
                    from attendance
                    group by employee_id, date
                    having count(*) > 1
                    """
                )
            ).fetchall()
            add(
                "duplicate_attendance_per_day",
                "fail" if duplicates else "ok",
                {"rows": [[str(item) for item in row] for row in duplicates]},
            )

            orphan_attendance = conn.execute(
                text(
                    """
                    select a.id
                    from attendance a
                    left join employees e on e.id = a.employee_id
                    where e.id is null
                    limit 20
                    """
                )
            ).fetchall()
            add(
                "attendance_orphan_employee",
                "fail" if orphan_attendance else "ok",
                {"sample_ids": [str(row[0]) for row in orphan_attendance]},
            )

        if "employees" in tables:
            photo_rows = conn.execute(
                text(
                    """
                    select id, photo_path
                    from employees
                    where photo_path is not null and deleted_at is null
                    """
                )
            ).fetchall()
            missing_photos = [str(row[0]) for row in photo_rows if not photo_exists(str(row[1]))]
            add(
                "employee_photo_files",
                "warn" if missing_photos else "ok",
                {"missing_for_employee_ids": missing_photos[:20], "missing_count": len(missing_photos)},
            )

    return report


if __name__ == "__main__":
    result = run(create_engine(get_settings().database_url))
    print(json.dumps(result, ensure_ascii=False, indent=2))
    sys.exit(0 if all(item["status"] != "fail" for item in result["checks"]) else 1)
