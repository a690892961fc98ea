"""Generic CRUD helpers shared by the entity repositories.

Every helper takes the session and the mapped class explicitly, so entity
modules compose them instead of inheriting from a base repository.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from math import ceil
from typing import Any, Generic, Mapping, Sequence, TypeVar
from uuid import UUID

from sqlalchemy import Select, delete, func, select, update
from sqlalchemy.orm import Session

ModelT = TypeVar("ModelT")
RowT = TypeVar("RowT")


@dataclass(frozen=True, slots=True)
class PageResult(Generic[RowT]):
    data: list[RowT]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return ceil(self.total / self.limit)

    def pagination(self) -> dict[str, int]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "totalPages": self.total_pages,
        }


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def find_by_id(db: Session, model: type[ModelT], record_id: UUID) -> ModelT | None:
    return db.get(model, record_id)


def exists(db: Session, model: type[ModelT], record_id: UUID) -> bool:
    pk = model.id  # type: ignore[attr-defined]
    return db.scalar(select(pk).where(pk == record_id).limit(1)) is not None


def find_one_where(db: Session, model: type[ModelT], **conditions: Any) -> ModelT | None:
    return db.scalars(select(model).filter_by(**conditions).limit(1)).first()


def create(db: Session, model: type[ModelT], values: Mapping[str, Any]) -> ModelT:
    record = model(**values)
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def update_by_id(
    db: Session,
    model: type[ModelT],
    record_id: UUID,
    values: Mapping[str, Any],
    *,
    extra_criteria: Sequence[Any] = (),
) -> ModelT | None:
    pk = model.id  # type: ignore[attr-defined]
    stmt = (
        update(model)
        .where(pk == record_id, *extra_criteria)
        .values(**values, updated_at=utcnow())
        .returning(model)
    )
    record = db.scalars(stmt, execution_options={"populate_existing": True}).first()
    db.commit()
    return record


def update_where(
    db: Session,
    model: type[ModelT],
    criteria: Sequence[Any],
    values: Mapping[str, Any],
) -> int:
    stmt = (
        update(model)
        .where(*criteria)
        .values(**values, updated_at=utcnow())
    )
    result = db.execute(stmt)
    db.commit()
    return int(result.rowcount or 0)


def delete_by_id(db: Session, model: type[ModelT], record_id: UUID) -> bool:
    return delete_where(db, model, [model.id == record_id]) > 0  # type: ignore[attr-defined]


def delete_where(db: Session, model: type[ModelT], criteria: Sequence[Any]) -> int:
    stmt = delete(model).where(*criteria)
    result = db.execute(stmt)
    db.commit()
    return int(result.rowcount or 0)


def paginate(db: Session, stmt: Select[Any], *, page: int, limit: int, scalars: bool = True) -> PageResult[Any]:
    """Run ``stmt`` for one page and count the full filtered result.

    The count wraps the unpaginated statement as a subquery, so joins and
    filters are preserved and ORDER BY is irrelevant to it.
    """

    page = max(1, int(page))
    limit = max(1, int(limit))
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = int(db.scalar(count_stmt) or 0)

    paged = stmt.limit(limit).offset((page - 1) * limit)
    if scalars:
        rows = list(db.scalars(paged).all())
    else:
        rows = list(db.execute(paged).all())
    return PageResult(data=rows, page=page, limit=limit, total=total)
