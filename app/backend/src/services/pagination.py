"""Offset pagination over SQLAlchemy select statements."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from app.backend.src.core.config import get_settings

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    data: list[T]
    page: int
    per_page: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.per_page) if self.per_page else 0


def clamp_page_size(per_page: int | None) -> int:
    """Apply the configured default and upper bound to a requested page size."""

    settings = get_settings()
    if not per_page or per_page < 1:
        return settings.default_page_size
    return min(per_page, settings.max_page_size)


def paginate(session: Session, stmt: Select[Any], page: int = 1, per_page: int | None = None) -> Page[Any]:
    """Execute ``stmt`` for one page and count the full result set."""

    page = max(page or 1, 1)
    size = clamp_page_size(per_page)
    total = session.scalar(select(func.count()).select_from(stmt.order_by(None).subquery())) or 0
    rows = session.scalars(stmt.limit(size).offset((page - 1) * size)).unique().all()
    return Page(data=list(rows), page=page, per_page=size, total=total)


__all__ = ["Page", "clamp_page_size", "paginate"]
