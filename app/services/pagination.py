import math
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

MAX_PAGE_SIZE = 100


@dataclass(slots=True)
class Page:
    items: list[Any]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def meta(self) -> dict:
        return {"total": self.total, "page": self.page, "pages": self.pages, "limit": self.limit}


def paginate(db: Session, stmt: Select, page: int = 1, limit: int = 10) -> Page:
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)
    total = db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery())) or 0
    items = db.scalars(stmt.offset((page - 1) * limit).limit(limit)).all()
    return Page(items=list(items), total=int(total), page=page, limit=limit)
