from __future__ import annotations
from math import ceil
from pydantic import BaseModel


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "Pagination":
        return cls(total=total, page=page, limit=limit, pages=ceil(total / limit) if limit else 0)
