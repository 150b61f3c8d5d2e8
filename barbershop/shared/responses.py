"""Response envelope and pagination helpers shared by all routers"""

import math
from typing import Any, Generic, Optional, TypeVar

from fastapi import Query
from pydantic import BaseModel

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class PaginationMeta(BaseModel):
    total: int
    count: int
    per_page: int
    current_page: int
    total_pages: int
    has_more: bool


class SuccessResponse(BaseModel, Generic[T]):
    success: bool = True
    data: T
    meta: Optional[PaginationMeta] = None


class MessageData(BaseModel):
    message: str


class Pagination:
    """Query parameters shared by list endpoints"""

    def __init__(
        self,
        limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
        offset: int = Query(0, ge=0),
    ):
        self.limit = limit
        self.offset = offset


def build_meta(total: int, count: int, limit: int, offset: int) -> PaginationMeta:
    return PaginationMeta(
        total=total,
        count=count,
        per_page=limit,
        current_page=offset // limit + 1,
        total_pages=math.ceil(total / limit) if total else 0,
        has_more=offset + count < total,
    )


def ok(data: Any, meta: Optional[PaginationMeta] = None) -> dict:
    body = {"success": True, "data": data}
    if meta is not None:
        body["meta"] = meta
    return body


def paginated(items: list, total: int, pagination: Pagination) -> dict:
    return ok(items, build_meta(total, len(items), pagination.limit, pagination.offset))
