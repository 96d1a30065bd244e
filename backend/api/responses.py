"""
Response envelope shared by every v1 router:

    {success, message, data, pagination?, stats?}
"""

import math
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Pagination(BaseModel):
    current_page: int
    per_page: int
    total_count: int
    total_pages: int
    has_next: bool
    has_prev: bool


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    message: str = ""
    data: T | None = None
    pagination: Pagination | None = None
    stats: dict[str, Any] | None = None


class ErrorEnvelope(BaseModel):
    success: bool = False
    message: str
    error: dict[str, Any] | None = None


def paginate(page: int, per_page: int, total_count: int) -> Pagination:
    total_pages = math.ceil(total_count / per_page) if per_page else 0
    return Pagination(
        current_page=page,
        per_page=per_page,
        total_count=total_count,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1,
    )
