import math
from typing import Callable, Sequence

from sqlalchemy import Select

from tutorial_center.config import settings
from tutorial_center.repository import Repository
from tutorial_center.schemas import PaginatedResponse


def resolve_page(page: int | None, page_size: int | None) -> tuple[int, int]:
    """
    Apply the configured defaults to an optional 1-based page / size pair.

    The size is clamped to ``settings.MAX_PAGE_SIZE`` regardless of what the
    caller asked for.
    """
    page = page or settings.DEFAULT_PAGE
    page_size = min(page_size or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)
    return max(page, 1), max(page_size, 1)


async def paginate(
    repo: Repository,
    stmt: Select,
    page: int,
    page_size: int,
    serializer: Callable,
    options: Sequence = (),
) -> PaginatedResponse:
    """
    Return one page of *stmt* plus total-count metadata.

    Two SQL statements are issued:
    1. COUNT over *stmt* (without eager-loading options).
    2. *stmt* with *options*, LIMIT and OFFSET.
    """
    total = await repo.count(stmt)

    page_q = stmt.options(*options).offset((page - 1) * page_size).limit(page_size)
    rows = await repo.scalars(page_q)

    return PaginatedResponse(
        items=[serializer(row) for row in rows],
        total=total,
        page=page,
        page_size=page_size,
        pages=math.ceil(total / page_size) if total > 0 else 0,
    )
