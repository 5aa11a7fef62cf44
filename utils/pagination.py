"""
Pagination for admin listings
"""
from math import ceil
from typing import Any, Callable, Generic, List, Sequence, TypeVar

from fastapi import Query
from pydantic import BaseModel, Field
from tortoise.queryset import QuerySet


T = TypeVar('T')


class PageParams(BaseModel):
    page: int = Field(1, ge=1, description="Page number")
    page_size: int = Field(20, ge=1, le=100, description="Items per page")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class PageInfo(BaseModel):
    page: int
    page_size: int
    total_pages: int
    total_items: int
    has_previous: bool
    has_next: bool

    @classmethod
    def create(cls, page: int, page_size: int, total_items: int) -> 'PageInfo':
        total_pages = ceil(total_items / page_size) if total_items > 0 else 1
        return cls(
            page=page,
            page_size=page_size,
            total_pages=total_pages,
            total_items=total_items,
            has_previous=page > 1,
            has_next=page < total_pages,
        )


class Page(BaseModel, Generic[T]):
    """
    One page of results

    Example:
        @router.get("/users", response_model=Page[UserResponse])
    """
    items: List[T]
    page_info: PageInfo


async def paginate_queryset(
    queryset: QuerySet,
    page_params: PageParams,
    serialize: Callable[[Any], Any],
) -> dict:
    """
    Count a queryset and fetch one page of it

    Args:
        queryset: Ordered Tortoise queryset
        page_params: Requested page
        serialize: Converts each model instance to its response item

    Returns:
        Data for a ``Page`` response
    """
    total_items = await queryset.count()
    rows = await queryset.offset(page_params.offset).limit(page_params.page_size)
    return {
        "items": [serialize(row) for row in rows],
        "page_info": PageInfo.create(page_params.page, page_params.page_size, total_items),
    }


def paginate_results(items: Sequence[Any], page_params: PageParams) -> dict:
    """Slice an already loaded list into a ``Page`` response"""
    start = page_params.offset
    return {
        "items": list(items[start:start + page_params.page_size]),
        "page_info": PageInfo.create(page_params.page, page_params.page_size, len(items)),
    }


def get_page_params(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
) -> PageParams:
    """FastAPI dependency for paginated endpoints"""
    return PageParams(page=page, page_size=page_size)
