# cms/utils/pagination.py

"""
page / count 쿼리 파라미터 기반 페이지네이션 헬퍼입니다.

    start, count = paginate(request)   # page=0 부터 시작, count 기본값은 설정의 count_default
"""

from typing import Any, Generic, List, Mapping, Tuple, TypeVar, Union

from fastapi import Request
from pydantic import BaseModel

from cms.core.config import config
from cms.core.exceptions import ParameterException

T = TypeVar("T")

MAX_COUNT = 1000


def _to_int(value: Any, name: str) -> int:
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        raise ParameterException(message=f"{name} must be a non-negative integer") from None
    if number < 0:
        raise ParameterException(message=f"{name} must be a non-negative integer")
    return number


def paginate(request_or_query: Union[Request, Mapping[str, Any]]) -> Tuple[int, int]:
    """(start, count)를 반환합니다. start = page * count."""
    query = request_or_query.query_params if isinstance(request_or_query, Request) else request_or_query
    count_default = config.get_item("count_default", 10)

    raw_count = query.get("count")
    count = count_default if raw_count in (None, "") else _to_int(raw_count, "count")
    if count == 0:
        count = count_default
    count = min(count, MAX_COUNT)

    raw_page = query.get("page")
    page = 0 if raw_page in (None, "") else _to_int(raw_page, "page")
    return page * count, count


class Page(BaseModel, Generic[T]):
    items: List[T]
    total: int
    page: int
    count: int
    total_page: int

    @classmethod
    def build(cls, items: List[Any], total: int, start: int, count: int) -> "Page[Any]":
        return cls(
            items=items,
            total=total,
            page=start // count if count else 0,
            count=count,
            total_page=(total + count - 1) // count if count else 0,
        )
