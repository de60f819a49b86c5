"""In-memory offset pagination helpers"""

import math
from typing import List, Sequence, TypeVar

T = TypeVar("T")


def total_pages(total: int, per_page: int) -> int:
    """ceil(total / per_page), 0 when there is nothing to page"""
    if total <= 0 or per_page <= 0:
        return 0
    return math.ceil(total / per_page)


def slice_page(items: Sequence[T], page: int, per_page: int) -> List[T]:
    """Items [(page-1)*per_page, page*per_page)"""
    start = (page - 1) * per_page
    return list(items[start:start + per_page])
