# runmate/utils/pagination.py

from typing import Tuple


def history_window(total: int, page: int, limit: int) -> Tuple[int, int]:
    """
    Index range [start, end) of page ``page`` when walking a chronological
    list of ``total`` items backwards from the newest one.

    Page 1 is the newest ``limit`` items. ``start > 0`` means older items exist.
    """
    page = max(page, 1)
    limit = max(limit, 1)
    start = max(0, total - page * limit)
    end = max(0, total - (page - 1) * limit)
    return start, end


def offset_for(page: int, limit: int) -> int:
    return (max(page, 1) - 1) * max(limit, 1)


def total_pages(total: int, limit: int) -> int:
    limit = max(limit, 1)
    return (total + limit - 1) // limit
