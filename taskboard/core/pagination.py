import math
from typing import Any, Dict, List, Tuple


def page_range(page: int, page_size: int) -> Tuple[int, int]:
    """Inclusive row offsets for a 1-based page, as used by ``.range()``."""
    page = max(1, page)
    start = (page - 1) * page_size
    return start, start + page_size - 1


def total_pages(total: int, page_size: int) -> int:
    return max(1, math.ceil(total / page_size))


def page_response(items: List[Dict[str, Any]], total: int, page: int, page_size: int) -> Dict[str, Any]:
    return {
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages(total, page_size),
    }
