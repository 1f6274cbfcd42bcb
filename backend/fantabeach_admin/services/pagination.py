from typing import List, Sequence, Tuple, TypeVar

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 20


def clamp_page(page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> Tuple[int, int]:
    return max(1, page), max(1, page_size)


def paginate(items: Sequence[T], page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> Tuple[List[T], int, int, int]:
    """Slice `items`; returns (page_items, page, page_size, total)."""
    page, page_size = clamp_page(page, page_size)
    start = (page - 1) * page_size
    return list(items[start:start + page_size]), page, page_size, len(items)
