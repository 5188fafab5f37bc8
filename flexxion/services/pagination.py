from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..core.config import get_default_page_size, get_max_page_size
from ..core.validation import coerce_positive_int
from ..schemas.feed import Pagination


@dataclass(frozen=True)
class PageWindow:
    page: int
    page_size: int

    @property
    def skip(self) -> int:
        return max(0, self.page - 1) * self.page_size

    @property
    def stop(self) -> int:
        # inclusive end index, as redis range commands expect
        return self.skip + self.page_size - 1


def page_window(page: Any = None, page_size: Any = None) -> PageWindow:
    return PageWindow(
        page=coerce_positive_int(page, 1),
        page_size=min(coerce_positive_int(page_size, get_default_page_size()), get_max_page_size()),
    )


def build_pagination(total: int, window: PageWindow) -> Pagination:
    total_pages = -(-total // window.page_size) if total > 0 else 0
    return Pagination(
        currentPage=window.page,
        totalPages=total_pages,
        totalPosts=total,
        hasNextPage=window.page < total_pages,
        hasPrevPage=window.page > 1 and total > 0,
    )
