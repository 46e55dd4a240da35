"""
Paged views over a collection's ordered content.

Public page numbers are one-based. build_paged_view() is a pure function:
the same inputs always yield the same PagedView.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from django.conf import settings

from .exceptions import ValidationError

FIRST_PAGE = 1
MIN_PAGE_SIZE = 1
DEFAULT_MAX_PAGE_SIZE = 100

KIND_COUNT_FIELDS = {
    "image": "image_count",
    "text": "text_count",
    "code": "code_count",
    "gif": "gif_count",
}


@dataclass
class PagedView:
    page: int
    page_size: int
    total_elements: int
    total_pages: int
    has_previous: bool
    has_next: bool
    is_first: bool
    is_last: bool
    previous_page: Optional[int]
    next_page: Optional[int]
    image_count: int = 0
    text_count: int = 0
    code_count: int = 0
    gif_count: int = 0
    items: List = field(default_factory=list)


def max_page_size() -> int:
    return getattr(settings, "GALLERY_MAX_PAGE_SIZE", DEFAULT_MAX_PAGE_SIZE)


def validate_page_request(page, page_size):
    """Reject page numbers below 1 and page sizes outside [1, max]."""
    if not isinstance(page, int) or isinstance(page, bool) or page < FIRST_PAGE:
        raise ValidationError(f"Page must be an integer >= {FIRST_PAGE}", field="page")
    upper = max_page_size()
    if (
        not isinstance(page_size, int)
        or isinstance(page_size, bool)
        or not MIN_PAGE_SIZE <= page_size <= upper
    ):
        raise ValidationError(
            f"Page size must be between {MIN_PAGE_SIZE} and {upper}", field="page_size"
        )


def page_offset(page: int, page_size: int) -> int:
    """Zero-based offset of the first element on a one-based page."""
    return (page - FIRST_PAGE) * page_size


def count_pages(total_elements: int, page_size: int) -> int:
    if total_elements <= 0:
        return 0
    return math.ceil(total_elements / page_size)


def build_paged_view(
    items,
    *,
    page: int,
    page_size: int,
    total_elements: int,
    kind_counts: Optional[Dict[str, int]] = None,
) -> PagedView:
    """
    Wrap one page of items with navigation metadata.

    `kind_counts` covers the whole collection, not just this page.
    """
    validate_page_request(page, page_size)

    total_pages = count_pages(total_elements, page_size)
    has_previous = page > FIRST_PAGE
    has_next = page < total_pages

    # Out-of-range pages point back at the last real page
    previous_page = min(page - 1, total_pages) if has_previous and total_pages else None
    next_page = page + 1 if has_next else None

    counts = {name: 0 for name in KIND_COUNT_FIELDS.values()}
    for kind, count in (kind_counts or {}).items():
        if kind in KIND_COUNT_FIELDS:
            counts[KIND_COUNT_FIELDS[kind]] = count

    return PagedView(
        page=page,
        page_size=page_size,
        total_elements=total_elements,
        total_pages=total_pages,
        has_previous=has_previous,
        has_next=has_next,
        is_first=page == FIRST_PAGE,
        is_last=total_pages == 0 or page == total_pages,
        previous_page=previous_page,
        next_page=next_page,
        items=list(items),
        **counts,
    )
