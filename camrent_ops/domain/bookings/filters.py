"""Filter/sort engine - pure views over the booking store"""

import unicodedata
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable

from pydantic import BaseModel

from .schemas import CART_LABEL, STATUS_MAP, Booking, get_status_number

ROWS_PER_PAGE_OPTIONS = (5, 10, 25, 50)
DEFAULT_ROWS_PER_PAGE = 10

# Tab 0 shows everything, tabs 1..5 map to status numbers 0..4
TAB_COUNT = len(STATUS_MAP) + 1

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class SortOrder(str, Enum):
    NEWEST = "newest"
    ALPHABETICAL = "alphabetical"


class BookingFilter(BaseModel):
    query: str = ""
    tab: int = 0
    sort: SortOrder = SortOrder.NEWEST


class BookingPage(BaseModel):
    rows: list[Booking]
    total: int
    page: int
    rowsPerPage: int


def matches_query(booking: Booking, query: str) -> bool:
    if not query:
        return True
    needle = query.lower()
    haystack = [
        booking.id,
        booking.renterId,
        booking.location.province or "",
        booking.location.district or "",
    ]
    haystack.extend(item.itemName for item in booking.items)
    return any(needle in value.lower() for value in haystack)


def matches_tab(booking: Booking, tab: int) -> bool:
    if tab == 0:
        return True
    return get_status_number(booking.statusText) == tab - 1


def _created_key(booking: Booking) -> datetime:
    created = booking.createdAt
    if created is None:
        return _EPOCH
    if created.tzinfo is None:
        # Naive backend timestamps are UTC
        return created.replace(tzinfo=timezone.utc)
    return created


def _collation_key(value: str) -> tuple[str, str]:
    folded = unicodedata.normalize("NFKD", value).casefold()
    return folded, value


def sort_bookings(bookings: Iterable[Booking], order: SortOrder) -> list[Booking]:
    order = SortOrder(order)
    if order == SortOrder.ALPHABETICAL:
        return sorted(bookings, key=lambda b: _collation_key(b.id))
    return sorted(bookings, key=_created_key, reverse=True)


def apply_filters(bookings: Iterable[Booking], criteria: BookingFilter) -> list[Booking]:
    """Derive the visible list. Never mutates the input; same input, same output."""
    if not 0 <= criteria.tab < TAB_COUNT:
        raise ValueError(f"Unknown tab {criteria.tab}")

    visible = [
        booking
        for booking in bookings
        if booking.statusText != CART_LABEL
        and matches_query(booking, criteria.query)
        and matches_tab(booking, criteria.tab)
    ]
    return sort_bookings(visible, criteria.sort)


def status_counts(bookings: Iterable[Booking]) -> dict[str, int]:
    """Counts for the tab badges: 'all' plus one entry per status label"""
    counts = {"all": 0}
    counts.update({label: 0 for label in STATUS_MAP})
    for booking in bookings:
        if booking.statusText == CART_LABEL:
            continue
        counts["all"] += 1
        if booking.statusText in STATUS_MAP:
            counts[booking.statusText] += 1
    return counts


def paginate(rows: list[Booking], page: int = 0, rows_per_page: int = DEFAULT_ROWS_PER_PAGE) -> BookingPage:
    if rows_per_page not in ROWS_PER_PAGE_OPTIONS:
        rows_per_page = DEFAULT_ROWS_PER_PAGE
    page = max(page, 0)
    start = page * rows_per_page
    return BookingPage(
        rows=rows[start : start + rows_per_page],
        total=len(rows),
        page=page,
        rowsPerPage=rows_per_page,
    )
