import pytest
from conftest import make_booking

from camrent_ops.domain.bookings.filters import (
    BookingFilter,
    SortOrder,
    apply_filters,
    paginate,
    status_counts,
)
from camrent_ops.domain.bookings.schemas import (
    Booking,
    BookingStatus,
    get_status_number,
    status_from_label,
)


def bookings(*rows):
    return [Booking.model_validate(row) for row in rows]


@pytest.fixture
def branch_bookings():
    return bookings(
        make_booking("b-pending", "Chờ xác nhận", "2025-03-01T08:00:00Z"),
        make_booking("b-confirmed", "Đã xác nhận", "2025-03-03T08:00:00Z"),
        make_booking("b-renting", "Đang thuê", "2025-03-02T08:00:00Z"),
        make_booking("b-done", "Hoàn thành", None),
        make_booking("b-cancelled", "Đã hủy", "2025-02-20T08:00:00Z"),
        make_booking("b-odd", "Đang giao hàng", "2025-02-25T08:00:00Z"),
        make_booking("b-cart", "Giỏ hàng", "2025-03-05T08:00:00Z"),
    )


@pytest.mark.parametrize("label", ["Đang giao hàng", "", "Rejected", "chờ xác nhận"])
def test_unknown_labels_map_to_sentinel(label):
    assert get_status_number(label) == -1


def test_known_labels_are_numbered_in_tab_order():
    labels = ("Chờ xác nhận", "Đã xác nhận", "Đang thuê", "Hoàn thành", "Đã hủy")
    assert [get_status_number(label) for label in labels] == [0, 1, 2, 3, 4]


def test_rejected_label_resolves_to_rejected_state_without_a_tab():
    assert status_from_label("Đã từ chối") == BookingStatus.REJECTED
    assert get_status_number("Đã từ chối") == -1


def test_unknown_status_only_shows_on_all_tab(branch_bookings):
    for tab in range(1, 6):
        ids = [b.id for b in apply_filters(branch_bookings, BookingFilter(tab=tab))]
        assert "b-odd" not in ids
    assert "b-odd" in [b.id for b in apply_filters(branch_bookings, BookingFilter(tab=0))]


def test_cart_bookings_never_shown(branch_bookings):
    for tab in range(6):
        assert "b-cart" not in [b.id for b in apply_filters(branch_bookings, BookingFilter(tab=tab))]


@pytest.mark.parametrize(
    "tab,expected",
    [(1, "b-pending"), (2, "b-confirmed"), (3, "b-renting"), (4, "b-done"), (5, "b-cancelled")],
)
def test_each_tab_selects_one_status(branch_bookings, tab, expected):
    assert [b.id for b in apply_filters(branch_bookings, BookingFilter(tab=tab))] == [expected]


@pytest.mark.parametrize(
    "query",
    ["B-CONFIRMED", "renter-b-confirmed", "canon eos", "hồ chí", "quận 1"],
)
def test_query_matches_id_renter_item_and_location(query):
    rows = bookings(make_booking("b-confirmed"))
    assert len(apply_filters(rows, BookingFilter(query=query))) == 1


def test_query_does_not_match_renter_display_name():
    rows = bookings(make_booking("b-1"))
    assert apply_filters(rows, BookingFilter(query="Nguyễn")) == []


def test_newest_sort_puts_missing_timestamp_last(branch_bookings):
    ids = [b.id for b in apply_filters(branch_bookings, BookingFilter(sort=SortOrder.NEWEST))]
    assert ids == ["b-confirmed", "b-renting", "b-pending", "b-odd", "b-cancelled", "b-done"]


def test_alphabetical_sort_is_case_insensitive():
    rows = bookings(make_booking("beta"), make_booking("Alpha"), make_booking("ápple"))
    ids = [b.id for b in apply_filters(rows, BookingFilter(sort=SortOrder.ALPHABETICAL))]
    assert ids == ["Alpha", "ápple", "beta"]


def test_filtering_is_idempotent_and_pure(branch_bookings):
    criteria = BookingFilter(query="b-", tab=0, sort=SortOrder.NEWEST)
    before = [b.model_dump() for b in branch_bookings]

    first = apply_filters(branch_bookings, criteria)
    second = apply_filters(branch_bookings, criteria)

    assert [b.model_dump() for b in first] == [b.model_dump() for b in second]
    assert [b.model_dump() for b in branch_bookings] == before


def test_unknown_tab_is_rejected(branch_bookings):
    with pytest.raises(ValueError):
        apply_filters(branch_bookings, BookingFilter(tab=6))


def test_status_counts_skip_cart(branch_bookings):
    counts = status_counts(branch_bookings)
    assert counts["all"] == 6
    assert counts["Chờ xác nhận"] == 1
    assert counts["Đã hủy"] == 1


def test_paginate_falls_back_to_default_page_size(branch_bookings):
    page = paginate(branch_bookings, page=0, rows_per_page=7)
    assert page.rowsPerPage == 10
    assert page.total == len(branch_bookings)

    second = paginate(branch_bookings, page=1, rows_per_page=5)
    assert [b.id for b in second.rows] == [b.id for b in branch_bookings[5:]]
