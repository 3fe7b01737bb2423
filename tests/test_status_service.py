import httpx
import pytest
from conftest import make_booking

from camrent_ops.domain.bookings.schemas import Booking, BookingStatus
from camrent_ops.domain.bookings.status_service import (
    BackendStatus,
    BookingStatusService,
    validate_status_transition,
)
from camrent_ops.errors import InvalidTransition, NetworkUnavailable, RemoteRejected, Unauthenticated

LABELS = {
    BookingStatus.PENDING_APPROVAL: "Chờ xác nhận",
    BookingStatus.CONFIRMED: "Đã xác nhận",
    BookingStatus.IN_PROGRESS: "Đang thuê",
    BookingStatus.COMPLETED: "Hoàn thành",
    BookingStatus.CANCELLED: "Đã hủy",
    BookingStatus.REJECTED: "Đã từ chối",
    BookingStatus.UNKNOWN: "Đang giao hàng",
}


def booking_in(status: BookingStatus, booking_id: str = "bk-1") -> Booking:
    return Booking.model_validate(make_booking(booking_id, LABELS[status]))


@pytest.fixture
def service(gateway):
    return BookingStatusService(gateway)


@pytest.fixture
def accept_updates(backend):
    backend.on("PUT", "/Bookings/bk-1/update-status", httpx.Response(200, json={"id": "bk-1"}))


@pytest.mark.parametrize(
    "current,target,allowed",
    [
        (BookingStatus.PENDING_APPROVAL, BackendStatus.CONFIRMED, True),
        (BookingStatus.CONFIRMED, BackendStatus.CONFIRMED, False),
        (BookingStatus.CONFIRMED, BackendStatus.PENDING, True),
        (BookingStatus.CONFIRMED, BackendStatus.COMPLETED, True),
        (BookingStatus.IN_PROGRESS, BackendStatus.COMPLETED, True),
        (BookingStatus.PENDING_APPROVAL, BackendStatus.COMPLETED, False),
        (BookingStatus.PENDING_APPROVAL, BackendStatus.REJECTED, True),
        (BookingStatus.CONFIRMED, BackendStatus.REJECTED, False),
        (BookingStatus.REJECTED, BackendStatus.CANCELLED, True),
        (BookingStatus.UNKNOWN, BackendStatus.CANCELLED, True),
        (BookingStatus.COMPLETED, BackendStatus.CANCELLED, False),
    ],
)
def test_transition_table(current, target, allowed):
    assert validate_status_transition(current, target) is allowed


@pytest.mark.anyio
async def test_confirm_pending_booking(service, backend, credential, accept_updates):
    result = await service.confirm(booking_in(BookingStatus.PENDING_APPROVAL), credential)

    assert result == BookingStatus.CONFIRMED
    [call] = backend.calls_to("PUT", "/Bookings/bk-1/update-status")
    assert call.url.params["status"] == "Confirmed"
    assert call.headers["Authorization"] == "Bearer manager-token"


@pytest.mark.anyio
@pytest.mark.parametrize(
    "status",
    [s for s in BookingStatus if s != BookingStatus.PENDING_APPROVAL],
)
async def test_confirm_only_from_pending(service, backend, credential, accept_updates, status):
    with pytest.raises(InvalidTransition):
        await service.confirm(booking_in(status), credential)
    assert backend.calls == []


@pytest.mark.anyio
@pytest.mark.parametrize("status", list(BookingStatus))
async def test_cancel_fails_only_from_terminal_states(
    service, backend, credential, accept_updates, status
):
    booking = booking_in(status)
    if status in (BookingStatus.CANCELLED, BookingStatus.COMPLETED):
        with pytest.raises(InvalidTransition):
            await service.cancel(booking, credential)
        assert backend.calls == []
    else:
        assert await service.cancel(booking, credential) == BookingStatus.CANCELLED
        [call] = backend.calls
        assert call.url.params["status"] == "Cancelled"


@pytest.mark.anyio
async def test_missing_credential_sends_nothing(service, backend, accept_updates):
    with pytest.raises(Unauthenticated):
        await service.confirm(booking_in(BookingStatus.PENDING_APPROVAL), None)
    assert backend.calls == []


@pytest.mark.anyio
@pytest.mark.parametrize(
    "body,expected",
    [
        ({"message": "Booking đã bị khóa"}, "Booking đã bị khóa"),
        ({"title": "Bad Request"}, "Bad Request"),
        ({}, "Cập nhật trạng thái thất bại"),
    ],
)
async def test_remote_rejection_carries_backend_message(service, backend, credential, body, expected):
    backend.on("PUT", "/Bookings/bk-1/update-status", httpx.Response(400, json=body))

    with pytest.raises(RemoteRejected) as exc_info:
        await service.confirm(booking_in(BookingStatus.PENDING_APPROVAL), credential)

    assert exc_info.value.message == expected
    assert exc_info.value.remote_status == 400


@pytest.mark.anyio
async def test_transport_failure_is_network_unavailable(service, backend, credential):
    def broken(request):
        raise httpx.ConnectError("connection refused", request=request)

    backend.on("PUT", "/Bookings/bk-1/update-status", broken)

    with pytest.raises(NetworkUnavailable):
        await service.cancel(booking_in(BookingStatus.CONFIRMED), credential)


@pytest.mark.anyio
async def test_set_status_completes_in_progress_booking(service, backend, credential, accept_updates):
    result = await service.set_status(
        booking_in(BookingStatus.IN_PROGRESS), BackendStatus.COMPLETED, credential
    )
    assert result == BookingStatus.COMPLETED
    assert backend.calls[0].url.params["status"] == "Completed"
