"""
Booking status state machine.

The display label is the source of truth for a booking's status:
Chờ xác nhận → Đã xác nhận → Đang thuê → Hoàn thành, with Đã hủy and
Rejected as terminal variants.

Transitions are validated locally before anything is sent, then executed
as a single authenticated PUT. The machine never mutates the booking it was
given; callers refresh the booking store afterwards.
"""

import logging
from enum import Enum
from typing import Optional

from ...errors import InvalidTransition
from ...gateway import BackendGateway, Credential
from .schemas import Booking, BookingStatus

logger = logging.getLogger(__name__)


class BackendStatus(str, Enum):
    """Status vocabulary accepted by PUT /Bookings/{id}/update-status"""

    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"
    COMPLETED = "Completed"
    REJECTED = "Rejected"


TARGET_STATES: dict[BackendStatus, BookingStatus] = {
    BackendStatus.PENDING: BookingStatus.PENDING_APPROVAL,
    BackendStatus.CONFIRMED: BookingStatus.CONFIRMED,
    BackendStatus.CANCELLED: BookingStatus.CANCELLED,
    BackendStatus.COMPLETED: BookingStatus.COMPLETED,
    BackendStatus.REJECTED: BookingStatus.REJECTED,
}

_NOT_CANCELLABLE = {BookingStatus.CANCELLED, BookingStatus.COMPLETED}

# Allowed source states per target
VALID_TRANSITIONS: dict[BackendStatus, set[BookingStatus]] = {
    BackendStatus.PENDING: {BookingStatus.CONFIRMED},
    BackendStatus.CONFIRMED: {BookingStatus.PENDING_APPROVAL},
    BackendStatus.COMPLETED: {BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS},
    BackendStatus.REJECTED: {BookingStatus.PENDING_APPROVAL},
    BackendStatus.CANCELLED: set(BookingStatus) - _NOT_CANCELLABLE,
}


def validate_status_transition(current: BookingStatus, target: BackendStatus) -> bool:
    """
    Check whether a booking in `current` may move to `target`.

    Cancelled and Completed are terminal for every target. Rejected and
    unknown states may still be cancelled.
    """
    return current in VALID_TRANSITIONS[target]


class BookingStatusService:
    """Executes validated status transitions against the backend"""

    def __init__(self, gateway: BackendGateway):
        self.gateway = gateway

    async def confirm(self, booking: Booking, credential: Optional[Credential]) -> BookingStatus:
        return await self.set_status(booking, BackendStatus.CONFIRMED, credential)

    async def cancel(self, booking: Booking, credential: Optional[Credential]) -> BookingStatus:
        return await self.set_status(booking, BackendStatus.CANCELLED, credential)

    async def set_status(
        self,
        booking: Booking,
        target: BackendStatus,
        credential: Optional[Credential],
    ) -> BookingStatus:
        """
        Move a booking to `target` and return the state its label must map to
        once the store is refreshed.

        Raises:
            InvalidTransition: the move is not allowed from the current state
            Unauthenticated: no credential
            RemoteRejected: the backend declined, with its message
        """
        target = BackendStatus(target)
        current = booking.status
        if not validate_status_transition(current, target):
            logger.info(
                f"⛔ Booking {booking.id}: {current.value} → {target.value} rejected locally"
            )
            raise InvalidTransition(
                f"Không thể chuyển đơn từ '{booking.statusText or current.value}' "
                f"sang '{target.value}'"
            )

        await self.gateway.request(
            "PUT",
            f"/Bookings/{booking.id}/update-status",
            credential,
            params={"status": target.value},
            error_fallback="Cập nhật trạng thái thất bại",
        )
        logger.info(f"✅ Booking {booking.id} transitioned: {current.value} → {target.value}")
        return TARGET_STATES[target]
