"""Booking store - cached view of the branch's bookings and staff"""

import logging
from typing import Optional

from pydantic import ValidationError

from ...errors import RemoteRejected, Unauthenticated, WorkflowError
from ...gateway import BackendGateway, Credential
from .schemas import CART_LABEL, Booking, Staff

logger = logging.getLogger(__name__)


class BookingStore:
    """
    Holds the last fetched bookings and staff of one console session.

    The backend owns both collections; this store only caches them between
    refreshes so the filter engine can re-derive views without extra calls.
    """

    def __init__(self, gateway: BackendGateway):
        self.gateway = gateway
        self.bookings: list[Booking] = []
        self.staff: list[Staff] = []

    def get(self, booking_id: str) -> Optional[Booking]:
        for booking in self.bookings:
            if booking.id == booking_id:
                return booking
        return None

    def get_staff(self, staff_id: str) -> Optional[Staff]:
        for member in self.staff:
            if member.userId == staff_id:
                return member
        return None

    async def refresh(self, credential: Optional[Credential]) -> list[Booking]:
        """Reload bookings (required) and staff (best effort)"""
        self.bookings = await self.fetch_branch_bookings(credential)
        try:
            self.staff = await self.fetch_staff(credential)
        except WorkflowError as e:
            logger.warning(f"⚠️ Keeping previous staff list, reload failed: {e.message}")
        logger.info(f"🔄 Booking store refreshed: {len(self.bookings)} bookings, {len(self.staff)} staff")
        return self.bookings

    async def fetch_branch_bookings(self, credential: Optional[Credential]) -> list[Booking]:
        try:
            data = await self.gateway.get_json(
                "/Bookings/branchbookings",
                credential,
                error_fallback="Không thể tải danh sách đơn hàng",
            )
        except RemoteRejected as e:
            if e.remote_status == 401:
                raise Unauthenticated("Phiên đăng nhập đã hết hạn, vui lòng đăng nhập lại") from e
            if e.remote_status == 404:
                logger.info("ℹ️ No branch bookings found")
                return []
            raise

        if not data:
            return []
        rows = data if isinstance(data, list) else [data]
        try:
            bookings = [Booking.model_validate(row) for row in rows]
        except ValidationError as e:
            logger.error(f"❌ Branch bookings payload does not match the booking schema: {e}")
            raise RemoteRejected("Dữ liệu đơn hàng không hợp lệ") from e
        return [b for b in bookings if b.statusText != CART_LABEL]

    async def fetch_staff(self, credential: Optional[Credential]) -> list[Staff]:
        data = await self.gateway.get_json(
            "/Branchs/Memberships",
            credential,
            error_fallback="Không thể tải danh sách nhân viên",
        )
        rows = data if isinstance(data, list) else []
        try:
            return [Staff.model_validate(row) for row in rows]
        except ValidationError as e:
            logger.error(f"❌ Branch staff payload does not match the staff schema: {e}")
            raise RemoteRejected("Dữ liệu nhân viên không hợp lệ") from e
