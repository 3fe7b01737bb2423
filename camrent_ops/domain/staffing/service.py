"""
Workload assigner.

Computes per-staff workload for the day a booking is scheduled, ranks staff
least-loaded first and issues the assignment request once the manager has
picked someone. The assigner recommends; it never picks on its own.
"""

import logging
from datetime import date, datetime, time, timezone
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from pydantic import ValidationError

from ...config import CONSOLE_TIMEZONE
from ...errors import MissingSelection, RemoteRejected, WorkflowError
from ...gateway import BackendGateway, Credential
from ..bookings.schemas import Booking, Staff
from .schemas import (
    BAND_LABELS,
    AssignmentResult,
    StaffWorkload,
    StaffWorkloadInfo,
    StaffWorkloadResponse,
    TaskType,
    WorkloadBand,
    WorkloadView,
)

logger = logging.getLogger(__name__)

WORKLOAD_UNAVAILABLE_WARNING = "Không thể tải dữ liệu workload, hiển thị danh sách nhân viên"


def day_bounds(target: date, tz_name: str = CONSOLE_TIMEZONE) -> tuple[datetime, datetime]:
    """Inclusive [start, end] of `target` in the branch's local time"""
    tz = ZoneInfo(tz_name)
    start = datetime.combine(target, time.min, tzinfo=tz)
    end = datetime.combine(target, time(23, 59, 59, 999000), tzinfo=tz)
    return start, end


def to_iso_z(moment: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a Z suffix"""
    utc = moment.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def assignment_date(booking: Booking, tz_name: str = CONSOLE_TIMEZONE) -> date:
    """Day used both to query workload and to render it: the pickup day"""
    tz = ZoneInfo(tz_name)
    if booking.pickupAt is None:
        return datetime.now(tz).date()
    pickup = booking.pickupAt
    if pickup.tzinfo is None:
        pickup = pickup.replace(tzinfo=timezone.utc)
    return pickup.astimezone(tz).date()


def total_workload(info: StaffWorkloadInfo) -> int:
    counts = (
        info.assignedBookings,
        info.assignedVerifications,
        info.todayPickupBookings,
        info.todayReturnBookings,
    )
    return sum(max(count, 0) for count in counts)


def workload_band(total: int) -> WorkloadBand:
    if total <= 0:
        return WorkloadBand.FREE
    if total <= 3:
        return WorkloadBand.NORMAL
    if total <= 6:
        return WorkloadBand.BUSY
    return WorkloadBand.VERY_BUSY


def rank_staff(
    records: Iterable[StaffWorkloadInfo], staff: Iterable[Staff] = ()
) -> list[StaffWorkload]:
    """
    Merge workload records with the branch staff list and sort least-loaded
    first. Staff missing from the workload response count as zero load.
    Ties keep source order.
    """
    staff_by_id = {member.userId: member for member in staff}
    seen = set()
    rows = []
    for info in records:
        seen.add(info.staffId)
        member = staff_by_id.get(info.staffId)
        total = total_workload(info)
        band = workload_band(total)
        rows.append(
            StaffWorkload(
                staffId=info.staffId,
                staffName=info.staffName or (member.fullName if member else ""),
                email=member.email if member else None,
                assignedBookings=info.assignedBookings,
                assignedVerifications=info.assignedVerifications,
                todayPickupBookings=info.todayPickupBookings,
                todayReturnBookings=info.todayReturnBookings,
                totalWorkload=total,
                band=band,
                bandLabel=BAND_LABELS[band],
            )
        )

    for member in staff_by_id.values():
        if member.userId not in seen:
            rows.append(
                StaffWorkload(staffId=member.userId, staffName=member.fullName, email=member.email)
            )

    return sorted(rows, key=lambda row: row.totalWorkload)


def plain_staff_list(staff: Iterable[Staff]) -> list[StaffWorkload]:
    return [
        StaffWorkload(staffId=member.userId, staffName=member.fullName, email=member.email)
        for member in staff
    ]


class WorkloadAssigner:
    """Workload queries and staff assignment for one branch"""

    def __init__(self, gateway: BackendGateway, tz_name: str = CONSOLE_TIMEZONE):
        self.gateway = gateway
        self.tz_name = tz_name

    async def fetch_workload(
        self, target: date, credential: Optional[Credential]
    ) -> StaffWorkloadResponse:
        start, end = day_bounds(target, self.tz_name)
        data = await self.gateway.get_json(
            "/Dashboard/staff-workload",
            credential,
            params={"from": to_iso_z(start), "to": to_iso_z(end)},
            error_fallback="Không thể tải dữ liệu workload",
        )
        try:
            return StaffWorkloadResponse.model_validate(data or {})
        except ValidationError as e:
            logger.error(f"❌ Workload payload does not match the workload schema: {e}")
            raise RemoteRejected("Dữ liệu workload không hợp lệ") from e

    async def compute_workload(
        self, target: date, staff: Iterable[Staff], credential: Optional[Credential]
    ) -> list[StaffWorkload]:
        response = await self.fetch_workload(target, credential)
        ranked = rank_staff(response.staffs, staff)
        logger.info(f"📊 Workload for {target.isoformat()}: {len(ranked)} staff ranked")
        return ranked

    async def workload_view(
        self, booking: Booking, staff: list[Staff], credential: Optional[Credential]
    ) -> WorkloadView:
        """
        Build the assignment dialog view. Workload failures degrade to the
        plain staff list with a dismissable warning.
        """
        target = assignment_date(booking, self.tz_name)
        start, end = day_bounds(target, self.tz_name)
        view = WorkloadView(
            targetDate=target,
            fromDate=to_iso_z(start),
            toDate=to_iso_z(end),
            staff=plain_staff_list(staff),
            badgesAvailable=False,
        )
        try:
            ranked = await self.compute_workload(target, staff, credential)
        except WorkflowError as e:
            logger.warning(f"⚠️ Workload unavailable for booking {booking.id}: {e.message}")
            view.warning = WORKLOAD_UNAVAILABLE_WARNING
            return view

        view.staff = ranked
        view.badgesAvailable = True
        view.recommendedStaffId = ranked[0].staffId if ranked else None
        return view

    async def assign(
        self,
        booking_id: str,
        staff_id: Optional[str],
        credential: Optional[Credential],
        task_type: TaskType = TaskType.DELIVERY,
    ) -> AssignmentResult:
        """
        Issue exactly one assignment request.

        Raises:
            MissingSelection: no staff chosen; nothing is sent
            Unauthenticated / RemoteRejected / NetworkUnavailable from the gateway
        """
        if not staff_id:
            raise MissingSelection()

        task_type = TaskType(task_type)
        if task_type == TaskType.DELIVERY:
            response = await self.gateway.request(
                "POST",
                "/Deliveries",
                credential,
                json={
                    "bookingId": booking_id,
                    "assigneeUserId": staff_id,
                    "trackingCode": "",
                    "notes": "",
                    "deliveryFee": 0,
                },
                error_fallback="Tạo đơn giao hàng thất bại",
            )
        else:
            response = await self.gateway.request(
                "PUT",
                f"/Bookings/{booking_id}/assign-staff/{staff_id}",
                credential,
                error_fallback="Phân công nhân viên thất bại",
            )

        record = None
        if response.status_code != 204 and response.content:
            try:
                record = response.json()
            except ValueError:
                record = response.text

        logger.info(f"✅ Booking {booking_id}: {task_type.value} assigned to staff {staff_id}")
        return AssignmentResult(
            bookingId=booking_id, staffId=staff_id, taskType=task_type, record=record
        )
