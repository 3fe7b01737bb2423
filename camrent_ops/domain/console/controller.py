"""
Booking console controller.

One BookingConsole per manager session. It owns the transient state of the
booking page (selected booking, open dialog, in-flight flag, contract
pipeline) and is the boundary where workflow errors become WorkflowResults
and notices. Nothing raises past this module.

Every dialog open/close bumps an epoch. Work started under an older epoch may
still finish on the network, but its response is dropped: the only side
effect it is allowed is releasing a preview it leased.
"""

import logging
import uuid
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from ...config import CONSOLE_TIMEZONE
from ...errors import (
    DialogDismissed,
    InvalidFilter,
    NoSelection,
    RequestInFlight,
    WorkflowError,
    WorkflowResult,
)
from ...gateway import BackendGateway, Credential
from ...services.notification_service import NotificationService
from ..bookings.filters import (
    DEFAULT_ROWS_PER_PAGE,
    BookingFilter,
    SortOrder,
    apply_filters,
    paginate,
    status_counts,
)
from ..bookings.repository import BookingStore
from ..bookings.schemas import STATUS_LABELS, Booking
from ..bookings.status_service import BackendStatus, BookingStatusService
from ..contracts.preview_store import PreviewStore
from ..contracts.schemas import ContractScope, PipelineStep
from ..contracts.service import ContractPipeline
from ..staffing.schemas import TaskType
from ..staffing.service import WorkloadAssigner

logger = logging.getLogger(__name__)


class DialogKind(str, Enum):
    NONE = "none"
    CONFIRM = "confirm"
    CANCEL = "cancel"
    ASSIGN = "assign"
    CONTRACT = "contract"
    PREVIEW = "preview"
    SIGNATURE = "signature"


class TransitionAction(str, Enum):
    CONFIRM = "confirm"
    CANCEL = "cancel"
    SET_STATUS = "set_status"


# Dialogs that share one contract pipeline run
CONTRACT_DIALOGS = {DialogKind.CONTRACT, DialogKind.PREVIEW, DialogKind.SIGNATURE}

TRANSITION_MESSAGES = {
    BackendStatus.CONFIRMED: "Xác nhận đơn hàng thành công!",
    BackendStatus.CANCELLED: "Hủy đơn hàng thành công!",
}


class BookingConsole:
    """Transient UI state and workflow entry points of one manager session"""

    def __init__(
        self,
        gateway: BackendGateway,
        previews: PreviewStore,
        notifier: Optional[NotificationService] = None,
        tz_name: str = CONSOLE_TIMEZONE,
    ):
        self.session_id = uuid.uuid4().hex
        self.store = BookingStore(gateway)
        self.status_service = BookingStatusService(gateway)
        self.assigner = WorkloadAssigner(gateway, tz_name)
        self.pipeline = ContractPipeline(gateway, previews, on_signed=self._refresh_after_sign)
        self.notifier = notifier or NotificationService()
        self.selected_booking_id: Optional[str] = None
        self.dialog = DialogKind.NONE
        self._epoch = 0
        self._in_flight_epoch: Optional[int] = None

    # ------------------------------------------------------------------
    # Transient state
    # ------------------------------------------------------------------

    @property
    def selected_booking(self) -> Optional[Booking]:
        if self.selected_booking_id is None:
            return None
        return self.store.get(self.selected_booking_id)

    @property
    def in_flight(self) -> bool:
        return self._in_flight_epoch is not None and self._in_flight_epoch == self._epoch

    def _require_booking(self) -> Booking:
        booking = self.selected_booking
        if booking is None:
            raise NoSelection()
        return booking

    def _ensure_epoch(self, epoch: int) -> None:
        if epoch != self._epoch:
            raise DialogDismissed()

    def _set_dialog(self, kind: DialogKind) -> None:
        if self.dialog in CONTRACT_DIALOGS and kind not in CONTRACT_DIALOGS:
            self.pipeline.reset()
        self.dialog = kind
        self._epoch += 1

    def select_booking(self, booking_id: str) -> WorkflowResult:
        if self.store.get(booking_id) is None:
            return self._fail(NoSelection())
        if booking_id != self.selected_booking_id:
            self._set_dialog(DialogKind.NONE)
        self.selected_booking_id = booking_id
        return WorkflowResult.success({"bookingId": booking_id})

    def open_dialog(self, kind: DialogKind) -> WorkflowResult:
        kind = DialogKind(kind)
        if kind != DialogKind.NONE and self.selected_booking is None:
            return self._fail(NoSelection())
        if kind == DialogKind.CONTRACT:
            # A fresh contract dialog never inherits a previous run
            self.pipeline.reset()
        self._set_dialog(kind)
        return WorkflowResult.success({"dialog": kind.value})

    def close_dialog(self) -> WorkflowResult:
        """Close the top dialog. The signature pad closes back onto its preview."""
        if self.dialog == DialogKind.SIGNATURE:
            self._set_dialog(DialogKind.PREVIEW)
        else:
            self._set_dialog(DialogKind.NONE)
        return WorkflowResult.success({"dialog": self.dialog.value})

    def close(self) -> None:
        """End of session: release everything the console still holds"""
        self._set_dialog(DialogKind.NONE)
        self.pipeline.reset()
        self.selected_booking_id = None

    # ------------------------------------------------------------------
    # Boundary helpers
    # ------------------------------------------------------------------

    def _fail(self, error: WorkflowError) -> WorkflowResult:
        result = WorkflowResult.failure(error)
        self.notifier.report(result)
        return result

    async def _run(
        self,
        operation: Callable[[int], Awaitable[Any]],
        success_message: Optional[str] = None,
    ) -> WorkflowResult:
        """Run one backend workflow under the in-flight guard of the open dialog"""
        if self.in_flight:
            return self._fail(RequestInFlight())

        epoch = self._epoch
        self._in_flight_epoch = epoch
        try:
            value = await operation(epoch)
        except WorkflowError as e:
            result = WorkflowResult.failure(e)
        else:
            result = WorkflowResult.success(value)
        finally:
            if self._in_flight_epoch == epoch:
                self._in_flight_epoch = None

        self.notifier.report(result, success_message)
        return result

    async def _refresh_quietly(self, credential: Optional[Credential]) -> bool:
        try:
            await self.store.refresh(credential)
        except WorkflowError as e:
            logger.warning(f"⚠️ Booking store refresh failed after a successful workflow: {e.message}")
            self.notifier.warning("Không thể tải lại danh sách đơn hàng")
            return False
        return True

    async def _refresh_after_sign(self, credential: Optional[Credential]) -> None:
        await self._refresh_quietly(credential)

    # ------------------------------------------------------------------
    # Booking list
    # ------------------------------------------------------------------

    async def refresh(self, credential: Optional[Credential]) -> WorkflowResult:
        async def operation(epoch: int) -> dict:
            await self.store.refresh(credential)
            return {"bookings": len(self.store.bookings), "staff": len(self.store.staff)}

        return await self._run(operation)

    def apply_filters(
        self,
        query: str = "",
        tab: int = 0,
        sort: SortOrder = SortOrder.NEWEST,
        page: int = 0,
        rows_per_page: int = DEFAULT_ROWS_PER_PAGE,
    ) -> WorkflowResult:
        try:
            criteria = BookingFilter(query=query, tab=tab, sort=sort)
            rows = apply_filters(self.store.bookings, criteria)
        except ValueError as e:
            return self._fail(InvalidFilter(str(e)))

        return WorkflowResult.success(
            {
                "page": paginate(rows, page, rows_per_page),
                "counts": status_counts(self.store.bookings),
            }
        )

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    async def request_transition(
        self,
        action: TransitionAction,
        credential: Optional[Credential],
        target: Optional[BackendStatus] = None,
    ) -> WorkflowResult:
        try:
            action = TransitionAction(action)
            if action == TransitionAction.CONFIRM:
                target = BackendStatus.CONFIRMED
            elif action == TransitionAction.CANCEL:
                target = BackendStatus.CANCELLED
            target = BackendStatus(target)
        except ValueError:
            return self._fail(InvalidFilter(f"Trạng thái không hợp lệ: {target}"))

        async def operation(epoch: int) -> dict:
            booking = self._require_booking()
            expected = await self.status_service.set_status(booking, target, credential)
            self._ensure_epoch(epoch)

            refreshed = await self._refresh_quietly(credential)
            current = self.store.get(booking.id)
            holds = refreshed and current is not None and current.status == expected
            if refreshed and not holds:
                logger.warning(
                    f"⚠️ Booking {booking.id} label does not reflect {expected.value} yet"
                )
            self._set_dialog(DialogKind.NONE)
            return {
                "bookingId": booking.id,
                "status": expected.value,
                "statusText": current.statusText if current else STATUS_LABELS.get(expected),
                "postconditionHolds": holds,
            }

        message = TRANSITION_MESSAGES.get(target, f"Cập nhật trạng thái thành {target.value} thành công!")
        return await self._run(operation, message)

    # ------------------------------------------------------------------
    # Staff assignment
    # ------------------------------------------------------------------

    async def compute_workload(self, credential: Optional[Credential]) -> WorkflowResult:
        async def operation(epoch: int):
            booking = self._require_booking()
            view = await self.assigner.workload_view(booking, self.store.staff, credential)
            self._ensure_epoch(epoch)
            if view.warning:
                self.notifier.warning(view.warning)
            return view

        return await self._run(operation)

    async def assign_staff(
        self,
        staff_id: Optional[str],
        credential: Optional[Credential],
        task_type: TaskType = TaskType.DELIVERY,
    ) -> WorkflowResult:
        async def operation(epoch: int):
            booking = self._require_booking()
            assignment = await self.assigner.assign(booking.id, staff_id, credential, task_type)
            self._ensure_epoch(epoch)
            self._set_dialog(DialogKind.NONE)
            await self._refresh_quietly(credential)
            return assignment

        return await self._run(operation, "Gán nhân viên thành công!")

    # ------------------------------------------------------------------
    # Contract pipeline
    # ------------------------------------------------------------------

    async def run_contract_pipeline_step(
        self,
        step: PipelineStep,
        credential: Optional[Credential],
        signature: Optional[str] = None,
        scope: ContractScope = ContractScope.BOOKING,
        owner_id: Optional[str] = None,
    ) -> WorkflowResult:
        step = PipelineStep(step)

        async def operation(epoch: int):
            booking = self._require_booking()

            if step == PipelineStep.CREATE:
                created = await self.pipeline.create(owner_id or booking.id, credential, scope)
                self._ensure_epoch(epoch)
                return created

            if step == PipelineStep.PREVIEW:
                preview = await self.pipeline.preview(credential)
                self._ensure_epoch(epoch)
                self.dialog = DialogKind.PREVIEW
                return preview

            if step == PipelineStep.VIEW_EXISTING:
                if not booking.contracts:
                    raise NoSelection("Không tìm thấy hợp đồng cho đơn này")
                preview = await self.pipeline.view_existing(booking.contracts[0].id, credential)
                self._ensure_epoch(epoch)
                self.dialog = DialogKind.PREVIEW
                return preview

            signed = await self.pipeline.sign(signature, credential)
            self._set_dialog(DialogKind.NONE)
            return signed

        messages = {
            PipelineStep.CREATE: "Tạo hợp đồng thành công!",
            PipelineStep.SIGN: "Chữ ký đã được lưu thành công!",
        }
        return await self._run(operation, messages.get(step))

    def download_contract(self) -> WorkflowResult:
        try:
            content, filename = self.pipeline.download()
        except (WorkflowError, LookupError) as e:
            error = e if isinstance(e, WorkflowError) else NoSelection(str(e))
            return self._fail(error)

        self._set_dialog(DialogKind.NONE)
        self.notifier.success("File đã tải xuống thành công")
        return WorkflowResult.success({"content": content, "filename": filename})


class ConsoleRegistry:
    """Live console sessions of this process"""

    def __init__(self, gateway: BackendGateway, previews: PreviewStore):
        self.gateway = gateway
        self.previews = previews
        self._sessions: dict[str, BookingConsole] = {}

    def open(self) -> BookingConsole:
        console = BookingConsole(self.gateway, self.previews)
        self._sessions[console.session_id] = console
        logger.info(f"🖥️ Console session {console.session_id} opened")
        return console

    def get(self, session_id: str) -> Optional[BookingConsole]:
        return self._sessions.get(session_id)

    def close(self, session_id: str) -> bool:
        console = self._sessions.pop(session_id, None)
        if console is None:
            return False
        console.close()
        logger.info(f"🖥️ Console session {session_id} closed")
        return True

    def close_all(self) -> None:
        for session_id in list(self._sessions):
            self.close(session_id)
