"""Console router - FastAPI endpoints for the branch manager booking page"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse, Response

from ...auth import get_credential
from ...errors import ERROR_STATUS_CODES, WorkflowResult
from ...gateway import Credential
from ..bookings.filters import DEFAULT_ROWS_PER_PAGE, SortOrder
from ..contracts.pdf_service import ContractPDFService
from ..contracts.schemas import PipelineStepRequest
from ..staffing.schemas import AssignmentRequest
from .controller import BookingConsole, ConsoleRegistry
from .schemas import ConsoleResponse, DialogRequest, TransitionRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/console", tags=["Booking Console"])


def get_registry(request: Request) -> ConsoleRegistry:
    """Dependency injection for the process-wide ConsoleRegistry"""
    return request.app.state.consoles


def get_console(
    session_id: str, registry: ConsoleRegistry = Depends(get_registry)
) -> BookingConsole:
    console = registry.get(session_id)
    if console is None:
        raise HTTPException(status_code=404, detail="Console session not found")
    return console


def render(console: BookingConsole, result: WorkflowResult) -> JSONResponse:
    body = ConsoleResponse(
        ok=result.ok,
        value=result.value,
        error=result.error,
        sessionId=console.session_id,
        dialog=console.dialog,
        selectedBookingId=console.selected_booking_id,
        inFlight=console.in_flight,
        notices=console.notifier.drain(),
    )
    status_code = 200 if result.ok else ERROR_STATUS_CODES.get(result.error_code, 500)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


# ============================================================================
# SESSIONS
# ============================================================================


@router.post("/sessions")
async def open_session(
    registry: ConsoleRegistry = Depends(get_registry),
    credential: Optional[Credential] = Depends(get_credential),
):
    """Open a console session and load the branch bookings"""
    console = registry.open()
    result = await console.refresh(credential)
    return render(console, result)


@router.delete("/sessions/{session_id}")
async def close_session(session_id: str, registry: ConsoleRegistry = Depends(get_registry)):
    """Close a session, releasing any preview it still holds"""
    if not registry.close(session_id):
        raise HTTPException(status_code=404, detail="Console session not found")
    return {"message": "Console session closed"}


@router.post("/sessions/{session_id}/refresh")
async def refresh(
    console: BookingConsole = Depends(get_console),
    credential: Optional[Credential] = Depends(get_credential),
):
    return render(console, await console.refresh(credential))


@router.get("/sessions/{session_id}/notices")
async def notices(console: BookingConsole = Depends(get_console)):
    return {"notices": [notice.model_dump(mode="json") for notice in console.notifier.drain()]}


# ============================================================================
# BOOKING LIST
# ============================================================================


@router.get("/sessions/{session_id}/bookings")
async def list_bookings(
    console: BookingConsole = Depends(get_console),
    q: str = Query("", description="Search booking id, renter, item, province or district"),
    tab: int = Query(0, ge=0, le=5, description="0 = all, 1..5 = one status each"),
    sort: SortOrder = Query(SortOrder.NEWEST),
    page: int = Query(0, ge=0),
    rows_per_page: int = Query(DEFAULT_ROWS_PER_PAGE, alias="rowsPerPage"),
):
    """Filtered, sorted and paginated view of the cached bookings"""
    return render(console, console.apply_filters(q, tab, sort, page, rows_per_page))


@router.post("/sessions/{session_id}/bookings/{booking_id}/select")
async def select_booking(booking_id: str, console: BookingConsole = Depends(get_console)):
    return render(console, console.select_booking(booking_id))


# ============================================================================
# DIALOGS
# ============================================================================


@router.post("/sessions/{session_id}/dialog")
async def open_dialog(data: DialogRequest, console: BookingConsole = Depends(get_console)):
    return render(console, console.open_dialog(data.kind))


@router.delete("/sessions/{session_id}/dialog")
async def close_dialog(console: BookingConsole = Depends(get_console)):
    return render(console, console.close_dialog())


# ============================================================================
# WORKFLOWS
# ============================================================================


@router.post("/sessions/{session_id}/transitions")
async def request_transition(
    data: TransitionRequest,
    console: BookingConsole = Depends(get_console),
    credential: Optional[Credential] = Depends(get_credential),
):
    """Confirm, cancel or set the status of the selected booking"""
    result = await console.request_transition(data.action, credential, data.target)
    return render(console, result)


@router.get("/sessions/{session_id}/workload")
async def workload(
    console: BookingConsole = Depends(get_console),
    credential: Optional[Credential] = Depends(get_credential),
):
    """Staff workload for the selected booking's pickup day, least loaded first"""
    return render(console, await console.compute_workload(credential))


@router.post("/sessions/{session_id}/assignments")
async def assign_staff(
    data: AssignmentRequest,
    console: BookingConsole = Depends(get_console),
    credential: Optional[Credential] = Depends(get_credential),
):
    result = await console.assign_staff(data.staffId, credential, data.taskType)
    return render(console, result)


@router.post("/sessions/{session_id}/contract")
async def contract_step(
    data: PipelineStepRequest,
    console: BookingConsole = Depends(get_console),
    credential: Optional[Credential] = Depends(get_credential),
):
    """Run one step of the create → preview → sign pipeline"""
    result = await console.run_contract_pipeline_step(
        data.step,
        credential,
        signature=data.signature,
        scope=data.scope,
        owner_id=data.ownerId,
    )
    return render(console, result)


@router.get("/sessions/{session_id}/contract/download")
async def download_contract(console: BookingConsole = Depends(get_console)):
    """Download the previewed contract PDF; this closes the preview"""
    result = console.download_contract()
    if not result.ok:
        return render(console, result)

    return Response(
        content=result.value["content"],
        media_type="application/pdf",
        headers={
            "Content-Disposition": ContractPDFService.content_disposition(result.value["filename"])
        },
    )
