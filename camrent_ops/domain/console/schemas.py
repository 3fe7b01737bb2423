"""Console domain schemas - request/response bodies of the console routes"""

from typing import Any, Optional

from pydantic import BaseModel

from ...errors import ErrorInfo
from ...services.notification_service import Notice
from ..bookings.status_service import BackendStatus
from .controller import DialogKind, TransitionAction


class DialogRequest(BaseModel):
    kind: DialogKind


class TransitionRequest(BaseModel):
    action: TransitionAction
    target: Optional[BackendStatus] = None


class ConsoleResponse(BaseModel):
    """Workflow result plus the console state the page re-renders from"""

    ok: bool
    value: Any = None
    error: Optional[ErrorInfo] = None
    sessionId: str
    dialog: DialogKind
    selectedBookingId: Optional[str] = None
    inFlight: bool = False
    notices: list[Notice] = []
