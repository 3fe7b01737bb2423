"""
Workflow error taxonomy and result envelope.

Errors are raised inside the gateway and the engines, and caught at the
console boundary where they are wrapped in a WorkflowResult. Nothing in
this package raises across that boundary.
"""

from typing import Any, Optional

from pydantic import BaseModel


class WorkflowError(Exception):
    """Base class for every failure scoped to one in-flight operation"""

    code = "WorkflowError"
    status_code = 500
    default_message = "Thao tác thất bại"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(WorkflowError):
    code = "Unauthenticated"
    status_code = 401
    default_message = "Vui lòng đăng nhập lại"


class InvalidTransition(WorkflowError):
    code = "InvalidTransition"
    status_code = 409
    default_message = "Không thể chuyển trạng thái đơn hàng"


class MissingSelection(WorkflowError):
    code = "MissingSelection"
    status_code = 400
    default_message = "Vui lòng chọn nhân viên"


class NoSelection(WorkflowError):
    code = "NoSelection"
    status_code = 400
    default_message = "Không tìm thấy thông tin booking"


class EmptySignature(WorkflowError):
    code = "EmptySignature"
    status_code = 400
    default_message = "Vui lòng ký vào khung trước khi xác nhận!"


class RemoteRejected(WorkflowError):
    code = "RemoteRejected"
    status_code = 502
    default_message = "Máy chủ từ chối yêu cầu"

    def __init__(self, message: Optional[str] = None, remote_status: Optional[int] = None):
        super().__init__(message)
        self.remote_status = remote_status


class NetworkUnavailable(WorkflowError):
    code = "NetworkUnavailable"
    status_code = 503
    default_message = "Không thể kết nối tới máy chủ"


class ContractCreateFailed(WorkflowError):
    code = "ContractCreateFailed"
    status_code = 502
    default_message = "Tạo hợp đồng thất bại"


class ContractPreviewFailed(WorkflowError):
    code = "ContractPreviewFailed"
    status_code = 502
    default_message = "Không thể lấy preview hợp đồng"


class RequestInFlight(WorkflowError):
    code = "RequestInFlight"
    status_code = 409
    default_message = "Đang xử lý yêu cầu trước đó"


class InvalidFilter(WorkflowError):
    code = "InvalidFilter"
    status_code = 400
    default_message = "Bộ lọc không hợp lệ"


class InvalidRequest(WorkflowError):
    code = "InvalidRequest"
    status_code = 422
    default_message = "Yêu cầu không hợp lệ"


class DialogDismissed(WorkflowError):
    """A response arrived after its dialog was closed or replaced"""

    code = "DialogDismissed"
    status_code = 409
    default_message = "Hộp thoại đã đóng"


class ErrorInfo(BaseModel):
    code: str
    message: str


class WorkflowResult(BaseModel):
    """Success/failure envelope returned by every console operation"""

    ok: bool
    value: Any = None
    error: Optional[ErrorInfo] = None

    @classmethod
    def success(cls, value: Any = None) -> "WorkflowResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: WorkflowError) -> "WorkflowResult":
        return cls(ok=False, error=ErrorInfo(code=error.code, message=error.message))

    @property
    def error_code(self) -> Optional[str]:
        return self.error.code if self.error else None


ERROR_STATUS_CODES = {
    cls.code: cls.status_code
    for cls in (
        Unauthenticated,
        InvalidTransition,
        MissingSelection,
        NoSelection,
        EmptySignature,
        RemoteRejected,
        NetworkUnavailable,
        ContractCreateFailed,
        ContractPreviewFailed,
        RequestInFlight,
        InvalidFilter,
        InvalidRequest,
        DialogDismissed,
    )
}
