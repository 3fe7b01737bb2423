"""Staffing domain schemas - workload and assignment models"""

from datetime import date
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class WorkloadBand(str, Enum):
    FREE = "free"
    NORMAL = "normal"
    BUSY = "busy"
    VERY_BUSY = "very busy"


BAND_LABELS = {
    WorkloadBand.FREE: "Rảnh",
    WorkloadBand.NORMAL: "Bình thường",
    WorkloadBand.BUSY: "Bận",
    WorkloadBand.VERY_BUSY: "Rất bận",
}


class TaskType(str, Enum):
    DELIVERY = "delivery"
    VERIFICATION = "verification"


class StaffWorkloadInfo(BaseModel):
    """One record of GET /Dashboard/staff-workload"""

    staffId: str
    staffName: str = ""
    assignedBookings: int = 0
    assignedVerifications: int = 0
    todayPickupBookings: int = 0
    todayReturnBookings: int = 0

    @field_validator("staffName", mode="before")
    @classmethod
    def validate_staff_name(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator(
        "assignedBookings",
        "assignedVerifications",
        "todayPickupBookings",
        "todayReturnBookings",
        mode="before",
    )
    @classmethod
    def validate_count(cls, v: Any) -> Any:
        # Null count means no tasks
        return 0 if v is None else v


class StaffWorkloadResponse(BaseModel):
    branchId: Optional[str] = None
    branchName: Optional[str] = None
    staffs: list[StaffWorkloadInfo] = Field(default_factory=list)

    @field_validator("staffs", mode="before")
    @classmethod
    def validate_staffs(cls, v: Any) -> Any:
        return [] if v is None else v


class StaffWorkload(BaseModel):
    """Workload of one staff member for the target day, ready for display"""

    staffId: str
    staffName: str
    email: Optional[str] = None
    assignedBookings: int = 0
    assignedVerifications: int = 0
    todayPickupBookings: int = 0
    todayReturnBookings: int = 0
    totalWorkload: int = 0
    band: WorkloadBand = WorkloadBand.FREE
    bandLabel: str = BAND_LABELS[WorkloadBand.FREE]


class WorkloadView(BaseModel):
    """What the assignment dialog renders"""

    targetDate: date
    fromDate: str
    toDate: str
    staff: list[StaffWorkload]
    badgesAvailable: bool = True
    warning: Optional[str] = None
    recommendedStaffId: Optional[str] = None


class AssignmentRequest(BaseModel):
    staffId: Optional[str] = None
    taskType: TaskType = TaskType.DELIVERY


class AssignmentResult(BaseModel):
    bookingId: str
    staffId: str
    taskType: TaskType
    record: Optional[Any] = None
