"""Booking domain schemas - Pydantic models mirroring the backend payloads"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class BookingStatus(str, Enum):
    """Internal booking states. The display label is the source of truth."""

    PENDING_APPROVAL = "PendingApproval"
    CONFIRMED = "Confirmed"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    REJECTED = "Rejected"
    UNKNOWN = "Unknown"


CART_LABEL = "Giỏ hàng"
UNKNOWN_STATUS_NUMBER = -1

# Label -> tab number. Anything else is the unknown sentinel.
STATUS_MAP: dict[str, int] = {
    "Chờ xác nhận": 0,
    "Đã xác nhận": 1,
    "Đang thuê": 2,
    "Hoàn thành": 3,
    "Đã hủy": 4,
}

LABEL_STATUS: dict[str, BookingStatus] = {
    "Chờ xác nhận": BookingStatus.PENDING_APPROVAL,
    "Đã xác nhận": BookingStatus.CONFIRMED,
    "Đang thuê": BookingStatus.IN_PROGRESS,
    "Hoàn thành": BookingStatus.COMPLETED,
    "Đã hủy": BookingStatus.CANCELLED,
}

# Rejected is accepted as a terminal state but has no tab of its own
REJECTED_LABELS = ("Đã từ chối", "Rejected")

STATUS_LABELS: dict[BookingStatus, str] = {
    status: label for label, status in LABEL_STATUS.items()
}
STATUS_LABELS[BookingStatus.REJECTED] = REJECTED_LABELS[0]


def get_status_number(label: Optional[str]) -> int:
    return STATUS_MAP.get(label or "", UNKNOWN_STATUS_NUMBER)


def status_from_label(label: Optional[str]) -> BookingStatus:
    if label in LABEL_STATUS:
        return LABEL_STATUS[label]
    if label in REJECTED_LABELS:
        return BookingStatus.REJECTED
    return BookingStatus.UNKNOWN


class Location(BaseModel):
    province: Optional[str] = ""
    district: Optional[str] = ""


class Renter(BaseModel):
    id: Optional[str] = None
    fullName: Optional[str] = None
    email: Optional[str] = None
    phoneNumber: Optional[str] = None


class BookingItem(BaseModel):
    itemId: Optional[str] = None
    itemName: str = "Unknown Item"
    itemType: str = "Unknown"
    quantity: int = 1
    unitPrice: float = 0

    @field_validator("itemName", "itemType", mode="before")
    @classmethod
    def validate_text(cls, v: Any) -> Any:
        return "Unknown" if v is None else v


class ContractRef(BaseModel):
    """Contract already attached to a booking by the backend"""

    id: str
    status: Optional[str] = None


class Booking(BaseModel):
    """Schema for a branch booking as returned by the backend"""

    id: str
    renterId: str = ""
    renter: Optional[Renter] = None
    statusText: str = ""
    snapshotRentalTotal: float = 0
    createdAt: Optional[datetime] = None
    pickupAt: Optional[datetime] = None
    returnAt: Optional[datetime] = None
    location: Location = Field(default_factory=Location)
    items: list[BookingItem] = Field(default_factory=list)
    contracts: list[ContractRef] = Field(default_factory=list)

    @field_validator("renterId", "statusText", mode="before")
    @classmethod
    def validate_text(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("snapshotRentalTotal", mode="before")
    @classmethod
    def validate_total(cls, v: Any) -> Any:
        return 0 if v is None else v

    @field_validator("location", mode="before")
    @classmethod
    def validate_location(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("items", "contracts", mode="before")
    @classmethod
    def validate_lists(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def renter_name(self) -> str:
        if self.renter and self.renter.fullName:
            return self.renter.fullName
        return self.renterId

    @property
    def status(self) -> BookingStatus:
        return status_from_label(self.statusText)


class Staff(BaseModel):
    """Branch membership record. Read-only for the console."""

    userId: str
    fullName: str = ""
    email: Optional[str] = None
    role: Optional[str] = None

    @field_validator("fullName", mode="before")
    @classmethod
    def validate_full_name(cls, v: Any) -> Any:
        return "" if v is None else v
