"""Contract domain schemas - Pydantic models for the create/preview/sign pipeline"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class ContractScope(str, Enum):
    """What the contract is created for"""

    BOOKING = "booking"
    VERIFICATION = "verification"


class PipelineStage(str, Enum):
    IDLE = "idle"
    CREATED = "created"
    PREVIEWED = "previewed"
    SIGNED = "signed"


class PipelineStep(str, Enum):
    CREATE = "create"
    PREVIEW = "preview"
    SIGN = "sign"
    # Preview a contract the booking already has, without creating one
    VIEW_EXISTING = "view_existing"


class ContractCreated(BaseModel):
    contractId: str
    ownerId: str
    scope: ContractScope


class ContractPreview(BaseModel):
    """Leased preview of the contract PDF"""

    contractId: str
    filename: str
    previewUrl: str
    token: str
    size: int


class ContractSigned(BaseModel):
    contractId: str


class PipelineStepRequest(BaseModel):
    """Schema for one pipeline step issued from the contract dialogs"""

    step: PipelineStep
    scope: ContractScope = ContractScope.BOOKING
    ownerId: Optional[str] = None
    signature: Optional[str] = None  # data URI from the signature canvas


class PipelineState(BaseModel):
    stage: PipelineStage
    contractId: Optional[str] = None
    filename: Optional[str] = None
    previewUrl: Optional[str] = None
