"""
Contract pipeline - create → preview → sign.

Each step is gated on the previous one and nothing is retried automatically.
The pipeline owns at most one preview lease at a time; every path that ends
the preview cycle releases it.
"""

import logging
from typing import Any, Awaitable, Callable, Optional

from ...config import CONTRACT_CREATE_BOOKING_PATH, CONTRACT_CREATE_VERIFICATION_PATH
from ...errors import (
    ContractCreateFailed,
    ContractPreviewFailed,
    DialogDismissed,
    InvalidTransition,
    NetworkUnavailable,
    NoSelection,
    RemoteRejected,
)
from ...gateway import BackendGateway, Credential
from .pdf_service import ContractPDFService
from .preview_store import PreviewLease, PreviewStore
from .schemas import (
    ContractCreated,
    ContractPreview,
    ContractScope,
    ContractSigned,
    PipelineStage,
    PipelineState,
)

logger = logging.getLogger(__name__)


def extract_contract_id(data: Any) -> Optional[str]:
    """Backend answers with contractId, id, or either nested under data"""
    if not isinstance(data, dict):
        return None
    nested = data.get("data") if isinstance(data.get("data"), dict) else {}
    contract_id = (
        data.get("contractId") or data.get("id") or nested.get("id") or nested.get("contractId")
    )
    return str(contract_id) if contract_id else None


class ContractPipeline:
    """Pipeline state of one contract dialog"""

    def __init__(
        self,
        gateway: BackendGateway,
        previews: PreviewStore,
        on_signed: Optional[Callable[[Optional[Credential]], Awaitable[Any]]] = None,
        booking_path: str = CONTRACT_CREATE_BOOKING_PATH,
        verification_path: str = CONTRACT_CREATE_VERIFICATION_PATH,
    ):
        self.gateway = gateway
        self.previews = previews
        self.on_signed = on_signed
        self.create_paths = {
            ContractScope.BOOKING: booking_path,
            ContractScope.VERIFICATION: verification_path,
        }
        self.stage = PipelineStage.IDLE
        self.contract_id: Optional[str] = None
        self.lease: Optional[PreviewLease] = None
        # Bumped on reset; responses from an older generation are discarded
        self._generation = 0
        self._preview_requests = 0

    @property
    def state(self) -> PipelineState:
        return PipelineState(
            stage=self.stage,
            contractId=self.contract_id,
            filename=self.lease.filename if self.lease else None,
            previewUrl=self.lease.url if self.lease else None,
        )

    def release_preview(self) -> None:
        if self.lease is not None:
            self.lease.release()
            self.lease = None

    def reset(self) -> None:
        """Drop the contract reference and release the preview"""
        self._generation += 1
        self.release_preview()
        self.contract_id = None
        self.stage = PipelineStage.IDLE

    def _check_generation(self, generation: int) -> None:
        if generation != self._generation:
            raise DialogDismissed()

    async def create(
        self,
        owner_id: str,
        credential: Optional[Credential],
        scope: ContractScope = ContractScope.BOOKING,
    ) -> ContractCreated:
        """
        Step 1. Replaces any previous contract of this dialog.

        Raises:
            ContractCreateFailed: backend error or no contract id in the answer
        """
        self.reset()
        generation = self._generation
        scope = ContractScope(scope)
        path = self.create_paths[scope].format(id=owner_id)

        logger.info(f"📝 Creating {scope.value} contract for {owner_id}")
        try:
            response = await self.gateway.request(
                "POST", path, credential, error_fallback="Tạo hợp đồng thất bại"
            )
        except (RemoteRejected, NetworkUnavailable) as e:
            logger.error(f"❌ Contract creation failed for {owner_id}: {e.message}")
            raise ContractCreateFailed(e.message) from e

        try:
            contract_id = extract_contract_id(response.json())
        except ValueError:
            contract_id = None
        self._check_generation(generation)
        if not contract_id:
            logger.error(f"❌ Contract creation for {owner_id} returned no contract id")
            raise ContractCreateFailed("Không xác định được mã hợp đồng")

        self.contract_id = contract_id
        self.stage = PipelineStage.CREATED
        logger.info(f"✅ Contract {contract_id} created for {owner_id}")
        return ContractCreated(contractId=contract_id, ownerId=owner_id, scope=scope)

    async def preview(self, credential: Optional[Credential]) -> ContractPreview:
        """
        Step 2. Fetch the PDF and lease it as a preview resource.

        The current preview stays live until the new PDF has arrived. When
        previews overlap, only the most recently requested one is kept.

        Raises:
            InvalidTransition: no contract created yet
            ContractPreviewFailed: backend error
        """
        if self.contract_id is None:
            raise InvalidTransition("Chưa có hợp đồng để xem trước")

        contract_id = self.contract_id
        generation = self._generation
        self._preview_requests += 1
        request_no = self._preview_requests

        try:
            response = await self.gateway.get_binary(
                f"/Contracts/{contract_id}/preview",
                credential,
                error_fallback="Không thể lấy preview hợp đồng",
            )
        except (RemoteRejected, NetworkUnavailable) as e:
            logger.error(f"❌ Preview of contract {contract_id} failed: {e.message}")
            if generation != self._generation or request_no != self._preview_requests:
                raise DialogDismissed() from e
            raise ContractPreviewFailed(e.message) from e

        filename = ContractPDFService.filename_from_disposition(
            response.headers.get("content-disposition"), contract_id
        )
        lease = self.previews.allocate(response.content, filename)
        # Only the latest preview request of the current run may install its lease
        if generation != self._generation or request_no != self._preview_requests:
            lease.release()
            raise DialogDismissed()

        self.release_preview()
        self.lease = lease
        self.stage = PipelineStage.PREVIEWED
        logger.info(f"📄 Contract {contract_id} preview ready: {filename} ({lease.size} bytes)")
        return ContractPreview(
            contractId=contract_id,
            filename=filename,
            previewUrl=lease.url,
            token=lease.token,
            size=lease.size,
        )

    async def view_existing(
        self, contract_id: str, credential: Optional[Credential]
    ) -> ContractPreview:
        """Preview a contract the booking already has, skipping creation"""
        self.reset()
        self.contract_id = contract_id
        self.stage = PipelineStage.CREATED
        return await self.preview(credential)

    async def sign(self, signature: Optional[str], credential: Optional[Credential]) -> ContractSigned:
        """
        Step 3. Submit the signature for the previewed contract.

        On failure the preview stays leased so signing can be retried.

        Raises:
            InvalidTransition: no previewed contract
            EmptySignature: blank canvas; nothing is sent
            RemoteRejected / NetworkUnavailable / Unauthenticated
        """
        if self.contract_id is None or self.stage != PipelineStage.PREVIEWED:
            raise InvalidTransition("Vui lòng xem trước hợp đồng trước khi ký")

        payload = ContractPDFService.signature_payload(signature)
        contract_id = self.contract_id
        generation = self._generation

        await self.gateway.request(
            "POST",
            f"/Contracts/{contract_id}/sign",
            credential,
            json={"signatureBase64": payload},
            error_fallback="Ký hợp đồng thất bại",
        )
        logger.info(f"✅ Contract {contract_id} signed")
        self._check_generation(generation)

        self.release_preview()
        self.stage = PipelineStage.SIGNED
        if self.on_signed is not None:
            await self.on_signed(credential)
        return ContractSigned(contractId=contract_id)

    def download(self) -> tuple[bytes, str]:
        """Hand out the leased PDF and end the preview cycle"""
        if self.lease is None:
            raise NoSelection("Không có hợp đồng để tải xuống")
        content = self.lease.read()
        filename = self.lease.filename
        self.release_preview()
        self.stage = PipelineStage.CREATED
        return content, filename
