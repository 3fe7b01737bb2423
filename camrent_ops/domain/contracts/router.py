"""Contract preview router - serves leased contract PDFs while their dialog is open"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response

from ...config import PREVIEW_BASE_PATH
from .pdf_service import ContractPDFService
from .preview_store import PreviewStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix=PREVIEW_BASE_PATH, tags=["Contract Previews"])


def get_preview_store(request: Request) -> PreviewStore:
    """Dependency injection for the process-wide PreviewStore"""
    return request.app.state.previews


@router.get("/{token}")
async def get_preview(token: str, previews: PreviewStore = Depends(get_preview_store)):
    """Inline PDF of a live preview; 404 once the lease has been released"""
    resource = previews.get(token)
    if resource is None:
        raise HTTPException(status_code=404, detail="Preview not found or already released")

    return Response(
        content=resource.content,
        media_type=resource.media_type,
        headers={
            "Content-Disposition": ContractPDFService.content_disposition(
                resource.filename, disposition="inline"
            ),
            "Cache-Control": "no-store",
        },
    )
