"""
Transient contract preview resources.

A fetched contract PDF is parked here under a random token and served from
PREVIEW_BASE_PATH/<token> while its preview dialog is open. The owner holds a
PreviewLease and must release it when the dialog closes, when the contract is
signed, or when a newer preview replaces it. Release is idempotent, so every
exit path can call it without double-revoking.
"""

import logging
import secrets
from typing import Optional

from ...config import PREVIEW_BASE_PATH

logger = logging.getLogger(__name__)


class PreviewResource:
    def __init__(self, token: str, content: bytes, filename: str, media_type: str):
        self.token = token
        self.content = content
        self.filename = filename
        self.media_type = media_type


class PreviewLease:
    """Handle on one live preview resource"""

    def __init__(self, store: "PreviewStore", resource: PreviewResource):
        self._store = store
        self.token = resource.token
        self.filename = resource.filename
        self.size = len(resource.content)
        self.released = False

    @property
    def url(self) -> str:
        return f"{self._store.base_path}/{self.token}"

    def read(self) -> bytes:
        resource = self._store.get(self.token)
        if resource is None:
            raise LookupError(f"Preview {self.token} has been released")
        return resource.content

    def release(self) -> bool:
        """Revoke the resource. Returns False if it was already released."""
        if self.released:
            return False
        self.released = True
        return self._store.revoke(self.token)

    def __enter__(self) -> "PreviewLease":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class PreviewStore:
    """Process-wide registry of live preview resources"""

    def __init__(self, base_path: str = PREVIEW_BASE_PATH):
        self.base_path = base_path
        self._resources: dict[str, PreviewResource] = {}
        self.allocated_count = 0
        self.revoked_count = 0

    def allocate(
        self, content: bytes, filename: str, media_type: str = "application/pdf"
    ) -> PreviewLease:
        token = secrets.token_urlsafe(24)
        resource = PreviewResource(token, content, filename, media_type)
        self._resources[token] = resource
        self.allocated_count += 1
        logger.debug(f"📄 Preview {token} allocated ({len(content)} bytes, {filename})")
        return PreviewLease(self, resource)

    def get(self, token: str) -> Optional[PreviewResource]:
        return self._resources.get(token)

    def revoke(self, token: str) -> bool:
        resource = self._resources.pop(token, None)
        if resource is None:
            return False
        self.revoked_count += 1
        logger.debug(f"🗑️ Preview {token} revoked")
        return True

    @property
    def live_count(self) -> int:
        return len(self._resources)
