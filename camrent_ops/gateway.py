"""
Authenticated gateway to the CamRent backend REST API.

Every backend call made by the console goes through BackendGateway: base URL,
bearer credential and the backend's error shape ({message} / {title}) are
handled here once instead of per handler.
"""

import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel

from .config import CAMRENT_API_BASE_URL, CAMRENT_HTTP_TIMEOUT
from .errors import NetworkUnavailable, RemoteRejected, Unauthenticated

logger = logging.getLogger(__name__)


class Credential(BaseModel):
    """Bearer credential of the manager issuing the request"""

    token: str

    @classmethod
    def from_token(cls, token: Optional[str]) -> Optional["Credential"]:
        if not token or not token.strip():
            return None
        return cls(token=token.strip())


def require_credential(credential: Optional[Credential]) -> Credential:
    """Pre-flight check: a missing credential never reaches the network"""
    if credential is None or not credential.token:
        raise Unauthenticated()
    return credential


def extract_error_message(response: httpx.Response, fallback: str) -> str:
    """Pull the backend's message or title field out of an error response"""
    try:
        data = response.json()
    except ValueError:
        return fallback

    if isinstance(data, dict):
        return data.get("message") or data.get("title") or fallback
    return fallback


class BackendGateway:
    """Single httpx client shared by every workflow of the console"""

    def __init__(
        self,
        base_url: str = CAMRENT_API_BASE_URL,
        timeout: float = CAMRENT_HTTP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout, transport=transport
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        credential: Optional[Credential],
        *,
        params: Optional[dict[str, Any]] = None,
        json: Optional[Any] = None,
        accept: str = "application/json",
        error_fallback: str = "Yêu cầu thất bại",
    ) -> httpx.Response:
        """
        Send one authenticated request and return the 2xx response.

        Raises:
            Unauthenticated: no credential; nothing is sent
            NetworkUnavailable: transport-level failure
            RemoteRejected: backend answered with a non-2xx status
        """
        credential = require_credential(credential)
        headers = {
            "Authorization": f"Bearer {credential.token}",
            "Accept": accept,
        }
        if json is not None or method.upper() in ("POST", "PUT"):
            headers["Content-Type"] = "application/json"

        try:
            response = await self._client.request(
                method, path, params=params, json=json, headers=headers
            )
        except httpx.TransportError as e:
            logger.error(f"❌ {method} {path} - transport error: {e}")
            raise NetworkUnavailable() from e

        if response.is_success:
            logger.debug(f"✅ {method} {path} -> {response.status_code}")
            return response

        message = extract_error_message(response, error_fallback)
        logger.warning(f"⚠️ {method} {path} -> {response.status_code}: {message}")
        raise RemoteRejected(message, remote_status=response.status_code)

    async def get_json(self, path: str, credential: Optional[Credential], **kwargs) -> Any:
        response = await self.request("GET", path, credential, **kwargs)
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"❌ GET {path} -> {response.status_code}: body is not JSON")
            raise RemoteRejected(
                "Phản hồi từ máy chủ không hợp lệ", remote_status=response.status_code
            ) from e

    async def get_binary(
        self, path: str, credential: Optional[Credential], **kwargs
    ) -> httpx.Response:
        return await self.request("GET", path, credential, accept="*/*", **kwargs)
