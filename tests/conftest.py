import base64
import io
import json
from typing import Any, Callable, Optional, Union

import httpx
import pytest
from PIL import Image, ImageDraw

from camrent_ops.domain.contracts.preview_store import PreviewStore
from camrent_ops.gateway import BackendGateway, Credential

BASE_URL = "https://backend.test/api"

Route = Union[httpx.Response, Callable[[httpx.Request], Any]]


class FakeBackend:
    """In-memory CamRent backend behind an httpx.MockTransport"""

    def __init__(self):
        self.routes: dict[tuple[str, str], Route] = {}
        self.calls: list[httpx.Request] = []

    def on(self, method: str, path: str, route: Route) -> None:
        self.routes[(method, path)] = route

    def handler(self, request: httpx.Request):
        path = request.url.path.removeprefix("/api")
        self.calls.append(request)
        route = self.routes.get((request.method, path))
        if route is None:
            return httpx.Response(404, json={"message": f"No route for {request.method} {path}"})
        if isinstance(route, httpx.Response):
            # Fresh copy per call so a canned response can be served repeatedly
            return httpx.Response(route.status_code, headers=route.headers, content=route.content)
        return route(request)

    def calls_to(self, method: str, path: str) -> list[httpx.Request]:
        return [
            call
            for call in self.calls
            if call.method == method and call.url.path.removeprefix("/api") == path
        ]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def request_json(request: httpx.Request) -> Any:
    return json.loads(request.content)


def make_booking(
    booking_id: str,
    label: str = "Chờ xác nhận",
    created: Optional[str] = "2025-03-01T08:00:00Z",
    **overrides,
) -> dict:
    booking = {
        "id": booking_id,
        "renterId": f"renter-{booking_id}",
        "renter": {"id": f"renter-{booking_id}", "fullName": "Nguyễn Văn A"},
        "statusText": label,
        "snapshotRentalTotal": 1500000,
        "createdAt": created,
        "pickupAt": "2025-03-10T02:00:00Z",
        "location": {"province": "Hồ Chí Minh", "district": "Quận 1"},
        "items": [{"itemName": "Canon EOS R6", "itemType": "Camera"}],
        "contracts": [],
    }
    booking.update(overrides)
    return booking


def signature_data_uri(blank: bool = False) -> str:
    img = Image.new("RGBA", (60, 30), (0, 0, 0, 0))
    if not blank:
        ImageDraw.Draw(img).line((5, 5, 50, 25), fill=(0, 0, 0, 255), width=3)
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def gateway(backend: FakeBackend) -> BackendGateway:
    return BackendGateway(base_url=BASE_URL, transport=backend.transport)


@pytest.fixture
def credential() -> Credential:
    return Credential(token="manager-token")


@pytest.fixture
def previews() -> PreviewStore:
    return PreviewStore(base_path="/previews")
