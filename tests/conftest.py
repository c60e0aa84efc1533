"""Pytest configuration and fixtures for Fleet Console tests."""

import asyncio
import base64
import json
import math
from datetime import date
from typing import Any, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio

from fleet_console.config import get_endpoint_config
from fleet_console.retrieval.client import PagedFetcher

BASE_URL = "http://fleet.test/api/v1"


def make_records(count: int, start: int = 0) -> List[Dict[str, Any]]:
    """Minimal device data rows with unique ids."""
    return [
        {"id": f"rec-{i:04d}", "company_id": f"SC{i:04d}", "state": "on"}
        for i in range(start, start + count)
    ]


class _RawStream(httpx.AsyncByteStream):
    """Undecoded response body yielded lazily."""

    def __init__(self, data: bytes):
        self._data = data

    async def __aiter__(self):
        yield self._data


class StubBackend:
    """
    Paginated fleet backend served through httpx.MockTransport.

    Queued responses are served first, in order. After that, pages are cut
    from `records` using the request's page/limit parameters.
    """

    def __init__(
        self,
        records: Optional[List[Dict[str, Any]]] = None,
        total_pages: Optional[int] = None,
    ):
        self.records = records or []
        self.total_pages = total_pages
        self.queued: List[httpx.Response] = []
        self.requests: List[httpx.Request] = []

    def queue(self, status_code: int = 200, **kwargs: Any) -> None:
        content = kwargs.get("content")
        if isinstance(content, bytes):
            # Serve raw bytes as a stream so httpx decodes them on the client
            # side instead of eagerly inside the Response constructor.
            kwargs["stream"] = _RawStream(kwargs.pop("content"))
        self.queued.append(httpx.Response(status_code, **kwargs))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.queued:
            return self.queued.pop(0)

        page = int(request.url.params.get("page", "1"))
        limit = int(request.url.params.get("limit", "10"))
        docs = self.records[(page - 1) * limit : page * limit]
        total_pages = self.total_pages or max(1, math.ceil(len(self.records) / limit))
        return httpx.Response(
            200,
            json={
                "success": True,
                "results": {
                    "docs": docs,
                    "totalPages": total_pages,
                    "totalCount": len(self.records),
                },
            },
        )

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(self.handler))

    @property
    def params(self) -> List[Dict[str, str]]:
        """Query parameters of every request received."""
        return [dict(request.url.params) for request in self.requests]


def make_jwt(exp: float) -> str:
    """Unsigned JWT carrying only an exp claim."""

    def encode(data: Dict[str, Any]) -> str:
        raw = base64.urlsafe_b64encode(json.dumps(data).encode("utf-8"))
        return raw.rstrip(b"=").decode("ascii")

    return f"{encode({'alg': 'HS256', 'typ': 'JWT'})}.{encode({'exp': exp})}.signature"


@pytest.fixture
def backend():
    """Empty stub backend; tests fill records or queue responses."""
    return StubBackend()


@pytest_asyncio.fixture
async def client(backend):
    """HTTP client wired to the stub backend."""
    async with backend.client() as http_client:
        yield http_client


@pytest.fixture
def device_data_endpoint():
    return get_endpoint_config("device_data")


@pytest.fixture
def alerts_endpoint():
    return get_endpoint_config("alerts")


@pytest.fixture
def fetcher(device_data_endpoint, client):
    """Device data fetcher with instant retries."""
    return PagedFetcher(device_data_endpoint, client, max_attempts=3, backoff_seconds=0)


@pytest.fixture
def fixed_today():
    return date(2024, 3, 1)


@pytest.fixture
def jwt_factory():
    return make_jwt


@pytest.fixture
def record_factory():
    return make_records


@pytest.fixture
def sample_device_row():
    """A fully populated device data row as the backend returns it."""
    return {
        "id": "65f0c1",
        "company_id": "SC0042",
        "scale_model": "AT-200",
        "state": "on",
        "enclosure": "closed",
        "calib_switch": "off",
        "sd_card_available": True,
        "battery_voltage": 12.5,
        "gps_timestamp": "2024-03-05T14:07:09Z",
        "gsm_timestamp": "2004-01-01T00:00:00Z",
        "rtc_timestamp": None,
        "gps_location": {"type": "Point", "coordinates": [36.8, -1.3]},
        "gsm_location": {"type": "Point", "coordinates": []},
        "factory_name": 'Mumias "East" Mill',
        "factory_location": "Mumias, Kakamega",
        "region": "",
        "current_gps_timeout_ms": 30000,
        "current_sleep_time_min": 15,
        "peripherals_turned_off": False,
    }


class GatedSleep:
    """Inter-page delay that blocks until the test releases it."""

    def __init__(self):
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def __call__(self, seconds):
        self.entered.set()
        await self.release.wait()


class RecordingSurface:
    """Download surface that keeps saved files in memory."""

    def __init__(self):
        self.saved = []

    def save(self, data, mime_type, filename):
        self.saved.append((data, mime_type, filename))


@pytest.fixture
def gate():
    return GatedSleep()


@pytest.fixture
def recording_surface():
    return RecordingSurface()
