"""Shared fixtures: an app wired to a fake vendor API and a controllable clock."""

import json

import httpx
import pytest
import pytest_asyncio

from adix_chat.api.app import create_app
from adix_chat.api.rate_limiter import RateLimiter
from adix_chat.config import Settings
from adix_chat.services.providers import ProviderClient

ADMIN_TOKEN = "test-admin-token"


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeVendor:
    """Records outbound provider requests and answers with a canned response."""

    def __init__(self):
        self.requests = []
        self.status_code = 200
        self.payload = {"choices": [{"message": {"content": "Hello from the model"}}]}
        self.error = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if isinstance(self.payload, (dict, list)):
            return httpx.Response(self.status_code, json=self.payload)
        return httpx.Response(self.status_code, text=self.payload)

    def last_body(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def vendor():
    return FakeVendor()


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        github_token="gh-token",
        gemini_api_key="gemini-key",
        mistral_api_key="mistral-key",
        admin_token=ADMIN_TOKEN,
        default_rate_limit=100,
    )


@pytest.fixture
def rate_limiter(settings, clock):
    return RateLimiter(
        limit=settings.default_rate_limit,
        window_seconds=settings.rate_window_seconds,
        clock=clock,
    )


@pytest.fixture
def provider_client(vendor):
    return ProviderClient(timeout=5.0, transport=httpx.MockTransport(vendor.handler))


@pytest.fixture
def app(settings, rate_limiter, provider_client):
    return create_app(
        settings,
        rate_limiter=rate_limiter,
        provider_client=provider_client,
    )


@pytest_asyncio.fixture
async def client(app, rate_limiter, provider_client):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    await rate_limiter.stop()
    await provider_client.aclose()


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}
