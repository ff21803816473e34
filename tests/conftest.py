"""Root conftest — shared fixtures: fake API app and contexts bound to it.

Invariants:
    - Every test gets a fresh fake API (fresh call counters)
    - Contexts never reach the network: ASGITransport or MockTransport only
    - Environment defaults keep Settings() from picking up a real client id
"""

import os

import httpx
import pytest

from soundcloud_sdk.core.date_formats import DateFormatterCache
from soundcloud_sdk.infrastructure.api_context import APIContext
from tests.fake_api import BASE_URL, create_fake_api

os.environ.setdefault("SOUNDCLOUD_CLIENT_ID", "test-client-id")

CLIENT_ID = "test-client-id"


@pytest.fixture
def fake_api():
    return create_fake_api()


@pytest.fixture
async def api_client(fake_api):
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=fake_api), base_url=BASE_URL,
    ) as client:
        yield client


@pytest.fixture
async def context(api_client):
    """APIContext over the fake API, no session."""
    ctx = APIContext(
        CLIENT_ID, http_client=api_client, api_url=BASE_URL,
        date_formatters=DateFormatterCache(),
    )
    yield ctx
    await ctx.aclose()


@pytest.fixture
async def mock_context():
    """Factory: APIContext whose transport is an httpx.MockTransport handler."""
    clients = []

    def _make(handler, **kwargs) -> APIContext:
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(handler), base_url=BASE_URL,
        )
        clients.append(client)
        return APIContext(CLIENT_ID, http_client=client, api_url=BASE_URL, **kwargs)

    yield _make
    for client in clients:
        await client.aclose()
