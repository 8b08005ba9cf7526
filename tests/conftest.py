"""Shared test fixtures."""

import os

# Settings() requires a JWT secret at import time
os.environ.setdefault("JWT_SECRET", "test-secret-not-for-production")

from collections.abc import AsyncIterator  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from fakes import Marketplace  # noqa: E402
from src.main import app  # noqa: E402


@pytest.fixture
async def client() -> AsyncIterator[AsyncClient]:
    """Async HTTP client for testing FastAPI endpoints."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def market() -> Marketplace:
    """Every lifecycle service wired onto one in-memory store."""
    return Marketplace()


@pytest.fixture
def db(market: Marketplace):
    return market.session()
