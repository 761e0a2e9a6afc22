"""
Pytest configuration and fixtures for homegame tests.

This module provides shared fixtures for testing the async FastAPI
endpoints and sample data for the pure service functions.
"""

import pytest
import pytest_asyncio


@pytest.fixture
def anyio_backend():
    """Specify anyio backend for async tests."""
    return "asyncio"


@pytest_asyncio.fixture
async def client():
    """Async HTTP client for testing FastAPI endpoints.

    Yields:
        AsyncClient: HTTPX async client with the FastAPI app.
    """
    from httpx import ASGITransport, AsyncClient
    from homegame.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def generous_inventory() -> list[int]:
    """Enough chips of every color that the inventory never constrains."""
    return [400, 400, 400, 400, 400]


@pytest.fixture
def empty_inventory() -> list[int]:
    return [0, 0, 0, 0, 0]
