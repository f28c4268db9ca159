"""Shared test fixtures."""

import os

# Settings() requires JWT_SECRET; set it before anything imports config.settings
os.environ.setdefault("JWT_SECRET", "test-secret-not-for-production")

from collections.abc import AsyncIterator, Callable  # noqa: E402
from contextlib import asynccontextmanager  # noqa: E402
from typing import Any  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402


@pytest.fixture
async def client() -> AsyncIterator[AsyncClient]:
    """Async HTTP client for testing FastAPI endpoints (lifespan is not run)."""
    from src.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def session_factory() -> Callable[..., MagicMock]:
    """Build a stand-in for async_sessionmaker that yields the given sessions in order.

    Each call of the returned factory opens the next session; once the list is
    exhausted the last session is reused.
    """

    def make(*sessions: Any) -> MagicMock:
        queue = list(sessions) or [AsyncMock()]

        @asynccontextmanager
        async def _open() -> AsyncIterator[Any]:
            db = queue.pop(0) if len(queue) > 1 else queue[0]
            yield db

        return MagicMock(side_effect=lambda: _open())

    return make
