"""
Pytest bootstrap configuration.

Point the app at an in-memory SQLite database before anything imports
app.core.config, and provide a fresh Tortoise schema per test.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://:memory:")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from tortoise import Tortoise

from app.core.db import init_db
from app.main import app


@pytest_asyncio.fixture
async def db():
    """Fresh in-memory database with all payment tables created."""
    await init_db("sqlite://:memory:")
    yield
    await Tortoise._drop_databases()


@pytest_asyncio.fixture
async def client(db):
    """HTTP client bound to the app and the test database (lifespan not run)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def create_body():
    return {"amount": 2500, "currency": "gbp"}
