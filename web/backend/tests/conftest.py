"""
Test configuration and fixtures for backend tests.

Each test gets its own SQLite file seeded with the standard listing fixture
set, a fully wired context with fake outbound capabilities and an httpx
client bound to the ASGI app.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from services.context import AppContext
from services.db.database import Database
from tests.factories import (
    FakeApplicationLookup,
    FakeImageProbe,
    FakeNotifier,
    seed_listing,
)
from web.backend.app import create_app


@pytest_asyncio.fixture
async def temp_db(tmp_path):
    """Create a temporary seeded database for testing."""
    database = Database(str(tmp_path / "api.db"))
    await database.initialize()
    await seed_listing(database)
    yield database


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def app_lookup() -> FakeApplicationLookup:
    return FakeApplicationLookup()


@pytest_asyncio.fixture
async def context(temp_db, notifier, app_lookup):
    context = AppContext(
        temp_db,
        image_probe=FakeImageProbe(),
        app_lookup=app_lookup,
        notifier=notifier,
    )
    await context.startup()
    yield context
    await context.shutdown()


@pytest_asyncio.fixture
async def client(context):
    """Create test client; the lifespan is not run, the context is started above."""
    app = create_app(context)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
