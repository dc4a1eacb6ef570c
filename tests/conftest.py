import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Ensure project root is on sys.path for CI environments where
# Python might not automatically include it.
PROJECT_ROOT = Path(__file__).parent.parent.resolve()
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from services.context import AppContext
from services.db.database import Database
from tests.factories import (
    FakeApplicationLookup,
    FakeImageProbe,
    FakeNotifier,
    seed_listing,
)


@pytest_asyncio.fixture()
async def database(tmp_path):
    """A freshly initialized database file, isolated per test."""
    db = Database(str(tmp_path / "test.db"))
    await db.initialize()
    assert db.initialized is True
    yield db


@pytest_asyncio.fixture()
async def seeded_db(database):
    await seed_listing(database)
    yield database


@pytest.fixture
def image_probe() -> FakeImageProbe:
    return FakeImageProbe()


@pytest.fixture
def app_lookup() -> FakeApplicationLookup:
    return FakeApplicationLookup()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest_asyncio.fixture()
async def app_context(seeded_db, image_probe, app_lookup, notifier):
    """Fully wired context over the seeded store with fake outbound capabilities."""
    context = AppContext(
        seeded_db,
        image_probe=image_probe,
        app_lookup=app_lookup,
        notifier=notifier,
    )
    await context.startup()
    yield context
    await context.shutdown()
