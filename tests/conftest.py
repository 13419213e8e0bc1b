import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from fakes import FakeStore
from sqlconsole.main import app
from sqlconsole.core.console.scan_types import ScanType
from sqlconsole.core.database import get_store


@pytest.fixture()
def fake_store():
    store = FakeStore()
    store.prime("SELECT 1 AS x", columns=["x"], types=[ScanType.INT], rows=[(1,)])
    store.fail(
        "SELECT * FROM missing_table",
        RuntimeError('relation "missing_table" does not exist'),
    )
    return store


# Swap the real store for the fake one for every route
@pytest.fixture()
def override_store(fake_store):
    app.dependency_overrides[get_store] = lambda: fake_store
    yield fake_store
    app.dependency_overrides.clear()


# Client
@pytest_asyncio.fixture(scope="function")
async def client(override_store):
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac
