import os
import sys
from uuid import uuid4

import pytest
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient

from family_budget import db
from family_budget.config import Settings
from family_budget.data_access import DocumentCategoriesStore
from family_budget.main import app as fastapi_app
from family_budget.services import CategoriesService
from family_budget.tables import Base


@pytest.fixture(scope="session")
def anyio_backend():
    return ("asyncio", {"use_uvloop": sys.platform != "win32"})


@pytest.fixture
def database_url(tmp_path):
    return os.environ.get("DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
async def app(database_url):
    db.reset_engine()
    db.init_engine(database_url)
    async with db.get_engine().begin() as connection:
        await connection.run_sync(Base.metadata.drop_all)
        await connection.run_sync(Base.metadata.create_all)
    yield fastapi_app
    await db.dispose_engine()


@pytest.fixture
async def async_client(app):
    async with LifespanManager(app):
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as client:
            yield client


@pytest.fixture
def categories_store():
    return DocumentCategoriesStore()


@pytest.fixture
def categories_service(categories_store):
    return CategoriesService(categories_store, Settings(CATEGORY_MAX_DEPTH=10))


@pytest.fixture
def family_id():
    return uuid4()
