"""
Shared fixtures.

- `bundle`: a fresh in-memory adapter set (repos, stub gateways, fake clock)
  installed as the application's bundle for the duration of one test
- `client`: FastAPI TestClient over that bundle
- `db_session`: AsyncSession on an in-memory SQLite database with all tables
"""

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from reservation_engine.api.dependencies import _in_memory_bundle, build_use_cases
from reservation_engine.application.interfaces.clock import FakeClock
from reservation_engine.application.interfaces.id_generator import FakeIdGenerator
from reservation_engine.config import Settings, get_settings
from reservation_engine.infrastructure.circuit_breaker import payout_breaker, stripe_breaker
from reservation_engine.infrastructure.db.tables import metadata
from reservation_engine.main import app
from tests.helpers import NOW, WEBHOOK_SECRET


@pytest.fixture(autouse=True)
def reset_circuit_breakers():
    stripe_breaker.close()
    payout_breaker.close()
    yield
    stripe_breaker.close()
    payout_breaker.close()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        use_in_memory=True,
        stripe_webhook_secret=WEBHOOK_SECRET,
        payment_capture_timeout_seconds=0.5,
    )


@pytest.fixture
def bundle():
    _in_memory_bundle.cache_clear()
    bundle = _in_memory_bundle()
    bundle["clock"] = FakeClock(NOW)
    bundle["id_generator"] = FakeIdGenerator()

    directory = bundle["resource_directory"]
    directory.add_owner("owner-1", payout_destination_id="acct_owner1")
    directory.add_owner("owner-2")
    directory.add_resource("spot-1", price="15.00", owner_id="owner-1")
    directory.add_resource("spot-2", price="20.00", owner_id="owner-2")
    directory.add_resource("spot-free", price=None)

    yield bundle
    _in_memory_bundle.cache_clear()


@pytest.fixture
def use_cases(bundle, settings):
    return build_use_cases(bundle, settings)


@pytest.fixture
def client(bundle, settings):
    app.dependency_overrides[get_settings] = lambda: settings
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


