"""Pytest configuration and fixtures for myradio tests."""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from myradio.core.cache import MemoryCacheStore
from myradio.core.database.engine import init_db
from myradio.features.controllers.registry import ControllerRegistry
from myradio.features.dispatch.dispatcher import RequestDispatcher
from myradio.features.permissions.models import Service
from myradio.features.users.principal import PrincipalStore

from helpers import SERVICE_ID


@pytest_asyncio.fixture
async def engine():
    """A fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(bind=engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(engine):
    """Session with the service row already present."""
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        session.add(Service(serviceid=SERVICE_ID, name="MyRadio", enabled=True))
        await session.flush()
        yield session


@pytest.fixture
def cache():
    return MemoryCacheStore()


@pytest.fixture
def principal_store(cache):
    return PrincipalStore(cache, ttl=3600)


@pytest.fixture
def registry():
    """Empty controller registry, isolated from the built-in controllers."""
    return ControllerRegistry()


@pytest.fixture
def dispatcher(registry, principal_store):
    return RequestDispatcher(
        registry,
        service_id=SERVICE_ID,
        default_module="Scheduler",
        default_action="default",
        principal_store=principal_store,
    )
