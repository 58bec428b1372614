"""
Pytest configuration and shared fixtures for the trip service test suite.

This module provides:
- Database fixtures (in-memory SQLite with working BEGIN/SAVEPOINT semantics)
- An httpx client mounted directly on the FastAPI app
- Sample CSV-shaped trip rows
- A reusable AsyncSession test double for unit tests
"""

from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from main import app
from core.db import get_db, Base
import models  # noqa: F401


# Test Database Configuration
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def async_engine():
    """Create async engine for testing with in-memory SQLite."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    # Let SQLAlchemy own BEGIN so SAVEPOINTs nest inside a real transaction
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    yield engine
    
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    
    await engine.dispose()


@pytest.fixture
async def async_db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for testing."""
    async_session = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)
    
    async with async_session() as session:
        yield session


@pytest.fixture
async def async_client(async_db_session) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client with database dependency override."""
    
    async def override_get_db():
        yield async_db_session
    
    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# Test Data Factories
@pytest.fixture
def sample_row() -> dict:
    """One CSV-shaped trip row as the importer would POST it."""
    return {
        "trip_date": "10/02/2025",
        "manufacturer": "BMW Group",
        "model": "iX3",
        "body_type": "Crossover",
        "segment": "Mid-size",
        "battery_kwh": 80,
        "range_km": 463,
        "charging_type": "DC",
        "price_eur": 70157,
        "origin_city": "New York",
        "origin_country": "United States",
        "destination_city": "Casablanca",
        "destination_country": "Morocco",
        "distance_km": 5813,
        "co2_g_per_km": 58,
        "grid_intensity_gco2_per_kwh": 350,
    }


@pytest.fixture
def second_row() -> dict:
    """A row sharing nothing with `sample_row`."""
    return {
        "trip_date": "2025-10-13",
        "manufacturer": "Tata Motors",
        "model": "Nexon EV",
        "body_type": "Compact SUV",
        "segment": "Luxury",
        "battery_kwh": 40,
        "range_km": 224,
        "charging_type": "AC",
        "price_eur": 111873,
        "origin_city": "Singapore",
        "origin_country": "Singapore",
        "destination_city": "London",
        "destination_country": "United Kingdom",
        "distance_km": 10852,
        "co2_g_per_km": 55,
        "grid_intensity_gco2_per_kwh": 250,
    }


# Common Test Doubles
@pytest.fixture
def mock_async_session():
    """Provide a reusable AsyncSession-like test double.

    - `in_transaction()` reports no active transaction
    - `begin()` / `begin_nested()` return async context managers that never swallow errors
    - `add` is a `MagicMock` (synchronous)
    - `flush`, `commit`, `rollback`, `execute` are `AsyncMock`
    Tests can override `execute.side_effect` / `flush.side_effect` as needed.
    """
    session = AsyncMock()

    class DummyAsyncCtx:
        def __init__(self, sess):
            self.sess = sess
        async def __aenter__(self):
            return self.sess
        async def __aexit__(self, exc_type, exc, tb):
            if exc_type is None:
                await self.sess.commit()
            else:
                await self.sess.rollback()
            return False

    session.in_transaction = MagicMock(return_value=False)
    session.begin = MagicMock(side_effect=lambda: DummyAsyncCtx(session))
    session.begin_nested = MagicMock(side_effect=lambda: DummyAsyncCtx(session))

    # `add` is synchronous on SQLAlchemy session
    session.add = MagicMock()

    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.execute = AsyncMock()

    return session


@pytest.fixture
def scalar_result():
    """Factory for SQLAlchemy Result doubles whose scalar accessors return `value`."""
    def make(value):
        result = MagicMock()
        result.scalar_one_or_none.return_value = value
        result.scalar_one.return_value = value
        result.scalar.return_value = value
        return result
    return make
