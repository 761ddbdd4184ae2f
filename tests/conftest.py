"""
Shared fixtures for the status monitor test-suite.

Store-backed tests run against an in-memory SQLite database through
aiosqlite, so the SQLAlchemy store is exercised for real.
"""

from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, List, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from status_monitor.database import Base
from status_monitor.models import Endpoint, PingLog
from status_monitor.services.prober import ProbeResult
from status_monitor.services.store import SqlAlchemyStore


class FakeClock:
    """A settable clock callable used in place of utcnow."""

    def __init__(self, now: Optional[datetime] = None) -> None:
        self.now = now or datetime(2024, 5, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class ScriptedProber:
    """Returns pre-scripted statuses per endpoint, one per call."""

    def __init__(self, script: dict) -> None:
        self._script = {key: list(values) for key, values in script.items()}
        self.calls: List[int] = []

    async def probe(self, endpoint: Endpoint) -> ProbeResult:
        self.calls.append(endpoint.id)
        status = self._script[endpoint.id].pop(0)
        return ProbeResult(
            endpoint_id=endpoint.id,
            status=status,
            response_time_ms=42,
            status_code=200 if status == "success" else None,
            error_message=None if status == "success" else f"probe {status}",
        )


@pytest_asyncio.fixture
async def session_factory() -> async_sessionmaker:
    """
    Creates a fresh in-memory database with all tables for each test.

    Returns:
        async_sessionmaker: A session factory bound to the test engine.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def store(session_factory: async_sessionmaker) -> SqlAlchemyStore:
    return SqlAlchemyStore(session_factory)


@pytest_asyncio.fixture
async def make_endpoint(session_factory: async_sessionmaker) -> Callable[..., Awaitable[Endpoint]]:
    """
    Factory fixture inserting Endpoint rows.

    Returns:
        Callable: ``await make_endpoint(name=..., ...)`` returns the stored Endpoint.
    """

    async def factory(**overrides: Any) -> Endpoint:
        values = {
            "name": "Billing API",
            "url": "https://billing.example.com/health",
            "expected_status_code": 200,
            "timeout_ms": 5000,
            "monitoring_interval": 60,
            "is_active": True,
        }
        values.update(overrides)
        async with session_factory() as session:
            endpoint = Endpoint(**values)
            session.add(endpoint)
            await session.commit()
            return endpoint

    return factory


@pytest_asyncio.fixture
async def add_pings(session_factory: async_sessionmaker) -> Callable[..., Awaitable[None]]:
    """
    Factory fixture bulk-inserting PingLog rows at given timestamps.
    """

    async def factory(endpoint_id: int, statuses: List[str], pinged_at: datetime, response_time_ms: int = 100) -> None:
        async with session_factory() as session:
            for status in statuses:
                session.add(PingLog(
                    endpoint_id=endpoint_id,
                    status=status,
                    status_code=200 if status == "success" else 503,
                    response_time_ms=response_time_ms,
                    pinged_at=pinged_at,
                ))
            await session.commit()

    return factory


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scripted_prober() -> Callable[[dict], ScriptedProber]:
    """Factory building a ScriptedProber from ``{endpoint_id: [status, ...]}``."""
    return ScriptedProber
