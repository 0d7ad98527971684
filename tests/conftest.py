"""Pytest fixtures for wire reconciliation tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from wire_recon.api.app import create_app
from wire_recon.config import Settings
from wire_recon.database import create_schema, get_engine, make_session_factory
from wire_recon.ledger import LedgerSimulator
from wire_recon.models import PaymentStatus, WirePayment

# In-memory SQLite shared across sessions through a StaticPool
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TREASURY_USER = "treasury_user"

MakePayment = Callable[..., Awaitable[UUID]]


@pytest.fixture
def settings() -> Settings:
    """Settings with a fault-free, zero-latency ledger."""
    return Settings(
        database_url=TEST_DATABASE_URL,
        app_version="test",
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="DEBUG",
        gl_account="1100-ACCOUNTS-RECEIVABLE",
        ledger_failure_rate=0.0,
        ledger_min_latency=0.0,
        ledger_max_latency=0.0,
        ledger_throttle_delay=0.0,
        ledger_timeout=5.0,
        auto_clear_user="system_auto",
    )


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh database per test."""
    engine = get_engine(TEST_DATABASE_URL)
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(engine)


@pytest_asyncio.fixture
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def ledger() -> LedgerSimulator:
    """Ledger simulator that never fails."""
    return LedgerSimulator()


@pytest.fixture
def make_payment(session_factory: async_sessionmaker[AsyncSession]) -> MakePayment:
    """Insert a wire payment in its own transaction and return its id."""

    async def _make_payment(
        *,
        expected: str = "750.00",
        actual: str = "750.00",
        status: PaymentStatus = PaymentStatus.PENDING,
        ptp: bool = False,
        dba: str | None = "Acme Corp",
        notes: str | None = None,
        received_days_ago: int = 0,
    ) -> UUID:
        payment = WirePayment(
            dba=dba,
            expected_amount=Decimal(expected),
            actual_amount=Decimal(actual),
            actual_date_received=(
                datetime.now(timezone.utc) - timedelta(days=received_days_ago)
            ),
            ptp=ptp,
            status=status.value,
            notes_for_treasury=notes,
        )
        async with session_factory() as s:
            s.add(payment)
            await s.commit()
        return payment.id

    return _make_payment


@pytest.fixture
def app(
    settings: Settings,
    ledger: LedgerSimulator,
    session_factory: async_sessionmaker[AsyncSession],
) -> FastAPI:
    return create_app(settings=settings, ledger=ledger, session_factory=session_factory)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing, acting as a treasury user."""
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-User-ID": TREASURY_USER},
    ) as client:
        yield client
