"""
Test fixtures for RechargePanel.

Provides:
- A fresh SQLite file database per test (each ledger read opens its own
  connection, so :memory: would give every read an empty database)
- A SQL ledger adapter with its own circuit breaker
- Seeding helpers that take local (Asia/Shanghai) times and store naive UTC
- An authenticated API client wired to the test database
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import AsyncGenerator, Optional
from zoneinfo import ZoneInfo

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from rechargepanel.config import settings
from rechargepanel.db.engine import Base
from rechargepanel.db.models import (  # noqa: F401
    Agent,
    BusinessType,
    FinancialTransaction,
    RechargeOrder,
    RechargeProduct,
    UserAccount,
)
from rechargepanel.services.ledger import SqlLedgerAdapter
from rechargepanel.services.resilience import CircuitBreaker

SHANGHAI = ZoneInfo("Asia/Shanghai")

# Wednesday afternoon in Shanghai
NOW = datetime(2026, 10, 14, 15, 0, tzinfo=SHANGHAI)

ADMIN_KEY = "test-admin-key"


def local(*args) -> datetime:
    return datetime(*args, tzinfo=SHANGHAI)


def to_utc(ts: Optional[datetime]) -> Optional[datetime]:
    if ts is None:
        return None
    return ts.astimezone(timezone.utc).replace(tzinfo=None)


# ── Database ─────────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def ledger(session_factory) -> SqlLedgerAdapter:
    return SqlLedgerAdapter(
        session_factory,
        timeout_seconds=5,
        breaker=CircuitBreaker("test-ledger", failure_threshold=100),
    )


# ── Seeding ──────────────────────────────────────────────────────────────


class Seeder:
    """Writes ledger rows; times are given in local time."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def add(self, *objs):
        async with self.session_factory() as session:
            session.add_all(objs)
            await session.commit()
        return objs[0] if len(objs) == 1 else objs

    async def user(self, username: str, created: datetime, last_login: Optional[datetime] = None,
                   balance: str = "0") -> UserAccount:
        return await self.add(
            UserAccount(
                id=uuid.uuid4(),
                username=username,
                balance=Decimal(balance),
                created_at=to_utc(created),
                last_login=to_utc(last_login),
            )
        )

    async def agent(self, agent_id: str) -> Agent:
        return await self.add(Agent(agent_id=agent_id, name=f"Agent {agent_id}"))

    async def product(self, product_id: str, face_value: str) -> RechargeProduct:
        return await self.add(
            RechargeProduct(
                product_id=product_id,
                carrier="mobile",
                face_value=Decimal(face_value),
                sell_price=Decimal(face_value),
            )
        )

    async def order(
        self,
        order_id: str,
        created: datetime,
        status: str = "pending",
        amount: Optional[str] = "100",
        completed: Optional[datetime] = None,
        product_id: Optional[str] = None,
        phone: str = "13800138000",
        method: str = "wallet",
        processed_by: Optional[str] = None,
        user_id: Optional[uuid.UUID] = None,
    ) -> RechargeOrder:
        return await self.add(
            RechargeOrder(
                order_id=order_id,
                user_id=user_id,
                product_id=product_id,
                phone_number=phone,
                amount=Decimal(amount) if amount is not None else None,
                payment_method=method,
                order_status=status,
                create_time=to_utc(created),
                complete_time=to_utc(completed),
                processed_by=processed_by,
            )
        )

    async def transaction(
        self, kind: str, amount: str, created: datetime, related_order: Optional[str] = None
    ) -> FinancialTransaction:
        return await self.add(
            FinancialTransaction(
                transaction_id=uuid.uuid4(),
                amount=Decimal(amount),
                transaction_type=kind,
                related_order=related_order,
                create_time=to_utc(created),
            )
        )


@pytest.fixture
def seed(session_factory) -> Seeder:
    return Seeder(session_factory)


# ── API ──────────────────────────────────────────────────────────────────


@pytest.fixture
def admin_headers() -> dict:
    return {"X-Admin-Key": ADMIN_KEY}


@pytest_asyncio.fixture
async def client(session_factory, ledger, monkeypatch) -> AsyncGenerator[AsyncClient, None]:
    """API client on the test database. Lifespan is not run."""
    from rechargepanel.api.deps import get_db
    from rechargepanel.main import create_app
    from rechargepanel.services.registry import ServiceRegistry, reset_services, set_services

    monkeypatch.setattr(settings, "admin_api_key", SecretStr(ADMIN_KEY))
    set_services(ServiceRegistry(ledger=ledger))

    async def override_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app = create_app()
    app.dependency_overrides[get_db] = override_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    reset_services()
