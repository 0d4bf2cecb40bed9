"""
Ledger Query Adapter — read-only access to the order ledger.

Every public method is one logical metric and one store read. Each read is
bounded by a timeout and goes through the adapter's circuit breaker; any
store, transport or timeout failure surfaces as LedgerUnavailableError.

read_snapshot_inputs() issues the reads for one snapshot concurrently and is
all-or-nothing: the first failure cancels the remaining reads.

Implementations:
- SqlLedgerAdapter: async SQLAlchemy, one session per read
- RestLedgerAdapter (rest_ledger.py): hosted PostgREST-style backend over httpx
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Any, Awaitable, Callable, Optional, TypeVar

import structlog
from sqlalchemy import Select, and_, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rechargepanel.config import settings
from rechargepanel.db.models import (
    Agent,
    FinancialTransaction,
    RechargeOrder,
    RechargeProduct,
    UserAccount,
)
from rechargepanel.engine.records import (
    LedgerReads,
    OrderRow,
    OrderStatus,
    OrderTimeField,
    TransactionRow,
)
from rechargepanel.engine.time_window import TimeWindow
from rechargepanel.errors import LedgerUnavailableError
from rechargepanel.services.resilience import CircuitBreaker, ledger_breaker

logger = structlog.get_logger(__name__)

T = TypeVar("T")

USER_CREATED = "created_at"
USER_LAST_LOGIN = "last_login"


def product_label(face_value: Any) -> Optional[str]:
    """Display name for a product, derived from its face value."""
    if face_value is None:
        return None
    value = Decimal(str(face_value))
    if value == value.to_integral_value():
        value = value.quantize(Decimal(1))
    return f"¥{value} top-up"


async def gather_all(*aws: Awaitable[Any]) -> list[Any]:
    """Await all reads together; on the first failure cancel the rest and re-raise."""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class LedgerQueryAdapter(ABC):
    """Boundary between the statistics core and the order store."""

    # Store-specific exceptions that mean "the ledger is unavailable"
    transient_errors: tuple[type[BaseException], ...] = ()

    def __init__(
        self,
        timeout_seconds: Optional[float] = None,
        breaker: Optional[CircuitBreaker] = None,
    ):
        self.timeout_seconds = (
            settings.ledger_timeout_seconds if timeout_seconds is None else timeout_seconds
        )
        self.breaker = breaker or ledger_breaker()

    # ── Primitive reads (implemented per store) ──────────────────────────

    @abstractmethod
    async def _count_users(self) -> int: ...

    @abstractmethod
    async def _count_users_between(self, field: str, start: datetime, end: datetime) -> int: ...

    @abstractmethod
    async def _count_agents(self) -> int: ...

    @abstractmethod
    async def _fetch_orders(
        self,
        start: datetime,
        end: datetime,
        processor_id: Optional[str],
        time_field: OrderTimeField,
        status: Optional[OrderStatus],
    ) -> list[OrderRow]: ...

    @abstractmethod
    async def _fetch_transactions(
        self, start: datetime, end: datetime, processor_id: Optional[str]
    ) -> list[TransactionRow]: ...

    @abstractmethod
    async def _count_orders(self, status: Optional[OrderStatus]) -> int: ...

    @abstractmethod
    async def _sum_order_amount(self) -> float: ...

    async def close(self) -> None:
        """Release transport resources (no-op unless the adapter owns any)."""

    # ── Guarded reads ────────────────────────────────────────────────────

    async def _read(self, operation: str, fn: Callable[[], Awaitable[T]]) -> T:
        async def guarded() -> T:
            try:
                return await asyncio.wait_for(fn(), timeout=self.timeout_seconds)
            except asyncio.TimeoutError as exc:
                raise LedgerUnavailableError(
                    f"{operation} timed out after {self.timeout_seconds}s",
                    operation=operation,
                ) from exc
            except self.transient_errors as exc:
                raise LedgerUnavailableError(
                    f"{operation} failed: {exc}", operation=operation
                ) from exc

        try:
            return await self.breaker.call(guarded, operation=operation)
        except LedgerUnavailableError as exc:
            logger.warning("ledger_read_failed", operation=operation, error=str(exc))
            raise

    async def count_users(self) -> int:
        return await self._read("count_users", self._count_users)

    async def count_new_users(self, window: TimeWindow) -> int:
        start, end = window.utc_bounds()
        return await self._read(
            "count_new_users", lambda: self._count_users_between(USER_CREATED, start, end)
        )

    async def count_active_users(self, window: TimeWindow) -> int:
        start, end = window.utc_bounds()
        return await self._read(
            "count_active_users", lambda: self._count_users_between(USER_LAST_LOGIN, start, end)
        )

    async def count_agents(self) -> int:
        return await self._read("count_agents", self._count_agents)

    async def fetch_orders(
        self,
        window: TimeWindow,
        processor_id: Optional[str] = None,
        time_field: OrderTimeField = OrderTimeField.CREATED,
        status: Optional[OrderStatus] = None,
    ) -> list[OrderRow]:
        start, end = window.utc_bounds()
        return await self._read(
            "fetch_orders",
            lambda: self._fetch_orders(start, end, processor_id, time_field, status),
        )

    async def fetch_transactions(
        self, window: TimeWindow, processor_id: Optional[str] = None
    ) -> list[TransactionRow]:
        start, end = window.utc_bounds()
        return await self._read(
            "fetch_transactions", lambda: self._fetch_transactions(start, end, processor_id)
        )

    async def count_orders(self, status: Optional[OrderStatus] = None) -> int:
        return await self._read("count_orders", lambda: self._count_orders(status))

    async def sum_order_amount(self) -> float:
        return await self._read("sum_order_amount", self._sum_order_amount)

    # ── Composite ────────────────────────────────────────────────────────

    async def read_snapshot_inputs(
        self, window: TimeWindow, processor_id: Optional[str] = None
    ) -> LedgerReads:
        """All reads one snapshot needs, issued together and joined."""
        total_users, new_users, active_users, total_agents, orders, transactions = (
            await gather_all(
                self.count_users(),
                self.count_new_users(window),
                self.count_active_users(window),
                self.count_agents(),
                self.fetch_orders(window, processor_id=processor_id),
                self.fetch_transactions(window, processor_id=processor_id),
            )
        )
        logger.debug(
            "ledger_snapshot_read",
            orders=len(orders),
            transactions=len(transactions),
            processor_id=processor_id,
        )
        return LedgerReads(
            total_users=total_users,
            new_users=new_users,
            active_users=active_users,
            total_agents=total_agents,
            orders=tuple(orders),
            transactions=tuple(transactions),
        )


class SqlLedgerAdapter(LedgerQueryAdapter):
    """Ledger reads over async SQLAlchemy. Each read uses its own session."""

    transient_errors = (SQLAlchemyError, OSError)

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        timeout_seconds: Optional[float] = None,
        breaker: Optional[CircuitBreaker] = None,
    ):
        super().__init__(timeout_seconds=timeout_seconds, breaker=breaker)
        self._session_factory = session_factory

    async def _scalar(self, stmt: Select) -> Any:
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return result.scalar_one()

    async def _rows(self, stmt: Select) -> list[Any]:
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.all())

    async def _count_users(self) -> int:
        return await self._scalar(select(func.count()).select_from(UserAccount)) or 0

    async def _count_users_between(self, field: str, start: datetime, end: datetime) -> int:
        col = getattr(UserAccount, field)
        stmt = select(func.count()).select_from(UserAccount).where(and_(col >= start, col < end))
        return await self._scalar(stmt) or 0

    async def _count_agents(self) -> int:
        return await self._scalar(select(func.count()).select_from(Agent)) or 0

    async def _fetch_orders(self, start, end, processor_id, time_field, status) -> list[OrderRow]:
        col = getattr(RechargeOrder, time_field.value)
        stmt = (
            select(
                RechargeOrder.order_id,
                RechargeOrder.user_id,
                RechargeOrder.product_id,
                RechargeProduct.face_value,
                RechargeOrder.phone_number,
                RechargeOrder.amount,
                RechargeOrder.payment_method,
                RechargeOrder.order_status,
                RechargeOrder.create_time,
                RechargeOrder.complete_time,
                RechargeOrder.processed_by,
            )
            .outerjoin(RechargeProduct, RechargeOrder.product_id == RechargeProduct.product_id)
            .where(and_(col >= start, col < end))
            .order_by(col, RechargeOrder.order_id)
        )
        if processor_id is not None:
            stmt = stmt.where(RechargeOrder.processed_by == processor_id)
        if status is not None:
            stmt = stmt.where(RechargeOrder.order_status == status.value)

        return [
            OrderRow(
                order_id=r.order_id,
                status=r.order_status,
                amount=r.amount,
                create_time=r.create_time,
                complete_time=r.complete_time,
                user_id=str(r.user_id) if r.user_id else None,
                product_id=r.product_id,
                product_name=product_label(r.face_value),
                phone_number=r.phone_number,
                payment_method=r.payment_method,
                processed_by=r.processed_by,
            )
            for r in await self._rows(stmt)
        ]

    async def _fetch_transactions(self, start, end, processor_id) -> list[TransactionRow]:
        stmt = (
            select(
                FinancialTransaction.transaction_id,
                FinancialTransaction.transaction_type,
                FinancialTransaction.amount,
                FinancialTransaction.create_time,
                FinancialTransaction.related_order,
            )
            .where(
                and_(
                    FinancialTransaction.create_time >= start,
                    FinancialTransaction.create_time < end,
                )
            )
            .order_by(FinancialTransaction.create_time, FinancialTransaction.transaction_id)
        )
        if processor_id is not None:
            agent_orders = select(RechargeOrder.order_id).where(
                RechargeOrder.processed_by == processor_id
            )
            stmt = stmt.where(FinancialTransaction.related_order.in_(agent_orders))

        return [
            TransactionRow(
                transaction_id=str(r.transaction_id),
                transaction_type=r.transaction_type,
                amount=r.amount,
                create_time=r.create_time,
                related_order=r.related_order,
            )
            for r in await self._rows(stmt)
        ]

    async def _count_orders(self, status) -> int:
        stmt = select(func.count()).select_from(RechargeOrder)
        if status is not None:
            stmt = stmt.where(RechargeOrder.order_status == status.value)
        return await self._scalar(stmt) or 0

    async def _sum_order_amount(self) -> float:
        total = await self._scalar(select(func.coalesce(func.sum(RechargeOrder.amount), 0)))
        return float(total or 0)
