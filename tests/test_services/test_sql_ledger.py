"""
SQL Ledger Adapter Tests — against a real SQLite file database.
"""

import asyncio

import pytest
from sqlalchemy.exc import OperationalError

from rechargepanel.engine.records import OrderStatus, OrderTimeField
from rechargepanel.engine.time_window import resolve_window
from rechargepanel.errors import LedgerUnavailableError
from rechargepanel.services.ledger import SqlLedgerAdapter, gather_all, product_label
from rechargepanel.services.resilience import CircuitBreaker, CircuitState

from conftest import NOW, local


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.mark.asyncio
class TestSqlLedgerReads:

    async def test_user_counts_use_their_own_timestamps(self, ledger, seed):
        today = resolve_window("today", now=NOW)
        await seed.user("old", created=local(2026, 9, 1), last_login=local(2026, 10, 14, 9))
        await seed.user("new", created=local(2026, 10, 14, 8))
        await seed.user("idle", created=local(2026, 8, 1), last_login=local(2026, 10, 1))

        assert await ledger.count_users() == 3
        assert await ledger.count_new_users(today) == 1
        assert await ledger.count_active_users(today) == 1

    async def test_window_is_half_open_in_local_time(self, ledger, seed):
        today = resolve_window("today", now=NOW)
        await seed.order("at-start", created=local(2026, 10, 14, 0, 0))
        await seed.order("before", created=local(2026, 10, 13, 23, 59))
        await seed.order("at-end", created=local(2026, 10, 15, 0, 0))

        orders = await ledger.fetch_orders(today)
        assert [o.order_id for o in orders] == ["at-start"]

    async def test_orders_carry_product_label(self, ledger, seed):
        await seed.product("p100", "100")
        await seed.order("o1", created=local(2026, 10, 14, 9), product_id="p100", amount="98.5")

        [row] = await ledger.fetch_orders(resolve_window("today", now=NOW))
        assert row.product_name == "¥100 top-up"
        assert float(row.amount) == 98.5
        assert row.create_time.tzinfo is None

    async def test_completed_by_completion_time(self, ledger, seed):
        week = resolve_window("week", now=NOW)
        await seed.order(
            "done-this-week", created=local(2026, 10, 1), status="completed",
            completed=local(2026, 10, 13, 10),
        )
        await seed.order(
            "done-last-week", created=local(2026, 10, 5), status="completed",
            completed=local(2026, 10, 9, 10),
        )
        await seed.order("pending", created=local(2026, 10, 13), status="pending")

        done = await ledger.fetch_orders(
            week, time_field=OrderTimeField.COMPLETED, status=OrderStatus.COMPLETED
        )
        assert [o.order_id for o in done] == ["done-this-week"]

    async def test_agent_scope(self, ledger, seed):
        today = resolve_window("today", now=NOW)
        await seed.agent("ag1")
        await seed.agent("ag2")
        await seed.order("a1", created=local(2026, 10, 14, 9), processed_by="ag1")
        await seed.order("a2", created=local(2026, 10, 14, 10), processed_by="ag2")
        await seed.transaction("consumption", "100", local(2026, 10, 14, 9), related_order="a1")
        await seed.transaction("consumption", "100", local(2026, 10, 14, 10), related_order="a2")
        await seed.transaction("refund", "20", local(2026, 10, 14, 11))

        reads = await ledger.read_snapshot_inputs(today, processor_id="ag1")
        assert [o.order_id for o in reads.orders] == ["a1"]
        assert [t.related_order for t in reads.transactions] == ["a1"]
        # Roster counts stay global
        assert reads.total_agents == 2

    async def test_snapshot_inputs(self, ledger, seed):
        today = resolve_window("today", now=NOW)
        await seed.user("u1", created=local(2026, 10, 14, 8), last_login=local(2026, 10, 14, 9))
        await seed.order("o1", created=local(2026, 10, 14, 9), status="completed")
        await seed.transaction("consumption", "100", local(2026, 10, 14, 9), related_order="o1")

        reads = await ledger.read_snapshot_inputs(today)
        assert (reads.total_users, reads.new_users, reads.active_users) == (1, 1, 1)
        assert len(reads.orders) == 1
        assert reads.transactions[0].transaction_type == "consumption"

    async def test_totals(self, ledger, seed):
        await seed.order("o1", created=local(2026, 1, 1), status="completed", amount="10.25")
        await seed.order("o2", created=local(2026, 2, 1), status="failed", amount="5")
        await seed.order("o3", created=local(2026, 3, 1), status="pending", amount=None)

        assert await ledger.count_orders() == 3
        assert await ledger.count_orders(OrderStatus.FAILED) == 1
        assert await ledger.sum_order_amount() == 15.25

    async def test_empty_ledger(self, ledger):
        reads = await ledger.read_snapshot_inputs(resolve_window("month", now=NOW))
        assert reads.orders == ()
        assert reads.total_users == 0
        assert await ledger.sum_order_amount() == 0.0

    async def test_snapshot_read_closes_a_half_open_breaker(self, session_factory, seed):
        clock = FakeClock()
        breaker = CircuitBreaker("t", failure_threshold=1, recovery_timeout=30, clock=clock)
        adapter = SqlLedgerAdapter(session_factory, timeout_seconds=5, breaker=breaker)
        await seed.order("o1", created=local(2026, 10, 14, 9), status="completed")

        breaker._on_failure()
        assert breaker.state == CircuitState.OPEN
        clock.now += 30
        assert breaker.state == CircuitState.HALF_OPEN

        reads = await adapter.read_snapshot_inputs(resolve_window("today", now=NOW))
        assert len(reads.orders) == 1
        assert breaker.state == CircuitState.CLOSED


class BrokenSession:
    async def __aenter__(self):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    async def __aexit__(self, *exc):
        return False


class SlowSession:
    async def __aenter__(self):
        await asyncio.sleep(10)

    async def __aexit__(self, *exc):
        return False


@pytest.mark.asyncio
class TestSqlLedgerFailures:

    async def test_store_error_becomes_ledger_unavailable(self):
        adapter = SqlLedgerAdapter(BrokenSession, breaker=CircuitBreaker("t", failure_threshold=50))
        with pytest.raises(LedgerUnavailableError) as exc_info:
            await adapter.count_users()
        assert exc_info.value.operation == "count_users"

    async def test_timeout_becomes_ledger_unavailable(self):
        adapter = SqlLedgerAdapter(
            SlowSession, timeout_seconds=0.05, breaker=CircuitBreaker("t", failure_threshold=50)
        )
        with pytest.raises(LedgerUnavailableError, match="timed out"):
            await adapter.count_agents()

    async def test_snapshot_read_is_all_or_nothing(self):
        adapter = SqlLedgerAdapter(BrokenSession, breaker=CircuitBreaker("t", failure_threshold=50))
        with pytest.raises(LedgerUnavailableError):
            await adapter.read_snapshot_inputs(resolve_window("today", now=NOW))

    async def test_open_breaker_skips_the_store(self):
        breaker = CircuitBreaker("t", failure_threshold=2)
        adapter = SqlLedgerAdapter(BrokenSession, breaker=breaker)
        for _ in range(2):
            with pytest.raises(LedgerUnavailableError):
                await adapter.count_users()
        with pytest.raises(LedgerUnavailableError, match="open"):
            await adapter.count_users()

    async def test_failed_snapshot_read_reopens_a_half_open_breaker(self):
        clock = FakeClock()
        breaker = CircuitBreaker("t", failure_threshold=1, recovery_timeout=30, clock=clock)
        adapter = SqlLedgerAdapter(BrokenSession, breaker=breaker)
        breaker._on_failure()
        clock.now += 30

        with pytest.raises(LedgerUnavailableError):
            await adapter.read_snapshot_inputs(resolve_window("today", now=NOW))
        assert breaker.state == CircuitState.OPEN


@pytest.mark.asyncio
class TestGatherAll:

    async def test_first_failure_cancels_the_rest(self):
        cancelled = asyncio.Event()

        async def slow():
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        async def fail():
            raise LedgerUnavailableError("boom")

        with pytest.raises(LedgerUnavailableError):
            await gather_all(slow(), fail())
        assert cancelled.is_set()

    async def test_results_in_order(self):
        async def value(v):
            await asyncio.sleep(0)
            return v

        assert await gather_all(value(1), value(2), value(3)) == [1, 2, 3]


def test_product_label():
    assert product_label(None) is None
    assert product_label("100.00") == "¥100 top-up"
    assert product_label("19.90") == "¥19.90 top-up"
