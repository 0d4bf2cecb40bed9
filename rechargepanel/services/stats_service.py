"""
Statistics Service — the entry point for every statistics view.

get_stats():
    1. Resolve the window (InvalidRangeError surfaces immediately, nothing is read)
    2. use_mock → fallback snapshot, not degraded
    3. Read the ledger concurrently and aggregate → live snapshot
    4. LedgerUnavailableError → fallback snapshot marked degraded, when
       automatic degradation is enabled; otherwise the error propagates

The agent view, the admin period overview and the all-time ledger totals
live here too. They have no fallback: a ledger failure propagates.
"""

from datetime import datetime, timezone
from typing import Optional

import structlog

from rechargepanel.config import settings
from rechargepanel.engine.aggregator import aggregate, completed_orders, total_amount
from rechargepanel.engine.records import OrderRow, OrderStatus, OrderTimeField
from rechargepanel.engine.time_window import (
    DateRange,
    TimeRangeType,
    TimeWindow,
    resolve_window,
    stats_timezone,
)
from rechargepanel.errors import InvalidRangeError, LedgerUnavailableError
from rechargepanel.schemas.stats import (
    AgentOrderStats,
    LedgerTotals,
    PeriodFigures,
    PeriodOverview,
    StatisticsSnapshot,
    StatsRequest,
    StatsResult,
)
from rechargepanel.services.ledger import LedgerQueryAdapter, gather_all
from rechargepanel.services.mock_stats import mock_snapshot

logger = structlog.get_logger(__name__)


def _failed(orders: list[OrderRow]) -> list[OrderRow]:
    return [o for o in orders if o.status == OrderStatus.FAILED.value]


class StatsService:
    """Compute statistics from the ledger, degrading to fallback data when allowed."""

    def __init__(
        self,
        ledger: LedgerQueryAdapter,
        auto_fallback: Optional[bool] = None,
        commission_rate: Optional[float] = None,
        tz_name: Optional[str] = None,
    ):
        self.ledger = ledger
        self.auto_fallback = settings.stats_auto_fallback if auto_fallback is None else auto_fallback
        self.commission_rate = (
            settings.agent_commission_rate if commission_rate is None else commission_rate
        )
        self.tz = stats_timezone(tz_name)

    def _now(self, now: Optional[datetime]) -> datetime:
        if now is None:
            return datetime.now(self.tz)
        return now if now.tzinfo is not None else now.replace(tzinfo=self.tz)

    def _window(self, selector: TimeRangeType, now: datetime) -> TimeWindow:
        return resolve_window(selector, now=now, tz=self.tz)

    # ── Snapshot ─────────────────────────────────────────────────────────

    async def get_stats(self, request: StatsRequest, now: Optional[datetime] = None) -> StatsResult:
        """Statistics snapshot for one request, live or fallback."""
        now = self._now(now)
        window = resolve_window(
            request.selector,
            DateRange(request.start_date, request.end_date),
            now=now,
            tz=self.tz,
        )

        if request.use_mock:
            return self._result(request, window, mock_snapshot(request.selector), "fallback")

        try:
            reads = await self.ledger.read_snapshot_inputs(window, processor_id=request.agent_id)
        except LedgerUnavailableError as exc:
            if not self.auto_fallback:
                raise
            logger.warning(
                "stats_degraded_to_fallback",
                selector=request.selector.value,
                agent_id=request.agent_id,
                operation=exc.operation,
                error=str(exc),
            )
            return self._result(
                request, window, mock_snapshot(request.selector), "fallback", degraded=True
            )

        snapshot = aggregate(reads, window, commission_rate=self.commission_rate)
        logger.info(
            "stats_computed",
            selector=request.selector.value,
            agent_id=request.agent_id,
            total_orders=snapshot.total_orders,
        )
        return self._result(request, window, snapshot, "live")

    def _result(
        self,
        request: StatsRequest,
        window: TimeWindow,
        snapshot: StatisticsSnapshot,
        source: str,
        degraded: bool = False,
    ) -> StatsResult:
        return StatsResult(
            snapshot=snapshot,
            source=source,
            degraded=degraded,
            selector=request.selector,
            window_start=window.start,
            window_end=window.end,
            agent_id=request.agent_id,
            generated_at=datetime.now(timezone.utc),
        )

    # ── Agent view ───────────────────────────────────────────────────────

    async def agent_order_stats(
        self, agent_id: str, now: Optional[datetime] = None
    ) -> AgentOrderStats:
        """
        Order figures for one agent.

        "today" counts every order the agent processed that was created today.
        week / month / last_month sum the agent's completed orders by the time
        they completed.
        """
        if not agent_id:
            raise InvalidRangeError("agent_id must not be empty")

        now = self._now(now)
        today = self._window(TimeRangeType.TODAY, now)
        week = self._window(TimeRangeType.WEEK, now)
        month = self._window(TimeRangeType.MONTH, now)
        last_month = self._window(TimeRangeType.LAST_MONTH, now)

        def completed_in(window: TimeWindow):
            return self.ledger.fetch_orders(
                window,
                processor_id=agent_id,
                time_field=OrderTimeField.COMPLETED,
                status=OrderStatus.COMPLETED,
            )

        today_orders, week_done, month_done, last_month_done = await gather_all(
            self.ledger.fetch_orders(today, processor_id=agent_id),
            completed_in(week),
            completed_in(month),
            completed_in(last_month),
        )

        today_completed = completed_orders(today_orders)
        today_failed = _failed(today_orders)
        return AgentOrderStats(
            agent_id=agent_id,
            today_order_count=len(today_orders),
            today_order_amount=total_amount(today_orders),
            today_completed_count=len(today_completed),
            today_completed_amount=total_amount(today_completed),
            today_failed_count=len(today_failed),
            today_failed_amount=total_amount(today_failed),
            week_order_count=len(week_done),
            week_order_amount=total_amount(week_done),
            month_order_amount=total_amount(month_done),
            last_month_order_amount=total_amount(last_month_done),
        )

    # ── Admin overview ───────────────────────────────────────────────────

    def _figures(self, orders: list[OrderRow]) -> PeriodFigures:
        sales = total_amount(orders)
        return PeriodFigures(
            sales_amount=sales,
            completed_amount=total_amount(completed_orders(orders)),
            commission=round(sales * self.commission_rate, 2),
            order_count=len(orders),
        )

    async def period_overview(self, now: Optional[datetime] = None) -> PeriodOverview:
        """Sales per calendar period across all agents, by order creation time."""
        now = self._now(now)
        today_orders, week_orders, month_orders, last_month_orders, total = await gather_all(
            self.ledger.fetch_orders(self._window(TimeRangeType.TODAY, now)),
            self.ledger.fetch_orders(self._window(TimeRangeType.WEEK, now)),
            self.ledger.fetch_orders(self._window(TimeRangeType.MONTH, now)),
            self.ledger.fetch_orders(self._window(TimeRangeType.LAST_MONTH, now)),
            self.ledger.count_orders(),
        )
        return PeriodOverview(
            today=self._figures(today_orders),
            week=self._figures(week_orders),
            month=self._figures(month_orders),
            last_month_sales_amount=total_amount(last_month_orders),
            total_order_count=total,
            generated_at=datetime.now(timezone.utc),
        )

    # ── Ledger totals ────────────────────────────────────────────────────

    async def ledger_totals(self) -> LedgerTotals:
        """All-time order counts by status and the total requested amount."""
        total, pending, completed, failed, amount = await gather_all(
            self.ledger.count_orders(),
            self.ledger.count_orders(OrderStatus.PENDING),
            self.ledger.count_orders(OrderStatus.COMPLETED),
            self.ledger.count_orders(OrderStatus.FAILED),
            self.ledger.sum_order_amount(),
        )
        return LedgerTotals(
            total_orders=total,
            pending_orders=pending,
            completed_orders=completed,
            failed_orders=failed,
            total_amount=round(amount, 2),
            generated_at=datetime.now(timezone.utc),
        )
