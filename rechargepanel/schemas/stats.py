"""
Statistics API Schemas.

A StatisticsSnapshot is either a live aggregate of the order ledger or the
synthetic fallback, never a mix. StatsResult carries the flag that tells the
two apart.
"""

from datetime import date, datetime
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, NonNegativeFloat, NonNegativeInt

from rechargepanel.engine.time_window import TimeRangeType

_FROZEN = ConfigDict(frozen=True)


class TopProduct(BaseModel):
    """A best-selling product in the window."""
    model_config = _FROZEN

    product_id: str
    product_name: str
    sales: NonNegativeFloat
    orders: NonNegativeInt


class PaymentMethodStat(BaseModel):
    model_config = _FROZEN

    method: str
    amount: NonNegativeFloat
    count: NonNegativeInt


class CarrierStat(BaseModel):
    model_config = _FROZEN

    carrier: str
    amount: NonNegativeFloat
    count: NonNegativeInt


class TrendPoint(BaseModel):
    """One bucket of the sales trend: a day (YYYY-MM-DD) or a month (YYYY-MM)."""
    model_config = _FROZEN

    date: str
    sales: NonNegativeFloat
    orders: NonNegativeInt


class StatisticsSnapshot(BaseModel):
    """
    Statistics for one window.

    Live snapshots satisfy net_revenue == total_sales - total_refunds.
    Fallback snapshots only scale headline totals (see services.mock_stats).
    """
    model_config = _FROZEN

    # Users
    total_users: NonNegativeInt = 0
    # Fractional only in last_month fallback data
    new_users: Union[NonNegativeInt, NonNegativeFloat] = 0
    active_users: NonNegativeInt = 0

    # Orders
    total_orders: NonNegativeInt = 0
    completed_orders: NonNegativeInt = 0
    failed_orders: NonNegativeInt = 0
    pending_orders: NonNegativeInt = 0

    # Financial
    total_sales: NonNegativeFloat = 0.0
    total_refunds: NonNegativeFloat = 0.0
    net_revenue: float = 0.0
    gross_profit: float = 0.0

    # Agents
    total_agents: NonNegativeInt = 0
    active_agents: NonNegativeInt = 0
    agent_revenue: NonNegativeFloat = 0.0
    agent_commission: NonNegativeFloat = 0.0

    # Breakdowns
    top_products: tuple[TopProduct, ...] = ()
    payment_method_stats: tuple[PaymentMethodStat, ...] = ()
    carrier_stats: tuple[CarrierStat, ...] = ()
    sales_trend: tuple[TrendPoint, ...] = ()


class StatsRequest(BaseModel):
    """Entry-point request for a statistics snapshot."""
    model_config = _FROZEN

    selector: TimeRangeType = TimeRangeType.TODAY
    start_date: Optional[Union[datetime, date]] = None
    end_date: Optional[Union[datetime, date]] = None
    agent_id: Optional[str] = None
    use_mock: bool = False

    @property
    def key(self) -> str:
        """Identity of the view this request feeds (selector + range + agent)."""
        parts = [self.selector.value]
        if self.selector == TimeRangeType.CUSTOM:
            parts.append(f"{self.start_date}..{self.end_date}")
        if self.agent_id:
            parts.append(f"agent={self.agent_id}")
        return "|".join(parts)


class StatsResult(BaseModel):
    """Snapshot envelope. `source` and `degraded` are the caller-visible flags."""
    model_config = _FROZEN

    snapshot: StatisticsSnapshot
    source: Literal["live", "fallback"]
    degraded: bool = False
    selector: TimeRangeType
    window_start: datetime
    window_end: datetime
    agent_id: Optional[str] = None
    generated_at: datetime


class AgentOrderStats(BaseModel):
    """Per-agent order figures. Only the "today" block uses creation time."""
    model_config = _FROZEN

    agent_id: str
    today_order_count: int = 0
    today_order_amount: float = 0.0
    today_completed_count: int = 0
    today_completed_amount: float = 0.0
    today_failed_count: int = 0
    today_failed_amount: float = 0.0
    week_order_count: int = 0
    week_order_amount: float = 0.0
    month_order_amount: float = 0.0
    last_month_order_amount: float = 0.0


class PeriodFigures(BaseModel):
    model_config = _FROZEN

    sales_amount: float = 0.0
    completed_amount: float = 0.0
    commission: float = 0.0
    order_count: int = 0


class PeriodOverview(BaseModel):
    """Admin overview: sales per calendar period, all from order creation time."""
    model_config = _FROZEN

    today: PeriodFigures
    week: PeriodFigures
    month: PeriodFigures
    last_month_sales_amount: float = 0.0
    total_order_count: int = 0
    generated_at: datetime


class LedgerTotals(BaseModel):
    """All-time order counts by status plus the total requested amount."""
    model_config = _FROZEN

    total_orders: int = 0
    pending_orders: int = 0
    completed_orders: int = 0
    failed_orders: int = 0
    total_amount: float = 0.0
    generated_at: datetime


class StatsUnavailable(BaseModel):
    """503 body when live statistics are unavailable and fallback is disabled."""
    error: str = "data unavailable, retry"
    retryable: bool = True
    operation: Optional[str] = None


class PanelState(BaseModel):
    """Response of a panel refresh: whether this request won, and what is visible now."""
    panel_id: str
    applied: bool
    visible: Optional[StatsResult] = None
