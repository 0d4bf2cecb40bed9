"""
Statistics Aggregator.

Folds one window's ledger reads into a StatisticsSnapshot.

Timestamp used per metric:
- new users          → user_accounts.created_at   (counted by the adapter)
- active users       → user_accounts.last_login   (counted by the adapter)
- order counts, breakdowns, top products, agents, trend → recharge_orders.create_time
- sales / refunds    → financial_transactions.create_time

Trend granularity: daily buckets when the window touches at most
`daily_max_days` calendar days, monthly buckets otherwise. Buckets are
contiguous, ascending and zero-filled across the whole window.

Pure: no I/O, no clock, no shared state. Same inputs → identical snapshot.
"""

import math
from datetime import date, datetime, timezone, tzinfo
from typing import Iterable, Optional

from rechargepanel.config import settings
from rechargepanel.engine.carrier import carrier_bucket
from rechargepanel.engine.records import (
    Amount,
    LedgerReads,
    OrderRow,
    OrderStatus,
    TransactionRow,
    TransactionType,
)
from rechargepanel.engine.time_window import TimeWindow
from rechargepanel.schemas.stats import (
    CarrierStat,
    PaymentMethodStat,
    StatisticsSnapshot,
    TopProduct,
    TrendPoint,
)

PENDING_STATUSES = frozenset({OrderStatus.PENDING.value, OrderStatus.PROCESSING.value})
UNKNOWN_METHOD = "unknown"


def order_amount(value: Amount) -> float:
    """Order amount as a non-negative float; null, missing and NaN count as zero."""
    if value is None:
        return 0.0
    amount = float(value)
    if not math.isfinite(amount) or amount < 0:
        return 0.0
    return amount


def transaction_amount(value: Amount) -> float:
    """Transaction amounts are magnitudes; the sign convention of the ledger is ignored."""
    if value is None:
        return 0.0
    amount = float(value)
    if not math.isfinite(amount):
        return 0.0
    return abs(amount)


def _money(value: float) -> float:
    # + 0.0 turns -0.0 into 0.0
    return round(value, 2) + 0.0


def _local_date(ts: Optional[datetime], tz: tzinfo) -> Optional[date]:
    if ts is None:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(tz).date()


# ── Trend buckets ──────────────────────────────────────────────────────────


def _month_key(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def trend_bucket_keys(window: TimeWindow, daily_max_days: int) -> tuple[list[str], bool]:
    """Return (ordered bucket keys, is_daily) covering the whole window."""
    days = window.local_dates()
    if len(days) <= daily_max_days:
        return [d.isoformat() for d in days], True

    keys: list[str] = []
    for d in days:
        key = _month_key(d)
        if not keys or keys[-1] != key:
            keys.append(key)
    return keys, False


def sales_trend(
    orders: Iterable[OrderRow], window: TimeWindow, daily_max_days: int
) -> tuple[TrendPoint, ...]:
    keys, is_daily = trend_bucket_keys(window, daily_max_days)
    buckets: dict[str, list[float]] = {k: [0.0, 0] for k in keys}

    for order in orders:
        day = _local_date(order.create_time, window.tz)
        if day is None:
            continue
        key = day.isoformat() if is_daily else _month_key(day)
        bucket = buckets.get(key)
        if bucket is None:
            continue
        bucket[0] += order_amount(order.amount)
        bucket[1] += 1

    return tuple(
        TrendPoint(date=k, sales=_money(sales), orders=count)
        for k, (sales, count) in buckets.items()
    )


# ── Breakdowns ─────────────────────────────────────────────────────────────


def top_products(orders: Iterable[OrderRow], limit: int) -> tuple[TopProduct, ...]:
    """Group by product, rank by sales (descending, first-seen wins ties), keep `limit`."""
    if limit <= 0:
        return ()

    grouped: dict[str, dict] = {}
    for order in orders:
        if not order.product_id:
            continue
        entry = grouped.setdefault(
            order.product_id,
            {"name": order.product_name or order.product_id, "sales": 0.0, "orders": 0},
        )
        entry["sales"] += order_amount(order.amount)
        entry["orders"] += 1

    ranked = sorted(grouped.items(), key=lambda item: item[1]["sales"], reverse=True)
    return tuple(
        TopProduct(
            product_id=pid,
            product_name=entry["name"],
            sales=_money(entry["sales"]),
            orders=entry["orders"],
        )
        for pid, entry in ranked[:limit]
    )


def _tally(pairs: Iterable[tuple[str, float]]) -> dict[str, list[float]]:
    totals: dict[str, list[float]] = {}
    for key, amount in pairs:
        slot = totals.setdefault(key, [0.0, 0])
        slot[0] += amount
        slot[1] += 1
    return totals


def payment_method_breakdown(orders: Iterable[OrderRow]) -> tuple[PaymentMethodStat, ...]:
    totals = _tally(
        (o.payment_method or UNKNOWN_METHOD, order_amount(o.amount)) for o in orders
    )
    return tuple(
        PaymentMethodStat(method=k, amount=_money(amount), count=count)
        for k, (amount, count) in totals.items()
    )


def carrier_breakdown(orders: Iterable[OrderRow]) -> tuple[CarrierStat, ...]:
    totals = _tally((carrier_bucket(o.phone_number), order_amount(o.amount)) for o in orders)
    return tuple(
        CarrierStat(carrier=k, amount=_money(amount), count=count)
        for k, (amount, count) in totals.items()
    )


def _sum_transactions(transactions: Iterable[TransactionRow], kind: TransactionType) -> float:
    return sum(
        transaction_amount(t.amount)
        for t in transactions
        if t.transaction_type == kind.value
    )


# ── Snapshot ───────────────────────────────────────────────────────────────


def aggregate(
    reads: LedgerReads,
    window: TimeWindow,
    *,
    top_n: Optional[int] = None,
    commission_rate: Optional[float] = None,
    gross_margin: Optional[float] = None,
    daily_max_days: Optional[int] = None,
) -> StatisticsSnapshot:
    """Compute the statistics snapshot for one window from its ledger reads."""
    top_n = settings.stats_top_products if top_n is None else top_n
    commission_rate = settings.agent_commission_rate if commission_rate is None else commission_rate
    gross_margin = settings.gross_margin_rate if gross_margin is None else gross_margin
    daily_max_days = settings.stats_daily_max_days if daily_max_days is None else daily_max_days

    orders = reads.orders
    statuses = [o.status for o in orders]

    total_sales = _money(_sum_transactions(reads.transactions, TransactionType.CONSUMPTION))
    total_refunds = _money(_sum_transactions(reads.transactions, TransactionType.REFUND))
    net_revenue = _money(total_sales - total_refunds)

    processed = [o for o in orders if o.processed_by]
    agent_revenue = _money(sum(order_amount(o.amount) for o in processed))

    return StatisticsSnapshot(
        total_users=reads.total_users,
        new_users=reads.new_users,
        active_users=reads.active_users,
        total_orders=len(orders),
        completed_orders=statuses.count(OrderStatus.COMPLETED.value),
        failed_orders=statuses.count(OrderStatus.FAILED.value),
        pending_orders=sum(1 for s in statuses if s in PENDING_STATUSES),
        total_sales=total_sales,
        total_refunds=total_refunds,
        net_revenue=net_revenue,
        gross_profit=_money(net_revenue * gross_margin),
        total_agents=reads.total_agents,
        active_agents=len({o.processed_by for o in processed}),
        agent_revenue=agent_revenue,
        agent_commission=_money(agent_revenue * commission_rate),
        top_products=top_products(orders, top_n),
        payment_method_stats=payment_method_breakdown(orders),
        carrier_stats=carrier_breakdown(orders),
        sales_trend=sales_trend(orders, window, daily_max_days),
    )


def completed_orders(orders: Iterable[OrderRow]) -> list[OrderRow]:
    return [o for o in orders if o.status == OrderStatus.COMPLETED.value]


def total_amount(orders: Iterable[OrderRow]) -> float:
    return _money(sum(order_amount(o.amount) for o in orders))
