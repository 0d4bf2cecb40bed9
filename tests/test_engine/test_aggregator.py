"""
Aggregator Tests.

Pure folding of ledger reads into a snapshot: totals, breakdowns, trend
buckets and the zero/None edge cases.
"""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from rechargepanel.engine.aggregator import (
    aggregate,
    order_amount,
    top_products,
    trend_bucket_keys,
)
from rechargepanel.engine.records import LedgerReads, OrderRow, TransactionRow
from rechargepanel.engine.time_window import TimeWindow, resolve_window

SHANGHAI = ZoneInfo("Asia/Shanghai")
NOW = datetime(2026, 10, 14, 15, 0, tzinfo=SHANGHAI)


def utc(*args) -> datetime:
    """Naive UTC, as the ledger stores it."""
    return datetime(*args)


def order(order_id, amount=100, status="completed", created=utc(2026, 10, 14, 2), **kw):
    return OrderRow(order_id=order_id, status=status, amount=amount, create_time=created, **kw)


def txn(kind, amount, created=utc(2026, 10, 14, 2)):
    return TransactionRow(
        transaction_id=f"t-{kind}-{amount}", transaction_type=kind, amount=amount,
        create_time=created,
    )


class TestTotals:

    def setup_method(self):
        self.window = resolve_window("today", now=NOW)

    def test_order_status_counts(self):
        reads = LedgerReads(orders=(
            order("a", status="completed"),
            order("b", status="failed"),
            order("c", status="pending"),
            order("d", status="processing"),
            order("e", status="completed"),
        ))
        snap = aggregate(reads, self.window)
        assert snap.total_orders == 5
        assert snap.completed_orders == 2
        assert snap.failed_orders == 1
        assert snap.pending_orders == 2

    def test_financials_from_transactions(self):
        reads = LedgerReads(transactions=(
            txn("consumption", 120.5),
            txn("consumption", 79.5),
            txn("refund", 50),
            txn("recharge", 1000),
        ))
        snap = aggregate(reads, self.window, gross_margin=0.3)
        assert snap.total_sales == 200.0
        assert snap.total_refunds == 50.0
        assert snap.net_revenue == 150.0
        assert snap.gross_profit == 45.0

    def test_net_revenue_can_go_negative(self):
        reads = LedgerReads(transactions=(txn("consumption", 10), txn("refund", 30)))
        snap = aggregate(reads, self.window)
        assert snap.net_revenue == -20.0
        assert snap.net_revenue == snap.total_sales - snap.total_refunds

    def test_negative_transaction_amounts_are_magnitudes(self):
        reads = LedgerReads(transactions=(txn("consumption", -40),))
        assert aggregate(reads, self.window).total_sales == 40.0

    def test_agent_figures(self):
        reads = LedgerReads(
            total_agents=3,
            orders=(
                order("a", amount=100, processed_by="ag1"),
                order("b", amount=200, processed_by="ag1"),
                order("c", amount=50, processed_by="ag2"),
                order("d", amount=999),
            ),
        )
        snap = aggregate(reads, self.window, commission_rate=0.05)
        assert snap.total_agents == 3
        assert snap.active_agents == 2
        assert snap.agent_revenue == 350.0
        assert snap.agent_commission == 17.5

    def test_user_counts_pass_through(self):
        reads = LedgerReads(total_users=10, new_users=2, active_users=4)
        snap = aggregate(reads, self.window)
        assert (snap.total_users, snap.new_users, snap.active_users) == (10, 2, 4)


class TestMissingAmounts:

    def setup_method(self):
        self.window = resolve_window("today", now=NOW)

    def test_none_nan_and_negative_amounts_count_as_zero(self):
        assert order_amount(None) == 0.0
        assert order_amount(float("nan")) == 0.0
        assert order_amount(-5) == 0.0
        assert order_amount(12.5) == 12.5

    def test_snapshot_never_negative(self):
        reads = LedgerReads(
            orders=(
                order("a", amount=None, product_id="p1", processed_by="ag"),
                order("b", amount=-10, product_id="p1"),
            ),
            transactions=(
                TransactionRow(transaction_id="t1", transaction_type="consumption", amount=None),
            ),
        )
        snap = aggregate(reads, self.window)
        assert snap.total_orders == 2
        assert snap.total_sales == 0.0
        assert snap.agent_revenue == 0.0
        assert snap.top_products[0].sales == 0.0
        assert all(p.sales >= 0 for p in snap.sales_trend)


class TestTopProducts:

    def test_ranked_by_sales_and_truncated(self):
        amounts = [10, 50, 30, 5, 100, 20]
        orders = [
            order(f"o{i}", amount=a, product_id=f"p{i}", product_name=f"P{i}")
            for i, a in enumerate(amounts)
        ]
        ranked = top_products(orders, limit=5)
        assert [p.sales for p in ranked] == [100, 50, 30, 20, 10]

    def test_grouped_per_product(self):
        orders = [
            order("a", amount=10, product_id="p1", product_name="¥10 top-up"),
            order("b", amount=10, product_id="p1", product_name="¥10 top-up"),
            order("c", amount=15, product_id="p2"),
        ]
        ranked = top_products(orders, limit=5)
        assert ranked[0].product_id == "p1"
        assert ranked[0].orders == 2
        assert ranked[0].sales == 20.0
        assert ranked[1].product_name == "p2"

    def test_ties_keep_first_seen_order(self):
        orders = [
            order("a", amount=10, product_id="first"),
            order("b", amount=10, product_id="second"),
        ]
        assert [p.product_id for p in top_products(orders, limit=5)] == ["first", "second"]

    def test_orders_without_product_are_skipped(self):
        assert top_products([order("a", amount=10)], limit=5) == ()


class TestBreakdowns:

    def test_payment_methods_and_carriers(self):
        window = resolve_window("today", now=NOW)
        reads = LedgerReads(orders=(
            order("a", amount=10, payment_method="alipay", phone_number="13800138000"),
            order("b", amount=20, payment_method="alipay", phone_number="13012345678"),
            order("c", amount=5, payment_method=None, phone_number="18912345678"),
            order("d", amount=1, payment_method="wallet", phone_number="99900000000"),
        ))
        snap = aggregate(reads, window)

        methods = {m.method: (m.amount, m.count) for m in snap.payment_method_stats}
        assert methods == {"alipay": (30.0, 2), "unknown": (5.0, 1), "wallet": (1.0, 1)}

        carriers = [c.carrier for c in snap.carrier_stats]
        assert carriers == ["china_mobile", "china_unicom", "china_telecom", "other"]


class TestTrend:

    def test_today_with_no_orders(self):
        window = resolve_window("today", now=NOW)
        snap = aggregate(LedgerReads(), window)
        assert snap.total_orders == 0
        assert snap.total_sales == 0.0
        assert snap.top_products == ()
        assert len(snap.sales_trend) == 1
        assert snap.sales_trend[0].date == "2026-10-14"
        assert snap.sales_trend[0].sales == 0.0
        assert snap.sales_trend[0].orders == 0

    def test_month_has_one_bucket_per_day_zero_filled(self):
        window = resolve_window("month", now=NOW)
        reads = LedgerReads(orders=(
            # 2026-10-03 09:00 Shanghai
            order("a", amount=30, created=utc(2026, 10, 3, 1)),
            # 2026-10-03 23:30 Shanghai, still the 3rd locally
            order("b", amount=20, created=utc(2026, 10, 3, 15, 30)),
        ))
        trend = aggregate(reads, window).sales_trend
        assert len(trend) == 31
        assert trend[0].date == "2026-10-01"
        assert trend[-1].date == "2026-10-31"
        third = trend[2]
        assert (third.date, third.sales, third.orders) == ("2026-10-03", 50.0, 2)
        assert sum(p.orders for p in trend) == 2

    def test_long_custom_range_is_monthly(self):
        window = TimeWindow(
            datetime(2026, 1, 1, tzinfo=SHANGHAI), datetime(2026, 7, 1, tzinfo=SHANGHAI)
        )
        keys, is_daily = trend_bucket_keys(window, daily_max_days=62)
        assert not is_daily
        assert keys == ["2026-01", "2026-02", "2026-03", "2026-04", "2026-05", "2026-06"]

    def test_orders_bucket_by_local_date(self):
        window = resolve_window("week", now=NOW)
        # 2026-10-12 17:00 UTC is 2026-10-13 01:00 in Shanghai
        reads = LedgerReads(orders=(order("a", amount=5, created=utc(2026, 10, 12, 17)),))
        trend = {p.date: p.orders for p in aggregate(reads, window).sales_trend}
        assert trend["2026-10-13"] == 1
        assert trend["2026-10-12"] == 0


class TestIdempotence:

    def test_same_inputs_same_snapshot(self):
        window = resolve_window("week", now=NOW)
        reads = LedgerReads(
            total_users=3,
            orders=(order("a", amount=10, product_id="p"), order("b", amount=None)),
            transactions=(txn("consumption", 10),),
        )
        first = aggregate(reads, window)
        second = aggregate(reads, window)
        assert first.model_dump_json() == second.model_dump_json()

    def test_timezone_aware_create_time(self):
        window = resolve_window("today", now=NOW)
        created = datetime(2026, 10, 14, 2, tzinfo=timezone.utc)
        snap = aggregate(LedgerReads(orders=(order("a", created=created),)), window)
        assert snap.sales_trend[0].orders == 1
