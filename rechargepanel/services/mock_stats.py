"""
Fallback statistics.

A fixed, plausible snapshot served when the ledger cannot be read (or when a
caller asks for demo data). Deterministic and never fails.

Only the headline totals scale with the selected range:

    week        total_orders, total_sales, net_revenue × 3
    month       × 8
    last_month  × 7, and new_users × 0.9
    today/custom  baseline

So, unlike live snapshots, status counts need not add up to total_orders,
net_revenue need not equal total_sales - total_refunds, and new_users may be
fractional.
"""

from typing import Union

from rechargepanel.engine.time_window import TimeRangeType
from rechargepanel.schemas.stats import (
    CarrierStat,
    PaymentMethodStat,
    StatisticsSnapshot,
    TopProduct,
    TrendPoint,
)

BASELINE = StatisticsSnapshot(
    total_users=5280,
    new_users=124,
    active_users=1350,
    total_orders=3250,
    completed_orders=2940,
    failed_orders=85,
    pending_orders=225,
    total_sales=158600.0,
    total_refunds=3200.0,
    net_revenue=155400.0,
    gross_profit=42800.0,
    total_agents=180,
    active_agents=120,
    agent_revenue=68500.0,
    agent_commission=3425.0,
    top_products=(
        TopProduct(product_id="1", product_name="¥100 top-up", sales=65000.0, orders=650),
        TopProduct(product_id="2", product_name="¥50 top-up", sales=42500.0, orders=850),
        TopProduct(product_id="3", product_name="¥200 top-up", sales=24000.0, orders=120),
        TopProduct(product_id="4", product_name="¥20 top-up", sales=12000.0, orders=600),
        TopProduct(product_id="5", product_name="¥500 top-up", sales=10000.0, orders=20),
    ),
    payment_method_stats=(
        PaymentMethodStat(method="alipay", amount=85600.0, count=1280),
        PaymentMethodStat(method="wechat", amount=65200.0, count=980),
        PaymentMethodStat(method="bank_transfer", amount=6800.0, count=22),
        PaymentMethodStat(method="credit_card", amount=1000.0, count=10),
    ),
    carrier_stats=(
        CarrierStat(carrier="china_mobile", amount=95200.0, count=1450),
        CarrierStat(carrier="china_unicom", amount=42400.0, count=640),
        CarrierStat(carrier="china_telecom", amount=21000.0, count=320),
    ),
    sales_trend=(
        TrendPoint(date="2025-05-02", sales=9800.0, orders=150),
        TrendPoint(date="2025-05-03", sales=12500.0, orders=185),
        TrendPoint(date="2025-05-04", sales=8200.0, orders=120),
        TrendPoint(date="2025-05-05", sales=14300.0, orders=210),
        TrendPoint(date="2025-05-06", sales=16800.0, orders=245),
        TrendPoint(date="2025-05-07", sales=15200.0, orders=220),
        TrendPoint(date="2025-05-08", sales=18600.0, orders=270),
        TrendPoint(date="2025-05-09", sales=10200.0, orders=160),
    ),
)

# selector → (headline multiplier, new_users multiplier)
SCALING: dict[TimeRangeType, tuple[int, float]] = {
    TimeRangeType.WEEK: (3, 1.0),
    TimeRangeType.MONTH: (8, 1.0),
    TimeRangeType.LAST_MONTH: (7, 0.9),
}


def mock_snapshot(selector: Union[TimeRangeType, str]) -> StatisticsSnapshot:
    """Fallback snapshot for `selector`. Unknown selectors get the baseline."""
    try:
        selector = TimeRangeType(selector)
    except ValueError:
        return BASELINE

    factor, user_factor = SCALING.get(selector, (1, 1.0))
    if factor == 1:
        return BASELINE

    update: dict = {
        "total_orders": BASELINE.total_orders * factor,
        "total_sales": BASELINE.total_sales * factor,
        "net_revenue": BASELINE.net_revenue * factor,
    }
    if user_factor != 1.0:
        update["new_users"] = BASELINE.new_users * user_factor
    return BASELINE.model_copy(update=update)
