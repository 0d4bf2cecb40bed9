"""
REST Ledger Adapter — reads the ledger from a hosted PostgREST-style backend.

The backend exposes each table at {base_url}/rest/v1/{table} with filter
operators in the query string (created_at=gte.X, order_status=eq.completed,
related_order=in.(a,b)). Counts use `Prefer: count=exact` and the total after
the slash in the Content-Range header.

The service key bypasses row-level policies, so the adapter is built once at
startup from configuration and shared. It is never constructed per request.
"""

from datetime import datetime, timezone
from typing import Any, Iterable, Optional

import httpx
import structlog
from pydantic import SecretStr

from rechargepanel.engine.records import OrderRow, OrderStatus, OrderTimeField, TransactionRow
from rechargepanel.services.ledger import LedgerQueryAdapter, product_label
from rechargepanel.services.resilience import CircuitBreaker

logger = structlog.get_logger(__name__)

PAGE_SIZE = 1000

ORDER_COLUMNS = (
    "order_id,user_id,product_id,phone_number,amount,payment_method,"
    "order_status,create_time,complete_time,processed_by,"
    "recharge_products(face_value)"
)
TRANSACTION_COLUMNS = "transaction_id,transaction_type,amount,create_time,related_order"


class MalformedResponseError(ValueError):
    """The backend answered, but not with something the ledger can use."""


def _stamp(value: datetime) -> str:
    return value.isoformat()


def _parse_time(raw: Any) -> Optional[datetime]:
    """Backend timestamps → naive UTC, matching the SQL adapter's rows."""
    if raw in (None, ""):
        return None
    if not isinstance(raw, str):
        raise MalformedResponseError(f"Expected timestamp string, got {type(raw).__name__}")
    parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _parse_total(content_range: Optional[str]) -> int:
    # "0-24/3573" or "*/0"
    if not content_range or "/" not in content_range:
        raise MalformedResponseError(f"Missing count in Content-Range: {content_range!r}")
    total = content_range.rsplit("/", 1)[1]
    if not total.isdigit():
        raise MalformedResponseError(f"Inexact count in Content-Range: {content_range!r}")
    return int(total)


def _in_list(values: Iterable[str]) -> str:
    quoted = ",".join(f'"{v}"' for v in values)
    return f"in.({quoted})"


class RestLedgerAdapter(LedgerQueryAdapter):
    """Ledger reads over httpx against a PostgREST-compatible endpoint."""

    transient_errors = (httpx.HTTPError, MalformedResponseError, KeyError, TypeError, ValueError)

    def __init__(
        self,
        base_url: str,
        service_key: SecretStr,
        timeout_seconds: Optional[float] = None,
        breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(timeout_seconds=timeout_seconds, breaker=breaker)
        self.base_url = base_url.rstrip("/")
        key = service_key.get_secret_value()
        self._client = httpx.AsyncClient(
            base_url=f"{self.base_url}/rest/v1",
            headers={"apikey": key, "Authorization": f"Bearer {key}"},
            timeout=self.timeout_seconds,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    # ── HTTP helpers ─────────────────────────────────────────────────────

    async def _count(self, table: str, filters: list[tuple[str, str]], key_column: str) -> int:
        resp = await self._client.get(
            f"/{table}",
            params=[("select", key_column), *filters],
            headers={"Prefer": "count=exact", "Range-Unit": "items", "Range": "0-0"},
        )
        resp.raise_for_status()
        return _parse_total(resp.headers.get("content-range"))

    async def _select(
        self, table: str, columns: str, filters: list[tuple[str, str]], order: str
    ) -> list[dict]:
        """Every matching row, fetched page by page."""
        rows: list[dict] = []
        offset = 0
        while True:
            resp = await self._client.get(
                f"/{table}",
                params=[
                    ("select", columns),
                    *filters,
                    ("order", order),
                    ("limit", str(PAGE_SIZE)),
                    ("offset", str(offset)),
                ],
            )
            resp.raise_for_status()
            page = resp.json()
            if not isinstance(page, list):
                raise MalformedResponseError(f"Expected a JSON array from {table}")
            rows.extend(page)
            if len(page) < PAGE_SIZE:
                return rows
            offset += PAGE_SIZE

    # ── Primitive reads ──────────────────────────────────────────────────

    async def _count_users(self) -> int:
        return await self._count("user_accounts", [], "id")

    async def _count_users_between(self, field: str, start: datetime, end: datetime) -> int:
        filters = [(field, f"gte.{_stamp(start)}"), (field, f"lt.{_stamp(end)}")]
        return await self._count("user_accounts", filters, "id")

    async def _count_agents(self) -> int:
        return await self._count("agents", [], "agent_id")

    async def _fetch_orders(
        self,
        start: datetime,
        end: datetime,
        processor_id: Optional[str],
        time_field: OrderTimeField,
        status: Optional[OrderStatus],
    ) -> list[OrderRow]:
        field = time_field.value
        filters = [(field, f"gte.{_stamp(start)}"), (field, f"lt.{_stamp(end)}")]
        if processor_id is not None:
            filters.append(("processed_by", f"eq.{processor_id}"))
        if status is not None:
            filters.append(("order_status", f"eq.{status.value}"))

        raw = await self._select(
            "recharge_orders", ORDER_COLUMNS, filters, order=f"{field}.asc,order_id.asc"
        )
        orders = []
        for r in raw:
            product = r.get("recharge_products") or {}
            orders.append(
                OrderRow(
                    order_id=str(r["order_id"]),
                    status=r["order_status"],
                    amount=r.get("amount"),
                    create_time=_parse_time(r.get("create_time")),
                    complete_time=_parse_time(r.get("complete_time")),
                    user_id=r.get("user_id"),
                    product_id=r.get("product_id"),
                    product_name=product_label(product.get("face_value")),
                    phone_number=r.get("phone_number"),
                    payment_method=r.get("payment_method"),
                    processed_by=r.get("processed_by"),
                )
            )
        return orders

    async def _fetch_transactions(
        self, start: datetime, end: datetime, processor_id: Optional[str]
    ) -> list[TransactionRow]:
        filters = [("create_time", f"gte.{_stamp(start)}"), ("create_time", f"lt.{_stamp(end)}")]
        if processor_id is not None:
            agent_orders = await self._select(
                "recharge_orders",
                "order_id",
                [("processed_by", f"eq.{processor_id}")],
                order="order_id.asc",
            )
            if not agent_orders:
                return []
            filters.append(("related_order", _in_list(str(o["order_id"]) for o in agent_orders)))

        raw = await self._select(
            "financial_transactions",
            TRANSACTION_COLUMNS,
            filters,
            order="create_time.asc,transaction_id.asc",
        )
        return [
            TransactionRow(
                transaction_id=str(r["transaction_id"]),
                transaction_type=r["transaction_type"],
                amount=r.get("amount"),
                create_time=_parse_time(r.get("create_time")),
                related_order=r.get("related_order"),
            )
            for r in raw
        ]

    async def _count_orders(self, status: Optional[OrderStatus]) -> int:
        filters = [] if status is None else [("order_status", f"eq.{status.value}")]
        return await self._count("recharge_orders", filters, "order_id")

    async def _sum_order_amount(self) -> float:
        rows = await self._select("recharge_orders", "amount", [], order="order_id.asc")
        return float(sum(float(r["amount"]) for r in rows if r.get("amount") is not None))
