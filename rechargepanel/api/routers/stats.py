"""
Statistics API Endpoints.

GET  /api/v1/stats/snapshot                 statistics for a range (live or fallback)
GET  /api/v1/stats/agents/{agent_id}        one agent's order figures
GET  /api/v1/stats/overview                 admin sales overview per period
GET  /api/v1/stats/totals                   all-time order counts and amount
POST /api/v1/stats/panels/{panel_id}/refresh refresh a panel (last request wins)
GET  /api/v1/stats/panels/{panel_id}/stream  SSE stream of the panel's results

Range bounds are ISO dates (2026-10-01, whole day) or datetimes.
"""

from datetime import date, datetime
from typing import AsyncIterator, Optional, Union

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from rechargepanel.api.deps import get_registry, require_admin
from rechargepanel.engine.time_window import TimeRangeType
from rechargepanel.errors import InvalidRangeError
from rechargepanel.schemas.stats import (
    AgentOrderStats,
    LedgerTotals,
    PanelState,
    PeriodOverview,
    StatsRequest,
    StatsResult,
)
from rechargepanel.services.registry import ServiceRegistry
from rechargepanel.services.stats_panel import StatsPanel

router = APIRouter(
    prefix="/api/v1/stats", tags=["stats"], dependencies=[Depends(require_admin)]
)

KEEPALIVE_SECONDS = 30


def parse_bound(value: Optional[str], name: str) -> Optional[Union[date, datetime]]:
    """'YYYY-MM-DD' → date, anything longer → datetime."""
    if value is None or value == "":
        return None
    try:
        if len(value) == 10:
            return date.fromisoformat(value)
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise InvalidRangeError(f"{name} is not an ISO date or datetime: {value!r}") from None


def stats_request(
    selector: TimeRangeType = Query(default=TimeRangeType.TODAY),
    start_date: Optional[str] = Query(default=None),
    end_date: Optional[str] = Query(default=None),
    agent_id: Optional[str] = Query(default=None, max_length=64),
    use_mock: bool = Query(default=False),
) -> StatsRequest:
    return StatsRequest(
        selector=selector,
        start_date=parse_bound(start_date, "start_date"),
        end_date=parse_bound(end_date, "end_date"),
        agent_id=agent_id or None,
        use_mock=use_mock,
    )


@router.get("/snapshot", response_model=StatsResult)
async def stats_snapshot(
    request: StatsRequest = Depends(stats_request),
    services: ServiceRegistry = Depends(get_registry),
):
    """Statistics for the requested range. `source`/`degraded` say whether it is live."""
    return await services.stats_service.get_stats(request)


@router.get("/agents/{agent_id}", response_model=AgentOrderStats)
async def agent_stats(agent_id: str, services: ServiceRegistry = Depends(get_registry)):
    return await services.stats_service.agent_order_stats(agent_id)


@router.get("/overview", response_model=PeriodOverview)
async def period_overview(services: ServiceRegistry = Depends(get_registry)):
    return await services.stats_service.period_overview()


@router.get("/totals", response_model=LedgerTotals)
async def ledger_totals(services: ServiceRegistry = Depends(get_registry)):
    return await services.stats_service.ledger_totals()


@router.post("/panels/{panel_id}/refresh", response_model=PanelState)
async def refresh_panel(
    panel_id: str,
    request: StatsRequest = Depends(stats_request),
    services: ServiceRegistry = Depends(get_registry),
):
    panel = services.panel(panel_id)
    applied = await panel.refresh(request)
    return PanelState(panel_id=panel_id, applied=applied is not None, visible=panel.visible)


async def _panel_events(panel: StatsPanel) -> AsyncIterator[str]:
    if panel.visible is not None:
        yield f"event: stats\ndata: {panel.visible.model_dump_json()}\n\n"
    async for result in panel.channel.subscribe(panel.topic, timeout=KEEPALIVE_SECONDS):
        if result is None:
            yield ": keepalive\n\n"
            continue
        yield f"event: stats\ndata: {result.model_dump_json()}\n\n"


@router.get("/panels/{panel_id}/stream")
async def panel_stream(panel_id: str, services: ServiceRegistry = Depends(get_registry)):
    """SSE stream: the current result (if any), then every newly applied result."""
    return StreamingResponse(
        _panel_events(services.panel(panel_id)),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
            "Connection": "keep-alive",
        },
    )
