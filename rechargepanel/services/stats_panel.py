"""
Stats Panel — last-request-wins delivery of statistics to one view.

A viewer may switch ranges faster than the ledger answers. Every refresh
takes a ticket from the panel's LatestRequestGate; when its result comes
back, the result is applied only if no newer request has been issued since.
Completion order does not matter, issue order does.

Applied results become the panel's visible result and are published on the
event channel under stats_topic(panel_id).
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

import structlog

from rechargepanel.errors import RechargePanelError, StaleRequestDiscarded
from rechargepanel.schemas.stats import StatsRequest, StatsResult
from rechargepanel.services.event_channel import EventChannel, stats_topic
from rechargepanel.services.stats_service import StatsService

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Ticket:
    generation: int
    key: str


class LatestRequestGate:
    """Monotonic generation counter; only the newest ticket is current."""

    def __init__(self):
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def issue(self, key: str) -> Ticket:
        self._generation += 1
        return Ticket(generation=self._generation, key=key)

    def is_current(self, ticket: Ticket) -> bool:
        return ticket.generation == self._generation

    def check(self, ticket: Ticket) -> None:
        if not self.is_current(ticket):
            raise StaleRequestDiscarded(
                f"{ticket.key} (generation {ticket.generation}) superseded by "
                f"generation {self._generation}"
            )


class StatsPanel:
    """One statistics view with exactly one visible result."""

    def __init__(self, panel_id: str, service: StatsService, channel: EventChannel):
        self.panel_id = panel_id
        self.service = service
        self.channel = channel
        self.gate = LatestRequestGate()
        self._visible: Optional[StatsResult] = None
        self._inflight: Optional[asyncio.Task] = None
        self._pending = 0

    @property
    def visible(self) -> Optional[StatsResult]:
        return self._visible

    @property
    def topic(self) -> str:
        return stats_topic(self.panel_id)

    @property
    def idle(self) -> bool:
        """No refresh running or queued, and nobody subscribed to the topic."""
        if self._pending or (self._inflight is not None and not self._inflight.done()):
            return False
        return self.channel.subscribers(self.topic) == 0

    async def refresh(self, request: StatsRequest) -> Optional[StatsResult]:
        """
        Compute and apply `request`.

        Returns the applied result, or None when a newer request superseded
        this one while it was in flight. Errors of a superseded request are
        dropped along with it.
        """
        ticket = self.gate.issue(request.key)
        self._pending += 1
        try:
            result = await self.service.get_stats(request)
        except RechargePanelError as exc:
            if not self.gate.is_current(ticket):
                logger.debug(
                    "stats_stale_error_dropped", panel_id=self.panel_id, key=ticket.key, error=str(exc)
                )
                return None
            raise
        finally:
            self._pending -= 1

        try:
            self.gate.check(ticket)
        except StaleRequestDiscarded as exc:
            logger.debug("stats_stale_result_dropped", panel_id=self.panel_id, reason=str(exc))
            return None

        self._visible = result
        self.channel.publish(self.topic, result)
        logger.debug(
            "stats_panel_updated",
            panel_id=self.panel_id,
            key=ticket.key,
            source=result.source,
            degraded=result.degraded,
        )
        return result

    def submit(self, request: StatsRequest) -> asyncio.Task:
        """Start a refresh in the background, cancelling the previous one."""
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
        task = asyncio.ensure_future(self.refresh(request))
        task.add_done_callback(self._log_failure)
        self._inflight = task
        return task

    def _log_failure(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("stats_panel_refresh_failed", panel_id=self.panel_id, error=str(exc))
