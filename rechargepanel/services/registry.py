"""
Service Registry — process-wide service instances.

The ledger adapter holds the privileged store credentials, so it is built
once here from configuration and shared by everything that reads the ledger.

Usage:
    from rechargepanel.services.registry import get_services
    services = get_services()
    result = await services.stats_service.get_stats(request)
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rechargepanel.config import Settings, settings
from rechargepanel.errors import ConfigurationError

logger = structlog.get_logger(__name__)


def build_ledger_adapter(
    config: Settings,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
):
    """Select the ledger backend named by LEDGER_BACKEND."""
    if config.ledger_backend == "rest":
        from rechargepanel.services.rest_ledger import RestLedgerAdapter

        if not config.ledger_rest_url:
            raise ConfigurationError("LEDGER_REST_URL is required for the rest ledger backend")
        if not config.ledger_service_key.get_secret_value():
            raise ConfigurationError("LEDGER_SERVICE_KEY is required for the rest ledger backend")
        logger.info("ledger_adapter_built", backend="rest", url=config.ledger_rest_url)
        return RestLedgerAdapter(
            config.ledger_rest_url,
            config.ledger_service_key,
            timeout_seconds=config.ledger_timeout_seconds,
        )

    from rechargepanel.db.engine import get_session_factory
    from rechargepanel.services.ledger import SqlLedgerAdapter

    logger.info("ledger_adapter_built", backend="sql")
    return SqlLedgerAdapter(
        session_factory or get_session_factory(),
        timeout_seconds=config.ledger_timeout_seconds,
    )


@dataclass
class ServiceRegistry:
    """
    Lazily-built singletons for the application lifecycle.

    Pass `ledger` to use a specific adapter (tests do). Panels are kept
    most-recently-used last; once there are more than `max_panels`, idle
    ones are evicted oldest first.
    """

    ledger: Optional[object] = None
    _stats_service: Optional[object] = field(default=None, repr=False)
    _channel: Optional[object] = field(default=None, repr=False)
    max_panels: Optional[int] = None
    _panels: OrderedDict = field(default_factory=OrderedDict, repr=False)

    def __post_init__(self):
        if self.ledger is None:
            self.ledger = build_ledger_adapter(settings)
        if self.max_panels is None:
            self.max_panels = settings.stats_max_panels

    @property
    def stats_service(self):
        if self._stats_service is None:
            from rechargepanel.services.stats_service import StatsService
            self._stats_service = StatsService(self.ledger)
            logger.debug("service_initialized", service="StatsService")
        return self._stats_service

    @property
    def channel(self):
        if self._channel is None:
            from rechargepanel.services.event_channel import EventChannel
            self._channel = EventChannel()
            logger.debug("service_initialized", service="EventChannel")
        return self._channel

    def panel(self, panel_id: str):
        """The panel for `panel_id`, created on first use."""
        existing = self._panels.get(panel_id)
        if existing is not None:
            self._panels.move_to_end(panel_id)
            return existing

        from rechargepanel.services.stats_panel import StatsPanel
        created = StatsPanel(panel_id, self.stats_service, self.channel)
        self._panels[panel_id] = created
        logger.debug("panel_created", panel_id=panel_id)
        self._evict_idle_panels()
        return created

    def _evict_idle_panels(self) -> None:
        excess = len(self._panels) - self.max_panels
        if excess <= 0:
            return
        # The newest panel was just handed out; never evict it
        candidates = list(self._panels.items())[:-1]
        for panel_id, candidate in candidates:
            if excess == 0:
                break
            if candidate.idle:
                del self._panels[panel_id]
                excess -= 1
                logger.debug("panel_evicted", panel_id=panel_id)
        if excess:
            logger.warning("panel_limit_exceeded", panels=len(self._panels), limit=self.max_panels)

    @property
    def panel_count(self) -> int:
        return len(self._panels)

    async def close(self) -> None:
        await self.ledger.close()


# ── Singleton ─────────────────────────────────────────────────────────

_registry: Optional[ServiceRegistry] = None


def get_services() -> ServiceRegistry:
    """Get the global service registry (singleton)."""
    global _registry
    if _registry is None:
        _registry = ServiceRegistry()
        logger.info("service_registry_created")
    return _registry


def set_services(registry: ServiceRegistry) -> None:
    """Install a pre-built registry (app startup and tests)."""
    global _registry
    _registry = registry


def reset_services() -> None:
    """Reset the registry (for testing)."""
    global _registry
    _registry = None
