"""
RechargePanel — FastAPI Application.

Run: uvicorn rechargepanel.main:app --host 0.0.0.0 --port 8001 --reload

  - /api/v1/stats/*           statistics (snapshot, agents, overview, totals, panels)
  - /api/v1/business-types    catalogue: business types
  - /api/v1/products          catalogue: recharge products
  - /api/v1/orders            order ledger
  - /api/v1/users             user accounts and wallets
  - /api/v1/agents            recharge agents
  - /health                   liveness check (no auth)
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rechargepanel.api.routers.agents import router as agents_router
from rechargepanel.api.routers.business_types import router as business_types_router
from rechargepanel.api.routers.orders import router as orders_router
from rechargepanel.api.routers.products import router as products_router
from rechargepanel.api.routers.stats import router as stats_router
from rechargepanel.api.routers.users import router as users_router
from rechargepanel.config import settings
from rechargepanel.db.engine import close_db, init_db
from rechargepanel.log import configure_logging
from rechargepanel.middleware.error_handler import (
    ErrorHandlerMiddleware,
    register_exception_handlers,
)
from rechargepanel.middleware.request_context import RequestContextMiddleware
from rechargepanel.services.registry import get_services, reset_services

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup builds the ledger adapter once; shutdown releases it."""
    configure_logging()
    logger.info("rechargepanel_starting", version=settings.app_version, env=settings.environment)
    if not settings.admin_api_key.get_secret_value():
        logger.warning("admin_api_key_not_set", msg="All /api/v1 routes will reject requests")
    await init_db()
    services = get_services()
    yield
    await services.close()
    reset_services()
    await close_db()
    logger.info("rechargepanel_shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="Phone top-up back office: ledger statistics and admin CRUD.",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_tags=[
            {"name": "health", "description": "Liveness check"},
            {"name": "stats", "description": "Ledger statistics, live or fallback"},
            {"name": "business-types", "description": "Business type CRUD"},
            {"name": "products", "description": "Recharge product CRUD"},
            {"name": "orders", "description": "Orders and status changes"},
            {"name": "users", "description": "User accounts and wallet balances"},
            {"name": "agents", "description": "Recharge agents and commission rates"},
        ],
    )

    # ── Middleware (last added = outermost) ──────────────────────────────
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # ── Routes ───────────────────────────────────────────────────────────
    app.include_router(stats_router)
    app.include_router(business_types_router)
    app.include_router(products_router)
    app.include_router(orders_router)
    app.include_router(users_router)
    app.include_router(agents_router)

    @app.get("/health", tags=["health"])
    async def health():
        """Liveness check. Does not touch the ledger."""
        return {
            "status": "ok",
            "version": settings.app_version,
            "service": "rechargepanel",
            "ledger_backend": settings.ledger_backend,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("rechargepanel.main:app", host=settings.api_host, port=settings.api_port)
