"""
FastAPI dependencies for API routes.

- get_db: one session per request, committed on success, rolled back on error
- require_admin: X-Admin-Key must match ADMIN_API_KEY
- get_registry: the process-wide service registry
"""

import hmac
from typing import AsyncGenerator, Optional

from fastapi import Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from rechargepanel.config import settings
from rechargepanel.db.engine import get_session_factory
from rechargepanel.services.registry import ServiceRegistry, get_services


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def require_admin(x_admin_key: Optional[str] = Header(default=None)) -> None:
    """Reject requests without the configured admin key. No key configured → nothing passes."""
    expected = settings.admin_api_key.get_secret_value()
    if not expected or not x_admin_key or not hmac.compare_digest(x_admin_key, expected):
        raise HTTPException(status_code=401, detail="Invalid or missing admin key")


def get_registry() -> ServiceRegistry:
    return get_services()
