from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from app.core.settings import settings

logger = logging.getLogger(__name__)

APP_VERSION = "0.1.0"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


async def _check_db(engine: AsyncEngine | None) -> dict[str, str]:
    if engine is None:
        return {"status": "error", "error": "database engine not initialised"}
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("Database readiness check failed: %s", exc)
        return {"status": "error", "error": str(exc)}
    return {"status": "ok"}


async def live_payload() -> dict[str, str]:
    return {"status": "ok", "timestamp": _timestamp()}


async def ready_payload(engine: AsyncEngine | None) -> dict[str, Any]:
    checks = {
        "api": {"status": "ok", "version": APP_VERSION},
        "database": await _check_db(engine),
    }
    ready = all(check.get("status") == "ok" for check in checks.values())
    return {
        "status": "ok" if ready else "degraded",
        "ready": ready,
        "environment": settings.environment,
        "timestamp": _timestamp(),
        "checks": checks,
    }
