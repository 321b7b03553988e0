"""
Health checks.

- liveness: the process answers (no dependency checks)
- readiness: the database accepts a trivial query
"""
from typing import Any

from sqlalchemy import text

from channel_feed.core.logging import get_logger
from channel_feed.db.database import AsyncSessionLocal

logger = get_logger(__name__)

_STATUS_HEALTHY = "healthy"
_STATUS_DEGRADED = "degraded"

_CHECK_OK = "ok"
# no infrastructure details in the public response
_ERROR_DB = "error: db_unavailable"


async def _check_db() -> str:
    """SELECT 1 against the configured database."""
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
        return _CHECK_OK
    except Exception as e:
        logger.warning("Database health check failed", extra_data={"error": str(e)})
        return _ERROR_DB


async def check_readiness() -> dict[str, Any]:
    """Readiness report: ``status`` is healthy only when every check is ok."""
    db_status = await _check_db()
    status = _STATUS_HEALTHY if db_status == _CHECK_OK else _STATUS_DEGRADED
    return {"status": status, "db": db_status}
