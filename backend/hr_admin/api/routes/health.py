"""
Health check route. Bypasses authentication.
"""

import logging

from fastapi import APIRouter, Request
from sqlalchemy import text

from hr_admin import __version__
from hr_admin.database.session import get_session_factory

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request):
    """Liveness plus a best-effort database check."""
    database = "not_configured"
    if getattr(request.app.state, "database_configured", True):
        try:
            session = get_session_factory()()
            try:
                session.execute(text("SELECT 1"))
                database = "ok"
            finally:
                session.close()
        except Exception as e:
            logger.warning("Health check database query failed", extra={"error": str(e)})
            database = "unavailable"
    return {"status": "ok", "version": __version__, "database": database}
