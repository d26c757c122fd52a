"""
Health endpoint with store statistics.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

import thoughtchain.config as config
from thoughtchain.db import DB, _get_schema_revisions
from thoughtchain.errors import StorageError
from thoughtchain.mcp import get_runtime


router = APIRouter()


def _check_db_health() -> dict:
    if DB.engine is None:
        return {"ok": False, "error": "db_not_initialized"}

    try:
        with DB.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        config.logger.warning("health_db_unreachable", extra={"error": str(exc)})
        return {"ok": False, "error": "db_unreachable"}

    current_rev, head_rev = _get_schema_revisions(DB.engine)
    schema_ok = head_rev is None or current_rev == head_rev
    return {
        "ok": schema_ok,
        "schema_revision": current_rev,
        "schema_expected": head_rev,
        "schema_up_to_date": schema_ok,
    }


@router.get("/health")
def health():
    """Health check endpoint; runs in the threadpool and waits for any in-flight tool call."""
    runtime = get_runtime()
    with runtime.lock:
        db_health = _check_db_health()
        if not db_health.get("ok"):
            raise HTTPException(status_code=503, detail={"database": db_health})

        try:
            stats = runtime.controller.stats()
        except StorageError as exc:
            raise HTTPException(status_code=503, detail={"database": {"ok": False, "error": str(exc)}})
        current_chain = runtime.session.current.id

    return {
        "status": "healthy",
        "service": config.SERVER_NAME,
        "version": config.SERVER_VERSION,
        "database": db_health,
        "stats": stats.to_dict(),
        "current_chain": current_chain,
    }
