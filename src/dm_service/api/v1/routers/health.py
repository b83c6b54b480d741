from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from dm_service.api.deps import RealtimeDep
from dm_service.infrastructure.db import session as db_session

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz(realtime: RealtimeDep) -> dict[str, str | int]:
    return {"status": "ok", "connections": len(realtime.registry)}


@router.get("/readyz")
async def readyz() -> JSONResponse:
    try:
        await db_session.ping()
    except Exception as exc:  # noqa: BLE001
        logger.warning("Readiness check failed: %s", exc)
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "errors": [f"postgres: {exc}"]},
        )
    return JSONResponse(content={"status": "ready"})
