"""
Admin / observability endpoints
===============================

GET /api/v1/admin/health -- liveness: the process is serving
GET /api/v1/admin/ready  -- readiness: database and Redis answer
"""

import logging

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from roboride.api.dependencies import get_db
from roboride.api.schemas import HealthResponse, ReadinessResponse
from roboride.infrastructure.redis_client import get_redis

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    responses={503: {"model": ReadinessResponse}},
)
async def ready(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
):
    database = redis_state = "ok"
    try:
        await db.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Readiness: database check failed")
        database = "unavailable"
    try:
        await redis.ping()
    except Exception:
        logger.exception("Readiness: redis check failed")
        redis_state = "unavailable"

    body = ReadinessResponse(
        status="ok" if database == redis_state == "ok" else "unavailable",
        database=database,
        redis=redis_state,
    )
    if body.status != "ok":
        return JSONResponse(status_code=503, content=body.model_dump())
    return body
