"""
MemoTap Backend — Health Check Route
======================================

What:  Health endpoint for monitoring and load balancer checks.
How:   Runs SELECT 1 against the database and reads the Gemini key pool.
       With ?deep=true it also asks Gemini whether the current key works.
Who:   Docker health checks, load balancers, operators.

Status levels:
    - healthy:   database reachable, at least one Gemini key available (200)
    - degraded:  database reachable, but no Gemini key available or the deep
                 check found Gemini unreachable (200); every
                 POST /api/recordings/process will answer 503 until keys
                 are replaced and the process restarted
    - unhealthy: database unreachable (503)

Without ?deep the key pool is read from memory only and no Gemini call is
made. The deep check lists models, which costs no generation quota.
"""

import logging
import time
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy import text

from app import __version__
from app.database import engine
from app.dependencies import get_key_pool, get_optional_pipeline
from app.schemas.common import HealthResponse
from app.services.extraction_service import ExtractionPipeline
from app.services.key_pool import CredentialPool

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


async def check_database() -> bool:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning("Health check: database unreachable: %s", str(e))
        return False


async def check_gemini(pipeline: Optional[ExtractionPipeline]) -> str:
    if pipeline is None:
        return "unavailable"
    try:
        return "available" if await pipeline.check_provider() else "unavailable"
    except Exception as e:
        logger.warning("Health check: Gemini unreachable: %s", str(e))
        return "unavailable"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description=(
        "Database connectivity plus a snapshot of the Gemini API key pool. "
        "deep=true also verifies Gemini with the current key."
    ),
)
async def health_check(
    deep: bool = Query(default=False, description="Also call Gemini with the current key"),
    key_pool: CredentialPool = Depends(get_key_pool),
    pipeline: Optional[ExtractionPipeline] = Depends(get_optional_pipeline),
):
    database_ok = await check_database()
    pool_status = key_pool.status()
    gemini_status = await check_gemini(pipeline) if deep else "not_checked"

    if not database_ok:
        overall = "unhealthy"
    elif pool_status.available == 0 or gemini_status == "unavailable":
        overall = "degraded"
    else:
        overall = "healthy"

    body = HealthResponse(
        status=overall,
        version=__version__,
        database="connected" if database_ok else "disconnected",
        gemini=gemini_status,
        key_pool=pool_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    if overall == "unhealthy":
        return JSONResponse(status_code=503, content=body.model_dump(mode="json"))
    return body
