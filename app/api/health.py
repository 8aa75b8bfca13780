"""Liveness and readiness probes.

/health answers "is the process up" and reports the state of the optional
backing services; it returns 200 even when degraded so an orchestrator
does not restart the container over a cache outage.  /ready answers
"can this instance take traffic"; the marketplace store lives in process,
so readiness only depends on the process responding.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response
from fastapi.concurrency import run_in_threadpool
from redis.exceptions import RedisError

from app.db.engine import engine
from app.db.redis import redis_pool
from app.repos.unit_of_work import unit_of_work

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _list_courses() -> list:
    with unit_of_work.reading():
        return unit_of_work.courses.list_all()


@router.get("/health")
async def health() -> dict:
    checks: dict[str, str] = {}
    overall = "ok"

    if redis_pool is not None:
        try:
            await redis_pool.ping()  # type: ignore[misc]
            checks["redis"] = "ok"
        except (RedisError, OSError):
            logger.warning("Redis health check failed", exc_info=True)
            checks["redis"] = "degraded"
            overall = "degraded"
    else:
        checks["redis"] = "not_configured"

    checks["database"] = "configured" if engine is not None else "not_configured"

    courses = len(await run_in_threadpool(_list_courses))

    return {"status": overall, "checks": checks, "store": {"courses": courses}}


@router.get("/ready")
async def ready() -> Response:
    return Response(status_code=200)
