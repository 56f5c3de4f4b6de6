"""
Health check routes.

/health is a liveness probe for load balancers and never touches the
database. /health/deep checks that a database connection can be opened
within 3 seconds and that SELECT 1 answers within 2 seconds, each phase
timed independently.
"""

import asyncio
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from student_records.database import get_engine
from student_records.logging_config import get_logger, log_with_context

router = APIRouter()
logger = get_logger("health")

CONNECT_TIMEOUT_SECONDS = 3.0
QUERY_TIMEOUT_SECONDS = 2.0

_started_at = time.monotonic()

# Probe steps run on their own executor, separate from the request threadpool.
_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="health-probe")


def _status_body(status: str) -> dict:
    return {
        "status": status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - _started_at, 3),
    }


def _open_connection():
    return get_engine().connect()


def _ping(connection) -> None:
    try:
        connection.execute(text("SELECT 1"))
    finally:
        connection.close()


def _close_when_done(future) -> None:
    if not future.cancelled() and future.exception() is None:
        future.result().close()


async def _run_with_timeout(func, *args, timeout: float):
    """
    Run a blocking probe step in the probe executor, failing after `timeout`.

    On timeout the worker thread is left to finish on its own; a connection
    it eventually opens is closed immediately.
    """
    future = _executor.submit(func, *args)
    try:
        return await asyncio.wait_for(asyncio.wrap_future(future), timeout=timeout)
    except asyncio.TimeoutError:
        if func is _open_connection:
            future.add_done_callback(_close_when_done)
        raise


@router.get("/health")
def health_check():
    """Liveness probe. Does not check the database."""
    return _status_body("ok")


@router.get("/health/deep")
async def deep_health_check():
    """Readiness probe with a database round trip. 503 when degraded."""
    health = _status_body("ok")
    health["checks"] = {"database": "unknown"}

    phase = "connect"
    try:
        connection = await _run_with_timeout(_open_connection, timeout=CONNECT_TIMEOUT_SECONDS)
        phase = "query"
        await _run_with_timeout(_ping, connection, timeout=QUERY_TIMEOUT_SECONDS)
        health["checks"]["database"] = "ok"
    except asyncio.TimeoutError:
        health["checks"]["database"] = "error"
        health["status"] = "degraded"
        log_with_context(logger, "ERROR", f"Deep health check: database {phase} timed out",
                         extra_data={"phase": phase})
    except Exception as e:
        health["checks"]["database"] = "error"
        health["status"] = "degraded"
        log_with_context(logger, "ERROR", f"Deep health check: database {phase} failed: {e}",
                         extra_data={"phase": phase, "error_type": type(e).__name__})

    status_code = 200 if health["status"] == "ok" else 503
    return JSONResponse(health, status_code=status_code)
