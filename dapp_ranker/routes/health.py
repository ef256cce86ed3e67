"""
Health check endpoints with database pool monitoring.
"""

import time

from fastapi import APIRouter, Depends, Request

from dapp_ranker.db.pool import DatabasePoolManager
from dapp_ranker.infrastructure.observability.logging import log_health_check
from dapp_ranker.routes.dependencies import get_db_pool

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "dapp-ranker"}


@router.get("/readyz")
async def readyz(request: Request, pool: DatabasePoolManager | None = Depends(get_db_pool)):
    """
    Readiness check: database pool and configuration.
    """
    checks = {}
    overall_ok = True

    # 1) Database pool health check
    t0 = time.time()
    if pool is None:
        checks["database"] = {"ok": False, "error": "Database pool not configured"}
        overall_ok = False
    else:
        try:
            db_health = await pool.health_check()
            is_healthy = bool(db_health.get("healthy", False))
            latency_ms = round((time.time() - t0) * 1000, 1)

            checks["database"] = {"ok": is_healthy, "latency_ms": latency_ms}

            if "pool_stats" in db_health:
                pool_stats = db_health["pool_stats"]
                checks["database"].update(
                    {
                        "pool_size": pool_stats.get("pool_size", 0),
                        "pool_available": pool_stats.get("pool_available", 0),
                        "connection_time_ms": db_health.get("connection_time_ms", 0),
                    }
                )
            if "warnings" in db_health:
                checks["database"]["warnings"] = db_health["warnings"]
            if not is_healthy:
                checks["database"]["error"] = db_health.get("error", "Database unhealthy")

            overall_ok = overall_ok and is_healthy
            log_health_check("database", is_healthy, latency_ms, db_health.get("error"))

        except Exception as e:
            checks["database"] = {
                "ok": False,
                "error": f"{type(e).__name__}: {e}",
                "latency_ms": round((time.time() - t0) * 1000, 1),
            }
            overall_ok = False

    # 2) Configuration checks
    settings = getattr(request.app.state, "settings", None)
    config_issues = []
    if settings is None:
        config_issues.append("Settings not loaded")
    elif not settings.USE_DATABASE:
        config_issues.append("USE_DATABASE disabled")

    checks["configuration"] = {
        "ok": not config_issues,
        "issues": config_issues or None,
        "environment": settings.environment if settings else None,
    }
    overall_ok = overall_ok and not config_issues

    return {"overall_ok": overall_ok, "checks": checks, "timestamp": time.time()}
