"""
Read API for the dApp leaderboard, with database pool lifecycle management.

The indexer worker owns the rankings; this app only reads the persisted
replica.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from dapp_ranker.config import load_settings
from dapp_ranker.db.pool import DatabasePoolManager
from dapp_ranker.infrastructure.observability.logging import get_logger, setup_logging
from dapp_ranker.routes import health, rankings

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown with proper resource management."""
    settings = load_settings()
    setup_logging(log_level=settings.LOG_LEVEL)
    app.state.settings = settings

    logger.info("Application starting", environment=settings.environment)

    pool = DatabasePoolManager(settings)
    try:
        await pool.initialize()
    except Exception as e:
        logger.error("Failed to initialize services", error=str(e))
        raise
    app.state.db_pool = pool

    yield

    logger.info("Application shutting down")
    try:
        await pool.close()
    except Exception as e:
        logger.error("Error closing database pool", error=str(e))


app = FastAPI(
    title="dApp Ranker",
    description="Sui dApp leaderboard by unique active accounts",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(rankings.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    logger.info(
        "HTTP request completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(process_time, 2),
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
