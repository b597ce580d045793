"""
Bike Shop ERP Backend
FastAPI application entry point

- Stock alert API (/api/alerts), stock movement API (/api/products-stock)
  and movement audit queries (/api/inventory-movements)
- Alert scheduler started and stopped with the application lifespan
- Health endpoint with DB ping and scheduler heartbeats
- Domain error mapping and error sanitization middleware
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from bikeshop_backend import __version__
from bikeshop_backend.api.routes import alerts, movements, stock
from bikeshop_backend.core.config import settings
from bikeshop_backend.core.database import AsyncSessionLocal
from bikeshop_backend.core.error_handler import register_error_handlers
from bikeshop_backend.core.utils import utcnow
from bikeshop_backend.jobs.alert_scheduler import alert_scheduler, heartbeats

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the alert scheduler on startup and stop it on shutdown."""
    if settings.ALERT_CHECK_ENABLED:
        await alert_scheduler.start()
        logger.info("Alert scheduler ENABLED")
    else:
        logger.info("Alert scheduler DISABLED via config")

    yield

    await alert_scheduler.stop()


app = FastAPI(
    title=settings.APP_NAME,
    description="Stock alerting and stock movement backend",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(alerts.router, prefix="/api")
app.include_router(stock.router, prefix="/api")
app.include_router(movements.router, prefix="/api")


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": __version__,
        "status": "operational",
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check with an actual DB ping and the scheduler heartbeats.
    Returns 503 if the database is unreachable.
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "scheduler": {
            "running": alert_scheduler.is_running,
            "jobs": heartbeats,
        },
        "timestamp": utcnow().isoformat(),
    }

    try:
        async with AsyncSessionLocal() as db:
            await db.execute(text("SELECT 1"))
        health_status["database"] = "connected"
    except Exception as e:
        logger.error(f"Health check DB ping failed: {type(e).__name__}: {e}")
        health_status["database"] = f"error: {type(e).__name__}"
        health_status["status"] = "unhealthy"
        return JSONResponse(status_code=503, content=health_status)

    return health_status


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "bikeshop_backend.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
