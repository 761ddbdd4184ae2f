"""Main FastAPI application hosting the monitoring core."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from .config import settings
from .database import async_session, check_db, close_db, init_db
from .routers import monitoring_router
from .services.core import MonitoringCore
from .utils.time_utils import isoformat_z, utcnow

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    logger.info("Starting Status Monitor")

    await init_db()
    logger.info("Database initialized")

    core = MonitoringCore.from_session_factory(async_session, settings)
    app.state.core = core
    await core.start()
    logger.info("Monitoring core started")

    yield

    await core.stop()
    app.state.core = None
    await close_db()
    logger.info("Shutdown complete")


def create_app(use_lifespan: bool = True) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Status Monitor",
        description="Endpoint probing, incident tracking and uptime reporting",
        version="1.0.0",
        lifespan=lifespan if use_lifespan else None,
    )

    app.include_router(monitoring_router)

    @app.get("/health")
    async def health_check():
        timestamp = isoformat_z(utcnow())
        try:
            await check_db()
        except Exception as e:
            return JSONResponse(
                status_code=500,
                content={
                    "status": "unhealthy",
                    "timestamp": timestamp,
                    "database": "disconnected",
                    "error": str(e),
                },
            )
        return {"status": "healthy", "timestamp": timestamp, "database": "connected"}

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.web_port)
