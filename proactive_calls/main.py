"""Main FastAPI application."""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.responses import Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from proactive_calls import __version__
from proactive_calls.config import config
from proactive_calls.database import init_db
from proactive_calls.health import router as health_router
from proactive_calls.logging_config import logger
from proactive_calls.routers.core import router as core_router
from proactive_calls.routers.cron import router as cron_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    # Startup
    logger.info("application_starting", version=__version__)
    init_db()  # Initialize database
    logger.info("database_initialized")
    logger.info("vapi_configured", configured=config.has_vapi_config())
    logger.info("pms_configured", configured=config.has_pms_config())
    logger.info("slack_configured", configured=config.has_slack_config())

    yield

    # Shutdown
    logger.info("application_shutting_down")


app = FastAPI(
    title="Proactive Guest Call Engine",
    description="Outbound guest-journey calls for hotel voice AI",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(core_router)
app.include_router(health_router)
app.include_router(cron_router)


# GET /metrics
# Gets: nothing
# Returns: Prometheus text exposition
# Example:
#   curl http://localhost:8000/metrics
@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("proactive_calls.main:app", host="0.0.0.0", port=8000, reload=config.DEBUG)
