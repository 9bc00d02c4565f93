"""
Health check and monitoring endpoints for production.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from proactive_calls import __version__
from proactive_calls.config import config
from proactive_calls.database import get_db
from proactive_calls.logging_config import logger

router = APIRouter(tags=["Health & Monitoring"])


# GET /health
# Gets: nothing
# Returns: {status, service, version}
# Example:
#   curl http://localhost:8000/health
@router.get("/health")
async def health_check():
    """
    Basic health check - returns 200 if service is running.
    Use this for basic liveness probes.
    """
    return {
        "status": "healthy",
        "service": "proactive-calls",
        "version": __version__,
    }


# GET /health/ready
# Gets: nothing
# Returns: dependency readiness checks; 503 when the database is unreachable
# Example:
#   curl http://localhost:8000/health/ready
@router.get("/health/ready")
def readiness_check(db: Session = Depends(get_db)):
    """
    Readiness check - verifies the call record store is reachable.
    Use this for Kubernetes readiness probes.

    Voice platform, PMS and Slack are reported but optional: an operation
    whose integration is missing simply does nothing.
    """
    checks = {
        "database": False,
        "vapi": config.has_vapi_config() or "not_configured",
        "pms": config.has_pms_config() or "not_configured",
        "slack": config.has_slack_config() or "not_configured",
        "ready": False,
    }

    try:
        db.execute(text("SELECT 1"))
        checks["database"] = True
        logger.debug("readiness_check_database", status="ok")
    except Exception as e:
        logger.warning("readiness_check_database", status="error", error=str(e))

    checks["ready"] = checks["database"] is True

    return JSONResponse(status_code=200 if checks["ready"] else 503, content=checks)


# GET /health/info
# Gets: nothing
# Returns: service configuration summary
# Example:
#   curl http://localhost:8000/health/info
@router.get("/health/info")
async def system_info():
    """
    System information and configuration status.
    """
    return {
        "service": "proactive-calls",
        "version": __version__,
        "configuration": {
            "hotel_name": config.HOTEL_NAME,
            "hotel_timezone": config.HOTEL_TIMEZONE,
            "dispatch_batch_size": config.DISPATCH_BATCH_SIZE,
            "dispatch_attempt_ceiling": config.DISPATCH_ATTEMPT_CEILING,
            "retry_backoff_minutes": config.RETRY_BACKOFF_MINUTES,
            "debug_mode": config.DEBUG,
        },
        "features": {
            "outbound_calls": config.has_vapi_config(),
            "pms_sync": config.has_pms_config(),
            "staff_notifications": config.has_slack_config(),
            "cron_auth": bool(config.CRON_SECRET),
        },
    }
