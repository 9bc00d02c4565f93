from fastapi import APIRouter

from proactive_calls import __version__
from proactive_calls.config import config

router = APIRouter(tags=["Core"])


# GET /
# Gets: nothing
# Returns: basic API metadata and a map of key endpoints
# Example:
#   curl http://localhost:8000/
@router.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": f"Proactive guest call engine - {config.HOTEL_NAME}",
        "version": __version__,
        "description": "Schedules and places outbound guest-journey calls (pre-arrival, mid-stay, pre-checkout, post-stay, wake-up)",
        "endpoints": {
            "cron": "/cron/proactive-calls?type=schedule|process|wakeup|sync|pre-arrival|mid-stay|pre-checkout|post-stay",
            "health": "/health",
            "ready": "/health/ready",
            "info": "/health/info",
            "metrics": "/metrics",
        },
    }
