from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from proactive_calls.config import config
from proactive_calls.database import get_db
from proactive_calls.logging_config import logger
from proactive_calls.security import require_cron_secret
from proactive_calls.triggers import (
    Runtime,
    UnknownCallTypeError,
    UnknownOperationError,
    build_runtime,
    run_operation,
)

router = APIRouter(prefix="/cron", tags=["Cron"])


@lru_cache
def get_runtime() -> Runtime:
    """Engines built once per process from the global config."""
    return build_runtime(config)


# GET|POST /cron/proactive-calls?type=process&call_type=pre_arrival
# Gets: Authorization: Bearer <CRON_SECRET>; query params type (operation) and optional call_type
# Returns: {success, type, ...operation summary, timestamp}
# Example:
#   curl -H "Authorization: Bearer $CRON_SECRET" 'http://localhost:8000/cron/proactive-calls?type=schedule'
@router.api_route("/proactive-calls", methods=["GET", "POST"])
def proactive_calls(
    _: str = Depends(require_cron_secret),
    operation: str = Query("process", alias="type"),
    call_type: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    runtime: Runtime = Depends(get_runtime),
):
    """Run one proactive-call operation (schedule, process, wakeup, sync, or a milestone)."""

    try:
        return run_operation(operation, db, runtime, call_type=call_type)
    except (UnknownOperationError, UnknownCallTypeError) as e:
        return JSONResponse(status_code=400, content={"success": False, "type": operation, "error": str(e)})
    except Exception as e:
        logger.exception("cron_job_error", operation=operation)
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "type": operation,
                "error": str(e) or "Unknown error",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )
