"""
Periodic trigger surface.

One entry point, selected by operation name, shared by the HTTP cron
endpoint, the Celery beat tasks and the command-line runner.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from proactive_calls import metrics
from proactive_calls.call_gateway import OutboundCallGateway
from proactive_calls.clock import ensure_aware
from proactive_calls.config import Config
from proactive_calls.db_models import CallType
from proactive_calls.dispatch import DispatchEngine
from proactive_calls.logging_config import get_logger, operation_context
from proactive_calls.notifications import StaffNotifier
from proactive_calls.pms_client import PMSClient
from proactive_calls.pms_sync import PMSReconciler
from proactive_calls.scheduling import SchedulingEngine
from proactive_calls.wakeup import WakeUpDispatcher

logger = get_logger(__name__)

MILESTONE_OPERATIONS = {
    "pre-arrival": CallType.PRE_ARRIVAL,
    "mid-stay": CallType.MID_STAY,
    "pre-checkout": CallType.PRE_CHECKOUT,
    "post-stay": CallType.POST_STAY,
}

OPERATIONS = ("schedule", "process", "wakeup", "sync") + tuple(MILESTONE_OPERATIONS)


class UnknownOperationError(ValueError):
    """Raised for an operation selector that is not in OPERATIONS."""


class UnknownCallTypeError(ValueError):
    """Raised for a call-type filter that is not a CallType."""


def parse_call_type(value: Optional[str]) -> Optional[CallType]:
    """Accept ``PRE_ARRIVAL``, ``pre_arrival`` or ``pre-arrival``."""
    if not value:
        return None
    try:
        return CallType(value.strip().lower().replace("-", "_"))
    except ValueError:
        raise UnknownCallTypeError(f"Invalid call type: {value}") from None


@dataclass
class Runtime:
    """The engines wired together from one configuration."""
    config: Config
    scheduler: SchedulingEngine
    dispatcher: DispatchEngine
    wake_up: WakeUpDispatcher
    reconciler: PMSReconciler


def build_runtime(cfg: Config, gateway: Optional[OutboundCallGateway] = None,
                  notifier: Optional[StaffNotifier] = None,
                  pms_client: Optional[PMSClient] = None) -> Runtime:
    gateway = gateway or OutboundCallGateway(cfg)
    notifier = notifier or StaffNotifier(cfg)
    pms_client = pms_client or PMSClient(cfg)
    return Runtime(
        config=cfg,
        scheduler=SchedulingEngine(cfg),
        dispatcher=DispatchEngine(cfg, gateway, notifier),
        wake_up=WakeUpDispatcher(cfg, gateway, notifier),
        reconciler=PMSReconciler(cfg, pms_client),
    )


def run_operation(operation: str, db: Session, runtime: Runtime, call_type: Optional[str] = None,
                  now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Run one trigger operation and return a JSON-serializable summary.

    Raises:
        UnknownOperationError / UnknownCallTypeError for bad selectors,
        before anything is touched.
    """
    if operation not in OPERATIONS:
        raise UnknownOperationError(f"Invalid type: {operation}")
    filter_type = parse_call_type(call_type) if operation == "process" else None

    now = ensure_aware(now)
    with operation_context(operation=operation, call_type=filter_type.value if filter_type else None):
        result = _run(operation, db, runtime, filter_type, now)

    return {
        "success": True,
        "type": operation,
        **result,
        "timestamp": now.isoformat(),
    }


def _run(operation: str, db: Session, runtime: Runtime, filter_type: Optional[CallType],
         now: datetime) -> Dict[str, Any]:
    logger.info("cron_job_started", timestamp=now.isoformat())

    try:
        if operation == "schedule":
            result: Dict[str, Any] = {"scheduled": runtime.scheduler.schedule_all(db, now)}
        elif operation == "process":
            result = {"processed": runtime.dispatcher.process_scheduled_calls(db, filter_type, now)}
        elif operation == "wakeup":
            result = {"wakeUpCalls": runtime.wake_up.process_wake_up_calls(db, now)}
        elif operation == "sync":
            result = {"pmsSync": runtime.reconciler.sync(db, now).model_dump()}
        else:
            milestone = MILESTONE_OPERATIONS[operation]
            result = {
                "scheduled": runtime.scheduler.schedule_milestone(db, milestone, now),
                "processed": runtime.dispatcher.process_scheduled_calls(db, milestone, now),
            }
    except Exception:
        metrics.cron_operations.labels(operation=operation, status="error").inc()
        raise

    metrics.cron_operations.labels(operation=operation, status="success").inc()
    logger.info("cron_job_completed", **result)
    return result
