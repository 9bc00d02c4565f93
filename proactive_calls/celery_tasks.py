"""
Periodic job processing with Celery.
Beat fires each proactive-call operation on its own cadence.
"""

from datetime import datetime, timezone
from typing import Optional

from celery import Celery
from celery.schedules import crontab
from celery.signals import worker_init

from proactive_calls.config import config

# Initialize Celery with Redis broker
celery_app = Celery(
    'proactive_calls',
    broker=config.REDIS_URL,
    backend=config.REDIS_URL
)

# Celery configuration
celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone=config.HOTEL_TIMEZONE,  # crontab entries below are hotel-local
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,  # 5 minutes
    worker_prefetch_multiplier=1,
)

celery_app.conf.beat_schedule = {
    # Milestone scheduling once a day, before the earliest (08:00) target time.
    'schedule-proactive-calls': {
        'task': 'run_proactive_operation',
        'schedule': crontab(hour=6, minute=0),
        'args': ('schedule',),
    },
    'process-proactive-calls': {
        'task': 'run_proactive_operation',
        'schedule': crontab(minute='*/15'),
        'args': ('process',),
    },
    'process-wake-up-calls': {
        'task': 'run_proactive_operation',
        'schedule': crontab(),  # every minute
        'args': ('wakeup',),
    },
    'sync-pms': {
        'task': 'run_proactive_operation',
        'schedule': crontab(minute=30),
        'args': ('sync',),
    },
}

_runtime = None


@worker_init.connect
def init_worker_db(**kwargs):
    """Create missing tables before the worker takes its first task."""
    from proactive_calls.database import init_db

    init_db()


def _get_runtime():
    global _runtime
    if _runtime is None:
        from proactive_calls.triggers import build_runtime
        _runtime = build_runtime(config)
    return _runtime


@celery_app.task(name='run_proactive_operation')
def run_proactive_operation_task(operation: str, call_type: Optional[str] = None):
    """
    Background task running one trigger operation.

    Args:
        operation: schedule | process | wakeup | sync | pre-arrival | mid-stay | pre-checkout | post-stay
        call_type: optional call-type filter for ``process``

    Returns:
        dict: the operation summary (always has success, type and timestamp)
    """
    from proactive_calls.database import session_scope
    from proactive_calls.logging_config import logger
    from proactive_calls.triggers import run_operation

    try:
        with session_scope() as db:
            return run_operation(operation, db, _get_runtime(), call_type=call_type)
    except Exception as e:
        logger.exception("cron_job_error", operation=operation)
        return {
            "success": False,
            "type": operation,
            "error": str(e),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
