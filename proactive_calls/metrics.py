"""Prometheus metrics for the proactive call engine."""

from prometheus_client import Counter

calls_scheduled = Counter(
    "proactive_calls_scheduled_total", "Scheduled proactive calls created", ["call_type"]
)
calls_placed = Counter(
    "proactive_calls_placed_total", "Proactive calls accepted by the voice platform", ["call_type"]
)
call_failures = Counter(
    "proactive_call_failures_total", "Failed proactive call attempts", ["call_type", "outcome"]
)
wake_up_calls = Counter(
    "wake_up_calls_total", "Wake-up call outcomes", ["outcome"]
)
pms_sync_reservations = Counter(
    "pms_sync_reservations_total", "Reservations processed by PMS reconciliation", ["outcome"]
)
cron_operations = Counter(
    "cron_operations_total", "Trigger invocations", ["operation", "status"]
)
