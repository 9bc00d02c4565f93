"""
Staff notifications (Slack incoming webhook) and guest issue escalation.
"""

from typing import Optional

import httpx
from sqlalchemy.orm import Session

from proactive_calls.config import Config
from proactive_calls.logging_config import get_logger
from proactive_calls.services import GuestIssueService

logger = get_logger(__name__)

URGENCY_LEVELS = ("normal", "urgent", "emergency")

_URGENCY_MARKERS = {
    "normal": "📋",
    "urgent": "⚠️",
    "emergency": "🚨",
}

# Issue severity -> staff urgency. Lower severities are stored but not escalated.
_SEVERITY_URGENCY = {
    "high": "urgent",
    "critical": "emergency",
}


def urgency_rank(urgency: str) -> int:
    try:
        return URGENCY_LEVELS.index(urgency)
    except ValueError:
        return 0


class StaffNotifier:
    """Fire-and-forget escalation channel to hotel staff."""

    def __init__(self, cfg: Config, http_client: Optional[httpx.Client] = None):
        self.config = cfg
        self._client = http_client

    def should_notify(self, urgency: str) -> bool:
        """Whether ``urgency`` reaches the configured escalation threshold."""
        return urgency_rank(urgency) >= urgency_rank(self.config.STAFF_NOTIFY_MIN_URGENCY)

    def notify(self, room_number: str, urgency: str, message: str) -> bool:
        """
        Post a message to the staff channel.

        Returns True if Slack accepted it, False if unconfigured or delivery failed.
        """
        if urgency not in URGENCY_LEVELS:
            urgency = "normal"

        if not self.config.has_slack_config():
            logger.info("staff_notification_not_sent", reason="slack_not_configured",
                        room_number=room_number, urgency=urgency, message=message)
            return False

        payload = {
            "text": f"{_URGENCY_MARKERS[urgency]} *{urgency.upper()}* - Room {room_number}\n{message}",
            "channel": "#hotel-emergencies" if urgency == "emergency" else "#hotel-operations",
        }
        try:
            if self._client is not None:
                response = self._client.post(self.config.SLACK_WEBHOOK_URL, json=payload)
            else:
                with httpx.Client(timeout=10.0) as client:
                    response = client.post(self.config.SLACK_WEBHOOK_URL, json=payload)
            response.raise_for_status()
        except Exception as e:
            logger.error("staff_notification_failed", room_number=room_number, urgency=urgency, error=str(e))
            return False

        logger.info("staff_notified", room_number=room_number, urgency=urgency)
        return True

    def escalate(self, room_number: Optional[str], urgency: str, message: str) -> bool:
        """Notify staff only when ``urgency`` crosses the configured threshold."""
        if not self.should_notify(urgency):
            logger.info("staff_escalation_below_threshold", room_number=room_number, urgency=urgency)
            return False
        return self.notify(room_number or "Unknown", urgency, message)


def report_guest_issue(db: Session, notifier: StaffNotifier, category: str, severity: str,
                       description: str, room_number: Optional[str] = None,
                       reservation_id: Optional[int] = None, call_id: Optional[str] = None) -> int:
    """Store a guest issue and page staff for high/critical ones. Returns the issue id."""
    issue = GuestIssueService.create_issue(
        db,
        category=category,
        severity=severity,
        description=description,
        room_number=room_number,
        reservation_id=reservation_id,
        call_id=call_id,
    )

    urgency = _SEVERITY_URGENCY.get(severity.lower())
    if urgency:
        notifier.notify(room_number or "Unknown", urgency, f"{category}: {description}")

    return issue.id
