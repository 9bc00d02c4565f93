"""
Dispatch engine: places due proactive calls and drives their retry state.

State machine per scheduled call:

    scheduled --claim--> in_progress --gateway ok--> (webhook finalizes)
                              |
                              +--gateway error--> scheduled (+backoff)
                                                  or failed (attempts exhausted)

Calls in a batch are handled one at a time; an error on one call is recorded
on that call and never stops the batch. An error raised before the claim still
uses up an attempt, so every call reaches a terminal state.
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from proactive_calls import metrics
from proactive_calls.call_gateway import OutboundCallGateway
from proactive_calls.call_scripts import build_assistant, get_profile, render_opening_line
from proactive_calls.clock import ensure_aware, to_db
from proactive_calls.config import Config
from proactive_calls.db_models import CallType, DBScheduledCall
from proactive_calls.logging_config import get_logger
from proactive_calls.notifications import StaffNotifier
from proactive_calls.services import ScheduledCallService

logger = get_logger(__name__)

NO_PHONE_NOTE = "Guest has no phone number on file"


class DispatchEngine:
    """Pulls due scheduled calls and hands them to the outbound call gateway."""

    def __init__(self, cfg: Config, gateway: OutboundCallGateway, notifier: StaffNotifier):
        self.config = cfg
        self.gateway = gateway
        self.notifier = notifier

    def effective_max_attempts(self, call: DBScheduledCall) -> int:
        """The job's own limit, capped by the global attempt ceiling."""
        ceiling = self.config.DISPATCH_ATTEMPT_CEILING
        return min(call.max_attempts or ceiling, ceiling)

    def process_scheduled_calls(self, db: Session, call_type: Optional[CallType] = None,
                                now: Optional[datetime] = None) -> int:
        """
        Place every due call in one batch.

        Args:
            call_type: restrict the batch to one milestone (manual triggers)
            now: evaluation time, defaults to the current time

        Returns:
            Number of calls the voice platform accepted
        """
        if not self.gateway.is_configured:
            logger.warning("dispatch_skipped", reason="vapi_not_configured")
            return 0

        now = ensure_aware(now)
        calls = ScheduledCallService.list_due(
            db,
            now=to_db(now),
            attempt_ceiling=self.config.DISPATCH_ATTEMPT_CEILING,
            limit=self.config.DISPATCH_BATCH_SIZE,
            call_type=call_type,
        )

        placed = 0
        for call in calls:
            call_id = call.id
            try:
                if self._dispatch_call(db, call, now):
                    placed += 1
            except Exception as e:
                db.rollback()
                logger.exception("proactive_call_error", scheduled_call_id=call_id)
                try:
                    ScheduledCallService.count_unclaimed_attempt(db, call_id, to_db(now))
                    self._handle_failure(db, call_id, str(e) or e.__class__.__name__, now)
                except Exception:
                    db.rollback()
                    logger.exception("proactive_call_failure_not_recorded", scheduled_call_id=call_id)

        logger.info(
            "dispatch_completed",
            call_type=call_type.value if call_type else "all",
            due=len(calls),
            placed=placed,
        )
        return placed

    def _dispatch_call(self, db: Session, call: DBScheduledCall, now: datetime) -> bool:
        call_id = call.id
        call_type = call.call_type
        reservation = call.reservation
        guest = reservation.guest if reservation else None

        if guest is None or not guest.phone:
            ScheduledCallService.mark_failed(db, call_id, NO_PHONE_NOTE)
            metrics.call_failures.labels(call_type=call_type.value, outcome="invalid").inc()
            return False

        profile = get_profile(
            call_type,
            self.config.HOTEL_NAME,
            check_in_time=self.config.HOTEL_CHECK_IN_TIME,
            check_out_time=self.config.HOTEL_CHECK_OUT_TIME,
        )
        first_message = render_opening_line(call_type, self.config.HOTEL_NAME, guest.first_name)
        assistant = build_assistant(profile, first_message)
        metadata = {
            "proactiveCallId": call_id,
            "reservationId": reservation.id,
            "callType": call_type.value,
            "guestName": guest.full_name,
            "roomNumber": reservation.room_number,
        }
        phone = guest.phone

        # Persist the attempt before dialing so a crash leaves the job visibly in progress.
        if not ScheduledCallService.mark_in_progress(db, call_id, to_db(now)):
            logger.info("proactive_call_already_claimed", scheduled_call_id=call_id)
            return False

        result = self.gateway.place_call(phone, assistant, metadata)
        if result.success:
            # Accepted calls stay in progress even if the call id cannot be stored.
            try:
                ScheduledCallService.set_external_call_id(db, call_id, result.call_id)
            except Exception:
                db.rollback()
                logger.exception("proactive_call_id_not_recorded", scheduled_call_id=call_id, call_id=result.call_id)
            metrics.calls_placed.labels(call_type=call_type.value).inc()
            return True

        self._handle_failure(db, call_id, result.error or "Call failed", now)
        return False

    def _handle_failure(self, db: Session, call_id: int, error: str, now: datetime) -> None:
        """Reschedule after the backoff, or fail the call once attempts are used up."""
        call = ScheduledCallService.get_call(db, call_id)
        if call is None:
            return

        if call.attempts >= self.effective_max_attempts(call):
            ScheduledCallService.mark_failed(db, call_id, error)
            metrics.call_failures.labels(call_type=call.call_type.value, outcome="failed").inc()
            self._escalate(call, error)
            return

        retry_at = now + timedelta(minutes=self.config.RETRY_BACKOFF_MINUTES)
        ScheduledCallService.reschedule(db, call_id, to_db(retry_at), error)
        metrics.call_failures.labels(call_type=call.call_type.value, outcome="rescheduled").inc()

    def _escalate(self, call: DBScheduledCall, error: str) -> None:
        reservation = call.reservation
        guest = reservation.guest if reservation else None
        vip = bool(guest and guest.vip_status)
        urgency = "urgent" if (call.urgent or vip) else "normal"
        who = guest.full_name if guest else "guest"
        message = (
            f"{call.call_type.value.replace('_', '-')} call to {who}"
            f"{' (VIP)' if vip else ''} failed after {call.attempts} attempts: {error}"
        )
        self.notifier.escalate(reservation.room_number if reservation else None, urgency, message)
