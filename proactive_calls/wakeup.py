"""Wake-up call dispatch.

Guest-requested calls with a narrow firing window, driven by a once-a-minute
sweep instead of the milestone scheduler.
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from proactive_calls import metrics
from proactive_calls.call_gateway import OutboundCallGateway
from proactive_calls.call_scripts import WAKE_UP, build_assistant, get_profile, render_opening_line
from proactive_calls.clock import ensure_aware, hotel_zone, to_db
from proactive_calls.config import Config
from proactive_calls.db_models import DBWakeUpRequest
from proactive_calls.logging_config import get_logger
from proactive_calls.notifications import StaffNotifier
from proactive_calls.services import ReservationService, WakeUpRequestService

logger = get_logger(__name__)

NO_RESERVATION_NOTE = "No checked-in reservation for room"
NO_PHONE_NOTE = "Guest has no phone number on file"
EXPIRED_NOTE = "expired"


class WakeUpDispatcher:
    def __init__(self, cfg: Config, gateway: OutboundCallGateway, notifier: StaffNotifier):
        self.config = cfg
        self.gateway = gateway
        self.notifier = notifier
        self.zone = hotel_zone(cfg.HOTEL_TIMEZONE)

    def process_wake_up_calls(self, db: Session, now: Optional[datetime] = None) -> int:
        """
        Call every pending request that fell due within the firing window.

        Returns:
            Number of wake-up calls completed
        """
        if not self.gateway.is_configured:
            logger.warning("wake_up_skipped", reason="vapi_not_configured")
            return 0

        now = ensure_aware(now)
        window_start = now - timedelta(minutes=self.config.WAKE_UP_WINDOW_MINUTES)

        self.expire_stale(db, to_db(window_start))

        requests = WakeUpRequestService.list_due(
            db, start=to_db(window_start), end=to_db(now), limit=self.config.WAKE_UP_BATCH_SIZE,
        )

        completed = 0
        for request in requests:
            request_id = request.id
            try:
                if self._dispatch_request(db, request, now):
                    completed += 1
            except Exception as e:
                db.rollback()
                logger.exception("wake_up_call_error", wake_up_request_id=request_id)
                try:
                    self._handle_failure(db, request_id, str(e) or e.__class__.__name__)
                except Exception:
                    db.rollback()
                    logger.exception("wake_up_failure_not_recorded", wake_up_request_id=request_id)

        logger.info("wake_up_sweep_completed", due=len(requests), completed=completed)
        return completed

    def expire_stale(self, db: Session, before: datetime) -> int:
        """Fail pending requests that slipped out of the firing window."""
        stale = WakeUpRequestService.list_stale(db, before=before, limit=self.config.WAKE_UP_BATCH_SIZE)
        for request in stale:
            WakeUpRequestService.mark_failed(db, request.id, EXPIRED_NOTE)
            metrics.wake_up_calls.labels(outcome="expired").inc()
            self.notifier.escalate(
                request.room_number,
                "urgent",
                f"Wake-up call for room {request.room_number} was never placed "
                f"(requested {request.requested_time.isoformat()} UTC).",
            )
        return len(stale)

    def _dispatch_request(self, db: Session, request: DBWakeUpRequest, now: datetime) -> bool:
        request_id = request.id
        room_number = request.room_number

        reservation = ReservationService.get_checked_in_for_room(db, room_number)
        if reservation is None:
            WakeUpRequestService.mark_failed(db, request_id, NO_RESERVATION_NOTE)
            metrics.wake_up_calls.labels(outcome="no_reservation").inc()
            return False

        guest = reservation.guest
        if guest is None or not guest.phone:
            WakeUpRequestService.mark_failed(db, request_id, NO_PHONE_NOTE)
            metrics.wake_up_calls.labels(outcome="invalid").inc()
            return False

        profile = get_profile(WAKE_UP, self.config.HOTEL_NAME)
        first_message = render_opening_line(
            WAKE_UP, self.config.HOTEL_NAME, guest.first_name, local_time=now.astimezone(self.zone),
        )
        assistant = build_assistant(profile, first_message)
        metadata = {
            "wakeUpRequestId": request_id,
            "roomNumber": room_number,
            "guestName": guest.full_name,
        }
        phone = guest.phone

        if not WakeUpRequestService.record_attempt(db, request_id):
            return False

        result = self.gateway.place_call(phone, assistant, metadata)
        if result.success:
            WakeUpRequestService.mark_completed(db, request_id, to_db(now))
            metrics.wake_up_calls.labels(outcome="completed").inc()
            return True

        self._handle_failure(db, request_id, result.error or "Call failed")
        return False

    def _handle_failure(self, db: Session, request_id: int, error: str) -> None:
        """Fail the request once attempts are used up; otherwise leave it for the next sweep."""
        request = WakeUpRequestService.get_request(db, request_id)
        if request is None:
            return

        if request.attempts >= self.config.WAKE_UP_MAX_ATTEMPTS:
            WakeUpRequestService.mark_failed(db, request_id, error)
            metrics.wake_up_calls.labels(outcome="failed").inc()
            self.notifier.escalate(
                request.room_number,
                "urgent",
                f"Wake-up call for room {request.room_number} failed after {request.attempts} attempts: {error}",
            )
            return

        WakeUpRequestService.record_error(db, request_id, error)
        metrics.wake_up_calls.labels(outcome="retry").inc()
