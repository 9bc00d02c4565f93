"""
Scheduling engine: turns reservations into scheduled proactive calls.

Runs once a day per milestone. Each pass is idempotent: a reservation gets at
most one scheduled call per call type, so re-running a pass with unchanged
data schedules nothing new.
"""

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Dict, Optional, Tuple

from sqlalchemy.orm import Session

from proactive_calls import metrics
from proactive_calls.call_scripts import default_max_attempts
from proactive_calls.clock import ensure_aware, hotel_zone, to_db
from proactive_calls.config import Config
from proactive_calls.db_models import CallType, ReservationStatus
from proactive_calls.logging_config import get_logger
from proactive_calls.services import ReservationService, ScheduledCallService

logger = get_logger(__name__)

# What to do when the day's target time has already passed.
FALLBACK_IN_ONE_HOUR = "in_one_hour"
FALLBACK_NOW_URGENT = "now_urgent"


@dataclass(frozen=True)
class MilestonePolicy:
    """Eligibility window and call time for one milestone.

    Day offsets are relative to today in the hotel timezone; the window is
    [today + window_start_days, today + window_end_days).
    """
    call_type: CallType
    status: ReservationStatus
    date_field: str
    window_start_days: int
    window_end_days: int
    target_hour: int
    fallback: Optional[str]


MILESTONE_POLICIES: Dict[CallType, MilestonePolicy] = {
    CallType.PRE_ARRIVAL: MilestonePolicy(
        CallType.PRE_ARRIVAL, ReservationStatus.CONFIRMED, "check_in_date", 1, 2, 16, FALLBACK_IN_ONE_HOUR,
    ),
    # Guest is on day 2 of the stay.
    CallType.MID_STAY: MilestonePolicy(
        CallType.MID_STAY, ReservationStatus.CHECKED_IN, "check_in_date", -2, -1, 14, FALLBACK_IN_ONE_HOUR,
    ),
    CallType.PRE_CHECKOUT: MilestonePolicy(
        CallType.PRE_CHECKOUT, ReservationStatus.CHECKED_IN, "check_out_date", 0, 1, 8, FALLBACK_NOW_URGENT,
    ),
    CallType.POST_STAY: MilestonePolicy(
        CallType.POST_STAY, ReservationStatus.CHECKED_OUT, "check_out_date", -3, -2, 14, None,
    ),
}


class SchedulingEngine:
    """Creates scheduled calls for each guest-journey milestone."""

    def __init__(self, cfg: Config):
        self.config = cfg
        self.zone = hotel_zone(cfg.HOTEL_TIMEZONE)

    def compute_call_time(self, policy: MilestonePolicy, now: datetime) -> Tuple[datetime, bool]:
        """
        Target call time for today, and whether the call is urgent.

        Returns an aware datetime in the hotel timezone.
        """
        local_now = ensure_aware(now).astimezone(self.zone)
        target = datetime.combine(local_now.date(), time(policy.target_hour), tzinfo=self.zone)

        if local_now > target:
            if policy.fallback == FALLBACK_IN_ONE_HOUR:
                return local_now + timedelta(hours=1), False
            if policy.fallback == FALLBACK_NOW_URGENT:
                return local_now, True
        return target, False

    def schedule_milestone(self, db: Session, call_type: CallType, now: Optional[datetime] = None) -> int:
        """
        Schedule calls for every eligible reservation of one milestone.

        Returns:
            Number of scheduled calls created
        """
        now = ensure_aware(now)
        policy = MILESTONE_POLICIES[call_type]
        today = now.astimezone(self.zone).date()

        reservations = ReservationService.find_eligible_for_call(
            db,
            status=policy.status,
            date_field=policy.date_field,
            start=today + timedelta(days=policy.window_start_days),
            end=today + timedelta(days=policy.window_end_days),
            call_type=call_type,
        )

        scheduled_time, urgent = self.compute_call_time(policy, now)
        max_attempts = default_max_attempts(call_type)

        created = 0
        for reservation in reservations:
            call = ScheduledCallService.create_if_absent(
                db,
                reservation_id=reservation.id,
                call_type=call_type,
                scheduled_time=to_db(scheduled_time),
                max_attempts=max_attempts,
                urgent=urgent,
            )
            if call is not None:
                created += 1

        if created:
            metrics.calls_scheduled.labels(call_type=call_type.value).inc(created)
        logger.info(
            "milestone_scheduled",
            call_type=call_type.value,
            eligible=len(reservations),
            created=created,
            scheduled_time=scheduled_time.isoformat(),
        )
        return created

    def schedule_pre_arrival(self, db: Session, now: Optional[datetime] = None) -> int:
        """Guests checking in tomorrow; call at 16:00 today."""
        return self.schedule_milestone(db, CallType.PRE_ARRIVAL, now)

    def schedule_mid_stay(self, db: Session, now: Optional[datetime] = None) -> int:
        """Guests on the second day of their stay; call at 14:00."""
        return self.schedule_milestone(db, CallType.MID_STAY, now)

    def schedule_pre_checkout(self, db: Session, now: Optional[datetime] = None) -> int:
        """Guests checking out today; call at 08:00, or right away if that has passed."""
        return self.schedule_milestone(db, CallType.PRE_CHECKOUT, now)

    def schedule_post_stay(self, db: Session, now: Optional[datetime] = None) -> int:
        """Guests who checked out three days ago; call at 14:00."""
        return self.schedule_milestone(db, CallType.POST_STAY, now)

    def schedule_all(self, db: Session, now: Optional[datetime] = None) -> Dict[str, int]:
        now = ensure_aware(now)
        counts = {
            "preArrival": self.schedule_pre_arrival(db, now),
            "midStay": self.schedule_mid_stay(db, now),
            "preCheckout": self.schedule_pre_checkout(db, now),
            "postStay": self.schedule_post_stay(db, now),
        }
        counts["total"] = sum(counts.values())
        return counts
