"""
Service layer for the call record store.
Each write touches a single row and commits on its own.
"""

from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from datetime import date, datetime

from proactive_calls.db_models import (
    DBGuest, DBReservation, DBScheduledCall, DBWakeUpRequest, DBGuestIssue,
    ReservationStatus, CallType, ScheduledCallStatus, WakeUpStatus,
)
from proactive_calls.models import PMSGuest, PMSReservation
from proactive_calls.logging_config import get_logger

logger = get_logger(__name__)


class GuestService:
    """Service for managing guests."""

    @staticmethod
    def create_guest(db: Session, first_name: str, last_name: str = "", phone: Optional[str] = None,
                     email: Optional[str] = None, external_id: Optional[str] = None,
                     preferred_language: str = "en", vip_status: bool = False) -> DBGuest:
        """Create a new guest."""
        guest = DBGuest(
            external_id=external_id,
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            email=email,
            preferred_language=preferred_language,
            vip_status=vip_status,
        )
        db.add(guest)
        db.commit()
        db.refresh(guest)

        logger.info("guest_created", guest_id=guest.id, external_id=external_id)
        return guest

    @staticmethod
    def get_by_external_id(db: Session, external_id: str) -> Optional[DBGuest]:
        return db.query(DBGuest).filter(DBGuest.external_id == external_id).first()

    @staticmethod
    def find_local_match(db: Session, phone: Optional[str], email: Optional[str]) -> Optional[DBGuest]:
        """Find a locally-created guest (no PMS id yet) by phone, then email."""
        if not phone and not email:
            return None

        query = db.query(DBGuest).filter(DBGuest.external_id.is_(None))
        if phone:
            guest = query.filter(DBGuest.phone == phone).first()
            if guest:
                return guest
        if email:
            return query.filter(DBGuest.email == email).first()
        return None

    @staticmethod
    def link_external_id(db: Session, guest: DBGuest, external_id: str) -> DBGuest:
        guest.external_id = external_id
        db.commit()
        db.refresh(guest)

        logger.info("guest_linked_to_pms", guest_id=guest.id, external_id=external_id)
        return guest

    @staticmethod
    def resolve_pms_guest(db: Session, pms_guest: PMSGuest) -> DBGuest:
        """
        Map a PMS guest onto a local guest.

        Existing guests keep their local contact data; only a guest created
        locally (before the PMS knew about it) gets linked to the PMS id.
        """
        guest = GuestService.get_by_external_id(db, pms_guest.id)
        if guest:
            return guest

        guest = GuestService.find_local_match(db, pms_guest.phone, pms_guest.email)
        if guest:
            return GuestService.link_external_id(db, guest, pms_guest.id)

        return GuestService.create_guest(
            db,
            first_name=pms_guest.first_name,
            last_name=pms_guest.last_name,
            phone=pms_guest.phone,
            email=pms_guest.email,
            external_id=pms_guest.id,
            preferred_language=pms_guest.preferred_language or "en",
            vip_status=bool(pms_guest.vip_status),
        )


class ReservationService:
    """Service for managing reservations."""

    @staticmethod
    def create_reservation(db: Session, guest_id: int, check_in_date: date, check_out_date: date,
                           room_number: Optional[str] = None, room_type: Optional[str] = None,
                           status: ReservationStatus = ReservationStatus.CONFIRMED,
                           number_of_guests: int = 1, special_requests: Optional[str] = None,
                           external_id: Optional[str] = None) -> DBReservation:
        """Create a new reservation."""
        if check_out_date <= check_in_date:
            raise ValueError("check_out_date must be after check_in_date")

        reservation = DBReservation(
            external_id=external_id,
            guest_id=guest_id,
            room_number=room_number,
            room_type=room_type,
            check_in_date=check_in_date,
            check_out_date=check_out_date,
            number_of_guests=number_of_guests,
            status=status,
            special_requests=special_requests,
        )
        db.add(reservation)
        db.commit()
        db.refresh(reservation)

        logger.info("reservation_created", reservation_id=reservation.id, external_id=external_id)
        return reservation

    @staticmethod
    def get_by_external_id(db: Session, external_id: str) -> Optional[DBReservation]:
        return db.query(DBReservation).filter(DBReservation.external_id == external_id).first()

    @staticmethod
    def find_eligible_for_call(db: Session, status: ReservationStatus, date_field: str,
                               start: date, end: date, call_type: CallType) -> List[DBReservation]:
        """
        Reservations in ``status`` whose ``date_field`` falls in [start, end)
        and that have no scheduled call of ``call_type`` yet.
        """
        column = getattr(DBReservation, date_field)
        return (
            db.query(DBReservation)
            .filter(
                DBReservation.status == status,
                column >= start,
                column < end,
                ~DBReservation.scheduled_calls.any(DBScheduledCall.call_type == call_type),
            )
            .order_by(DBReservation.id)
            .all()
        )

    @staticmethod
    def get_checked_in_for_room(db: Session, room_number: str) -> Optional[DBReservation]:
        """The current stay for a room, if a guest is checked in."""
        return (
            db.query(DBReservation)
            .filter(
                DBReservation.room_number == room_number,
                DBReservation.status == ReservationStatus.CHECKED_IN,
            )
            .order_by(DBReservation.check_in_date.desc())
            .first()
        )

    @staticmethod
    def upsert_from_pms(db: Session, pms_reservation: PMSReservation, guest_id: int,
                        status: ReservationStatus) -> DBReservation:
        """
        Insert or update a reservation keyed on its PMS id.

        Only PMS-owned columns are written on update; fields captured locally
        during calls (arrival time, late checkout, notes...) are left alone.
        """
        reservation = ReservationService.get_by_external_id(db, pms_reservation.id)
        created = reservation is None
        if created:
            reservation = DBReservation(external_id=pms_reservation.id, guest_id=guest_id)
            db.add(reservation)

        reservation.room_number = pms_reservation.room_number
        reservation.room_type = pms_reservation.room_type
        reservation.check_in_date = pms_reservation.check_in_date
        reservation.check_out_date = pms_reservation.check_out_date
        reservation.status = status
        reservation.number_of_guests = pms_reservation.number_of_guests
        reservation.special_requests = pms_reservation.special_requests

        db.commit()
        db.refresh(reservation)

        logger.info(
            "reservation_synced",
            reservation_id=reservation.id,
            external_id=pms_reservation.id,
            created=created,
            status=status.value,
        )
        return reservation


class ScheduledCallService:
    """Service for managing scheduled proactive calls."""

    @staticmethod
    def create_if_absent(db: Session, reservation_id: int, call_type: CallType, scheduled_time: datetime,
                         max_attempts: int = 3, urgent: bool = False) -> Optional[DBScheduledCall]:
        """
        Create a scheduled call.

        Returns None when the reservation already has a call of this type
        (the unique constraint on (reservation_id, call_type) fired).
        """
        call = DBScheduledCall(
            reservation_id=reservation_id,
            call_type=call_type,
            scheduled_time=scheduled_time,
            status=ScheduledCallStatus.SCHEDULED,
            attempts=0,
            max_attempts=max_attempts,
            urgent=urgent,
        )
        db.add(call)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.info("scheduled_call_exists", reservation_id=reservation_id, call_type=call_type.value)
            return None
        db.refresh(call)

        logger.info(
            "scheduled_call_created",
            scheduled_call_id=call.id,
            reservation_id=reservation_id,
            call_type=call_type.value,
            scheduled_time=scheduled_time.isoformat(),
            urgent=urgent,
        )
        return call

    @staticmethod
    def get_call(db: Session, call_id: int) -> Optional[DBScheduledCall]:
        return db.query(DBScheduledCall).filter(DBScheduledCall.id == call_id).first()

    @staticmethod
    def list_for_reservation(db: Session, reservation_id: int) -> List[DBScheduledCall]:
        return (
            db.query(DBScheduledCall)
            .filter(DBScheduledCall.reservation_id == reservation_id)
            .order_by(DBScheduledCall.id)
            .all()
        )

    @staticmethod
    def list_due(db: Session, now: datetime, attempt_ceiling: int, limit: int,
                 call_type: Optional[CallType] = None) -> List[DBScheduledCall]:
        """Due calls, oldest first."""
        query = db.query(DBScheduledCall).filter(
            DBScheduledCall.status == ScheduledCallStatus.SCHEDULED,
            DBScheduledCall.scheduled_time <= now,
            DBScheduledCall.attempts < attempt_ceiling,
        )
        if call_type:
            query = query.filter(DBScheduledCall.call_type == call_type)

        return query.order_by(DBScheduledCall.scheduled_time.asc()).limit(limit).all()

    @staticmethod
    def count_unclaimed_attempt(db: Session, call_id: int, attempted_at: datetime) -> bool:
        """
        Charge an attempt to a call that errored before it was claimed.

        No-op (returns False) once the call has left the scheduled state,
        since the claim already counted that attempt.
        """
        counted = (
            db.query(DBScheduledCall)
            .filter(
                DBScheduledCall.id == call_id,
                DBScheduledCall.status == ScheduledCallStatus.SCHEDULED,
            )
            .update(
                {
                    DBScheduledCall.attempts: DBScheduledCall.attempts + 1,
                    DBScheduledCall.actual_time: attempted_at,
                    DBScheduledCall.updated_at: datetime.utcnow(),
                },
                synchronize_session=False,
            )
        )
        db.commit()
        return counted == 1

    @staticmethod
    def mark_in_progress(db: Session, call_id: int, attempted_at: datetime) -> bool:
        """
        Claim a scheduled call: bump attempts and move it to in-progress.

        Returns False if the row is no longer in the scheduled state.
        """
        claimed = (
            db.query(DBScheduledCall)
            .filter(
                DBScheduledCall.id == call_id,
                DBScheduledCall.status == ScheduledCallStatus.SCHEDULED,
            )
            .update(
                {
                    DBScheduledCall.attempts: DBScheduledCall.attempts + 1,
                    DBScheduledCall.actual_time: attempted_at,
                    DBScheduledCall.status: ScheduledCallStatus.IN_PROGRESS,
                    DBScheduledCall.updated_at: datetime.utcnow(),
                },
                synchronize_session=False,
            )
        )
        db.commit()
        return claimed == 1

    @staticmethod
    def set_external_call_id(db: Session, call_id: int, external_call_id: str) -> Optional[DBScheduledCall]:
        call = ScheduledCallService.get_call(db, call_id)
        if call:
            call.external_call_id = external_call_id
            call.updated_at = datetime.utcnow()
            db.commit()
            db.refresh(call)

            logger.info("scheduled_call_placed", scheduled_call_id=call_id, call_id=external_call_id)
        return call

    @staticmethod
    def reschedule(db: Session, call_id: int, scheduled_time: datetime, notes: Optional[str]) -> Optional[DBScheduledCall]:
        call = ScheduledCallService.get_call(db, call_id)
        if call:
            call.status = ScheduledCallStatus.SCHEDULED
            call.scheduled_time = scheduled_time
            call.notes = notes
            call.updated_at = datetime.utcnow()
            db.commit()
            db.refresh(call)

            logger.info(
                "scheduled_call_rescheduled",
                scheduled_call_id=call_id,
                scheduled_time=scheduled_time.isoformat(),
                attempts=call.attempts,
            )
        return call

    @staticmethod
    def mark_failed(db: Session, call_id: int, notes: Optional[str]) -> Optional[DBScheduledCall]:
        call = ScheduledCallService.get_call(db, call_id)
        if call:
            call.status = ScheduledCallStatus.FAILED
            call.notes = notes
            call.updated_at = datetime.utcnow()
            db.commit()
            db.refresh(call)

            logger.info("scheduled_call_failed", scheduled_call_id=call_id, attempts=call.attempts, notes=notes)
        return call


class WakeUpRequestService:
    """Service for managing wake-up requests."""

    @staticmethod
    def create_request(db: Session, room_number: str, requested_time: datetime) -> DBWakeUpRequest:
        """Create a new wake-up request."""
        request = DBWakeUpRequest(
            room_number=room_number,
            requested_time=requested_time,
            status=WakeUpStatus.PENDING,
            attempts=0,
        )
        db.add(request)
        db.commit()
        db.refresh(request)

        logger.info("wake_up_request_created", wake_up_request_id=request.id, room_number=room_number)
        return request

    @staticmethod
    def get_request(db: Session, request_id: int) -> Optional[DBWakeUpRequest]:
        return db.query(DBWakeUpRequest).filter(DBWakeUpRequest.id == request_id).first()

    @staticmethod
    def list_due(db: Session, start: datetime, end: datetime, limit: int) -> List[DBWakeUpRequest]:
        """Pending requests whose time falls in [start, end]."""
        return (
            db.query(DBWakeUpRequest)
            .filter(
                DBWakeUpRequest.status == WakeUpStatus.PENDING,
                DBWakeUpRequest.requested_time >= start,
                DBWakeUpRequest.requested_time <= end,
            )
            .order_by(DBWakeUpRequest.requested_time.asc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def list_stale(db: Session, before: datetime, limit: int) -> List[DBWakeUpRequest]:
        """Pending requests whose time is already older than ``before``."""
        return (
            db.query(DBWakeUpRequest)
            .filter(
                DBWakeUpRequest.status == WakeUpStatus.PENDING,
                DBWakeUpRequest.requested_time < before,
            )
            .order_by(DBWakeUpRequest.requested_time.asc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def record_attempt(db: Session, request_id: int) -> bool:
        """Bump the attempt counter of a still-pending request."""
        updated = (
            db.query(DBWakeUpRequest)
            .filter(
                DBWakeUpRequest.id == request_id,
                DBWakeUpRequest.status == WakeUpStatus.PENDING,
            )
            .update(
                {
                    DBWakeUpRequest.attempts: DBWakeUpRequest.attempts + 1,
                    DBWakeUpRequest.updated_at: datetime.utcnow(),
                },
                synchronize_session=False,
            )
        )
        db.commit()
        return updated == 1

    @staticmethod
    def mark_completed(db: Session, request_id: int, completed_at: datetime) -> Optional[DBWakeUpRequest]:
        request = WakeUpRequestService.get_request(db, request_id)
        if request:
            request.status = WakeUpStatus.COMPLETED
            request.completed_at = completed_at
            request.updated_at = datetime.utcnow()
            db.commit()
            db.refresh(request)

            logger.info("wake_up_request_completed", wake_up_request_id=request_id)
        return request

    @staticmethod
    def mark_failed(db: Session, request_id: int, notes: Optional[str]) -> Optional[DBWakeUpRequest]:
        request = WakeUpRequestService.get_request(db, request_id)
        if request:
            request.status = WakeUpStatus.FAILED
            request.notes = notes
            request.updated_at = datetime.utcnow()
            db.commit()
            db.refresh(request)

            logger.info("wake_up_request_failed", wake_up_request_id=request_id, notes=notes)
        return request

    @staticmethod
    def record_error(db: Session, request_id: int, notes: Optional[str]) -> Optional[DBWakeUpRequest]:
        """Keep the request pending but remember the last error."""
        request = WakeUpRequestService.get_request(db, request_id)
        if request:
            request.notes = notes
            request.updated_at = datetime.utcnow()
            db.commit()
            db.refresh(request)
        return request


class GuestIssueService:
    """Service for guest issues raised during calls."""

    @staticmethod
    def create_issue(db: Session, category: str, severity: str, description: str,
                     room_number: Optional[str] = None, reservation_id: Optional[int] = None,
                     call_id: Optional[str] = None) -> DBGuestIssue:
        issue = DBGuestIssue(
            reservation_id=reservation_id,
            room_number=room_number,
            category=category.lower(),
            severity=severity.lower(),
            description=description,
            detected_by="ai",
            call_id=call_id,
        )
        db.add(issue)
        db.commit()
        db.refresh(issue)

        logger.info("guest_issue_logged", issue_id=issue.id, category=issue.category, severity=issue.severity)
        return issue
