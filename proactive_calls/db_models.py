"""
SQLAlchemy database models for the call record store.
Guests, reservations, scheduled proactive calls and wake-up requests.
"""

from sqlalchemy import (
    Column, Integer, String, Date, DateTime, ForeignKey, Text, Boolean,
    CheckConstraint, UniqueConstraint, Enum as SQLEnum,
)
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from proactive_calls.database import Base


class ReservationStatus(str, enum.Enum):
    """Reservation status enum."""
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"
    CANCELLED = "cancelled"


class CallType(str, enum.Enum):
    """Guest-journey milestone a proactive call belongs to."""
    PRE_ARRIVAL = "pre_arrival"
    MID_STAY = "mid_stay"
    PRE_CHECKOUT = "pre_checkout"
    POST_STAY = "post_stay"


class ScheduledCallStatus(str, enum.Enum):
    """Scheduled call status enum."""
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class WakeUpStatus(str, enum.Enum):
    """Wake-up request status enum."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class DBGuest(Base):
    """Guest database model."""
    __tablename__ = "guests"

    id = Column(Integer, primary_key=True, index=True)
    external_id = Column(String(100), unique=True, nullable=True, index=True)  # PMS guest id
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False, default="")
    email = Column(String(255), index=True)
    phone = Column(String(50), index=True)  # E.164
    preferred_language = Column(String(10), default="en")
    vip_status = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    reservations = relationship("DBReservation", back_populates="guest")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class DBReservation(Base):
    """Reservation (one guest stay) database model."""
    __tablename__ = "reservations"
    __table_args__ = (
        CheckConstraint("check_out_date > check_in_date", name="ck_reservation_dates"),
    )

    id = Column(Integer, primary_key=True, index=True)
    external_id = Column(String(100), unique=True, nullable=True, index=True)  # PMS reservation id
    guest_id = Column(Integer, ForeignKey("guests.id"), nullable=False)
    room_number = Column(String(20), index=True)
    room_type = Column(String(100))
    check_in_date = Column(Date, nullable=False, index=True)
    check_out_date = Column(Date, nullable=False, index=True)
    number_of_guests = Column(Integer, default=1)
    status = Column(SQLEnum(ReservationStatus), default=ReservationStatus.CONFIRMED, index=True)
    special_requests = Column(Text)

    # Written by AI tool calls only; PMS reconciliation never touches these.
    arrival_time = Column(String(20))
    early_check_in = Column(Boolean, default=False)
    late_check_out = Column(Boolean, default=False)
    transportation_needed = Column(Boolean, default=False)
    notes = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    guest = relationship("DBGuest", back_populates="reservations")
    scheduled_calls = relationship("DBScheduledCall", back_populates="reservation")


class DBScheduledCall(Base):
    """
    Scheduled proactive call - one planned or attempted outbound call
    for a reservation milestone. Never deleted; doubles as an audit trail.
    """
    __tablename__ = "scheduled_calls"
    __table_args__ = (
        UniqueConstraint("reservation_id", "call_type", name="uq_scheduled_call_reservation_type"),
    )

    id = Column(Integer, primary_key=True, index=True)
    reservation_id = Column(Integer, ForeignKey("reservations.id"), nullable=False)
    call_type = Column(SQLEnum(CallType), nullable=False)

    scheduled_time = Column(DateTime, nullable=False, index=True)  # naive UTC
    actual_time = Column(DateTime, nullable=True)
    status = Column(SQLEnum(ScheduledCallStatus), default=ScheduledCallStatus.SCHEDULED, index=True)

    attempts = Column(Integer, default=0, nullable=False)
    max_attempts = Column(Integer, default=3, nullable=False)
    external_call_id = Column(String(100), nullable=True, index=True)  # Voice platform call id
    urgent = Column(Boolean, default=False)
    notes = Column(Text)  # Last error

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    reservation = relationship("DBReservation", back_populates="scheduled_calls")


class DBWakeUpRequest(Base):
    """Guest-initiated wake-up call request."""
    __tablename__ = "wake_up_requests"

    id = Column(Integer, primary_key=True, index=True)
    room_number = Column(String(20), nullable=False, index=True)
    requested_time = Column(DateTime, nullable=False, index=True)  # naive UTC
    status = Column(SQLEnum(WakeUpStatus), default=WakeUpStatus.PENDING, index=True)
    attempts = Column(Integer, default=0, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    notes = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class DBGuestIssue(Base):
    """Guest issue or complaint picked up during a call."""
    __tablename__ = "guest_issues"

    id = Column(Integer, primary_key=True, index=True)
    reservation_id = Column(Integer, ForeignKey("reservations.id"), nullable=True)
    room_number = Column(String(20))
    category = Column(String(50), nullable=False)
    severity = Column(String(20), nullable=False)  # low | medium | high | critical
    description = Column(Text, nullable=False)
    detected_by = Column(String(20), default="ai")
    call_id = Column(String(100))

    created_at = Column(DateTime, default=datetime.utcnow)
