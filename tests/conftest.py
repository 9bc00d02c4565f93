from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from proactive_calls.models import OutboundCallResult

HOTEL_TZ = ZoneInfo("America/Los_Angeles")


def local(year, month, day, hour=0, minute=0):
    """Aware datetime in the hotel timezone."""
    return datetime(year, month, day, hour, minute, tzinfo=HOTEL_TZ)


@pytest.fixture(autouse=True)
def _safe_test_config(monkeypatch):
    """Force deterministic, offline-safe config for tests.

    The repo loads .env on import; these overrides make sure no test talks
    to the voice platform, the PMS or Slack unless it opts in.
    """
    from proactive_calls.config import config, Config

    overrides = {
        "DEBUG": False,
        "HOTEL_NAME": "The Grand Luxe Hotel",
        "HOTEL_TIMEZONE": "America/Los_Angeles",
        "VAPI_API_URL": "https://vapi.test",
        "VAPI_API_KEY": "",
        "VAPI_PHONE_NUMBER_ID": "",
        "VAPI_SERVER_URL": "https://hotel.test/vapi/webhook",
        "VAPI_WEBHOOK_SECRET": "",
        "PMS_API_URL": "",
        "PMS_API_KEY": "",
        "PMS_HOTEL_ID": "hotel-1",
        "SLACK_WEBHOOK_URL": "",
        "STAFF_NOTIFY_MIN_URGENCY": "urgent",
        "DISPATCH_BATCH_SIZE": 10,
        "DISPATCH_ATTEMPT_CEILING": 3,
        "RETRY_BACKOFF_MINUTES": 60,
        "WAKE_UP_WINDOW_MINUTES": 5,
        "WAKE_UP_MAX_ATTEMPTS": 2,
        "WAKE_UP_BATCH_SIZE": 10,
        "CRON_SECRET": "",
    }
    for key, value in overrides.items():
        monkeypatch.setattr(Config, key, value, raising=False)
        # Keep the instance in sync for any code that reads instance attributes directly.
        monkeypatch.setattr(config, key, value, raising=False)

    return config


@pytest.fixture
def vapi_config(_safe_test_config, monkeypatch):
    """Config with outbound calling credentials present."""
    monkeypatch.setattr(_safe_test_config, "VAPI_API_KEY", "vapi-test-key")
    monkeypatch.setattr(_safe_test_config, "VAPI_PHONE_NUMBER_ID", "phone-number-1")
    return _safe_test_config


@pytest.fixture
def db_session():
    """Fresh in-memory database per test."""
    from proactive_calls.database import Base
    from proactive_calls import db_models  # noqa: F401

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


class FakeGateway:
    """Records place_call invocations and replays canned results.

    Each queued item is an OutboundCallResult or an exception to raise.
    Once the queue is empty every call succeeds.
    """

    def __init__(self, results=None, configured=True):
        self.results = list(results or [])
        self.calls = []
        self.is_configured = configured

    def place_call(self, phone_number, assistant, metadata):
        self.calls.append({"phone": phone_number, "assistant": assistant, "metadata": metadata})
        outcome = self.results.pop(0) if self.results else None
        if isinstance(outcome, Exception):
            raise outcome
        if outcome is None:
            return OutboundCallResult(success=True, call_id=f"call-{len(self.calls)}")
        return outcome


class FakeNotifier:
    def __init__(self):
        self.escalations = []
        self.notifications = []

    def escalate(self, room_number, urgency, message):
        self.escalations.append({"room": room_number, "urgency": urgency, "message": message})
        return True

    def notify(self, room_number, urgency, message):
        self.notifications.append({"room": room_number, "urgency": urgency, "message": message})
        return True


class FakePMSClient:
    def __init__(self, reservations=None, guests=None, failing_guests=(), fetch_error=None, configured=True):
        self.reservations = list(reservations or [])
        self.guests = dict(guests or {})
        self.failing_guests = set(failing_guests)
        self.fetch_error = fetch_error
        self.is_configured = configured
        self.windows = []

    def list_reservations(self, start, end):
        self.windows.append((start, end))
        if self.fetch_error:
            raise self.fetch_error
        return self.reservations

    def get_guest(self, guest_id):
        from proactive_calls.models import PMSGuest

        if guest_id in self.failing_guests:
            raise RuntimeError(f"guest {guest_id} unavailable")
        return PMSGuest.model_validate(self.guests[guest_id])


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def make_reservation(db_session):
    """Factory: guest + reservation in one call."""
    from proactive_calls.db_models import ReservationStatus
    from proactive_calls.services import GuestService, ReservationService

    counter = {"n": 0}

    def _make(check_in: date, check_out: date, status=ReservationStatus.CONFIRMED,
              phone="+15551230000", first_name="Jane", vip=False, room_number=None):
        counter["n"] += 1
        n = counter["n"]
        guest = GuestService.create_guest(
            db_session,
            first_name=first_name,
            last_name="Doe",
            phone=phone,
            email=f"guest{n}@example.com",
            vip_status=vip,
        )
        return ReservationService.create_reservation(
            db_session,
            guest_id=guest.id,
            check_in_date=check_in,
            check_out_date=check_out,
            room_number=room_number or str(100 + n),
            status=status,
        )

    return _make
