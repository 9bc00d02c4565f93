from datetime import date, timedelta

from conftest import FakeGateway, local
from proactive_calls.clock import to_db
from proactive_calls.db_models import ReservationStatus, WakeUpStatus
from proactive_calls.models import OutboundCallResult
from proactive_calls.services import WakeUpRequestService
from proactive_calls.wakeup import EXPIRED_NOTE, NO_RESERVATION_NOTE, WakeUpDispatcher

SIX_THIRTY = local(2026, 10, 20, 6, 30)


def _request(db, room="512", when=SIX_THIRTY):
    return WakeUpRequestService.create_request(db, room, to_db(when))


def _reload(db, request):
    return WakeUpRequestService.get_request(db, request.id)


def _checked_in(make_reservation, room="512", **kwargs):
    return make_reservation(
        date(2026, 10, 18), date(2026, 10, 22), status=ReservationStatus.CHECKED_IN, room_number=room, **kwargs,
    )


def test_wake_up_call_completes(db_session, make_reservation, vapi_config, gateway, notifier):
    _checked_in(make_reservation, first_name="Sam")
    request = _request(db_session)
    dispatcher = WakeUpDispatcher(vapi_config, gateway, notifier)

    assert dispatcher.process_wake_up_calls(db_session, now=SIX_THIRTY + timedelta(minutes=1)) == 1

    request = _reload(db_session, request)
    assert request.status == WakeUpStatus.COMPLETED
    assert request.attempts == 1
    assert request.completed_at == to_db(SIX_THIRTY + timedelta(minutes=1))

    [placed] = gateway.calls
    assert placed["assistant"]["firstMessage"] == (
        "Good morning! This is your The Grand Luxe Hotel wake-up call. The time is 6:31 AM."
    )
    assert placed["metadata"]["roomNumber"] == "512"
    assert placed["assistant"]["maxDurationSeconds"] == 120


def test_no_checked_in_reservation_fails_without_calling(db_session, vapi_config, gateway, notifier):
    request = _request(db_session, room="999")
    dispatcher = WakeUpDispatcher(vapi_config, gateway, notifier)

    assert dispatcher.process_wake_up_calls(db_session, now=SIX_THIRTY) == 0

    request = _reload(db_session, request)
    assert request.status == WakeUpStatus.FAILED
    assert request.notes == NO_RESERVATION_NOTE
    assert request.attempts == 0
    assert gateway.calls == []


def test_checked_out_room_does_not_count(db_session, make_reservation, vapi_config, gateway, notifier):
    make_reservation(date(2026, 10, 17), date(2026, 10, 20), status=ReservationStatus.CHECKED_OUT, room_number="512")
    request = _request(db_session)
    dispatcher = WakeUpDispatcher(vapi_config, gateway, notifier)

    dispatcher.process_wake_up_calls(db_session, now=SIX_THIRTY)

    assert _reload(db_session, request).status == WakeUpStatus.FAILED
    assert gateway.calls == []


def test_failure_is_retried_then_failed(db_session, make_reservation, vapi_config, notifier):
    _checked_in(make_reservation)
    request = _request(db_session)
    no_answer = OutboundCallResult(success=False, error="no answer")
    gateway = FakeGateway([no_answer, no_answer])
    dispatcher = WakeUpDispatcher(vapi_config, gateway, notifier)

    assert dispatcher.process_wake_up_calls(db_session, now=SIX_THIRTY) == 0
    request = _reload(db_session, request)
    assert request.status == WakeUpStatus.PENDING
    assert request.attempts == 1
    assert request.notes == "no answer"
    assert notifier.escalations == []

    assert dispatcher.process_wake_up_calls(db_session, now=SIX_THIRTY + timedelta(minutes=1)) == 0
    request = _reload(db_session, request)
    assert request.status == WakeUpStatus.FAILED
    assert request.attempts == 2

    [escalation] = notifier.escalations
    assert escalation["room"] == "512"
    assert escalation["urgency"] == "urgent"


def test_stale_request_is_expired(db_session, make_reservation, vapi_config, gateway, notifier):
    _checked_in(make_reservation)
    request = _request(db_session, when=SIX_THIRTY - timedelta(minutes=20))
    dispatcher = WakeUpDispatcher(vapi_config, gateway, notifier)

    assert dispatcher.process_wake_up_calls(db_session, now=SIX_THIRTY) == 0

    request = _reload(db_session, request)
    assert request.status == WakeUpStatus.FAILED
    assert request.notes == EXPIRED_NOTE
    assert gateway.calls == []
    assert notifier.escalations[0]["urgency"] == "urgent"


def test_future_request_waits(db_session, make_reservation, vapi_config, gateway, notifier):
    _checked_in(make_reservation)
    request = _request(db_session, when=SIX_THIRTY + timedelta(minutes=10))
    dispatcher = WakeUpDispatcher(vapi_config, gateway, notifier)

    assert dispatcher.process_wake_up_calls(db_session, now=SIX_THIRTY) == 0
    assert _reload(db_session, request).status == WakeUpStatus.PENDING
    assert gateway.calls == []


def test_unconfigured_gateway_leaves_requests_alone(db_session, make_reservation, _safe_test_config, notifier):
    _checked_in(make_reservation)
    request = _request(db_session)
    gateway = FakeGateway(configured=False)
    dispatcher = WakeUpDispatcher(_safe_test_config, gateway, notifier)

    assert dispatcher.process_wake_up_calls(db_session, now=SIX_THIRTY) == 0
    assert _reload(db_session, request).status == WakeUpStatus.PENDING
