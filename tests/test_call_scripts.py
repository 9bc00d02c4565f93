"""Call content - every milestone has a complete script."""

from datetime import datetime

import pytest

from proactive_calls.call_scripts import (
    WAKE_UP,
    build_assistant,
    default_max_attempts,
    get_profile,
    render_opening_line,
)
from proactive_calls.db_models import CallType


@pytest.mark.parametrize("call_type", list(CallType) + [WAKE_UP])
def test_every_call_type_has_a_profile(call_type):
    profile = get_profile(call_type, "The Grand Luxe Hotel")
    assert profile.name
    assert "The Grand Luxe Hotel" in profile.system_prompt
    assert profile.max_attempts >= 1


def test_attempt_limits_per_call_type():
    assert default_max_attempts(CallType.PRE_ARRIVAL) == 3
    assert default_max_attempts(CallType.MID_STAY) == 2
    assert default_max_attempts(CallType.PRE_CHECKOUT) == 2
    assert default_max_attempts(CallType.POST_STAY) == 3
    assert default_max_attempts(WAKE_UP) == 2


def test_check_out_time_in_pre_checkout_prompt():
    profile = get_profile(CallType.PRE_CHECKOUT, "The Grand Luxe Hotel", check_out_time="12:00")
    assert "12:00" in profile.system_prompt


def test_unknown_call_type():
    with pytest.raises(KeyError):
        get_profile("room_service", "The Grand Luxe Hotel")


def test_opening_line_without_first_name():
    line = render_opening_line(CallType.MID_STAY, "The Grand Luxe Hotel", "  ")
    assert line.startswith("Hello there, this is Guest Services from The Grand Luxe Hotel.")


def test_wake_up_line_has_local_time():
    line = render_opening_line(WAKE_UP, "The Grand Luxe Hotel", local_time=datetime(2026, 10, 20, 6, 30))
    assert line == "Good morning! This is your The Grand Luxe Hotel wake-up call. The time is 6:30 AM."


def test_build_assistant_shape():
    profile = get_profile(WAKE_UP, "The Grand Luxe Hotel")
    assistant = build_assistant(profile, "Good morning!")

    assert assistant["firstMessage"] == "Good morning!"
    assert assistant["maxDurationSeconds"] == 120
    assert assistant["model"]["model"] == "gpt-4o-mini"
    assert assistant["model"]["messages"][0]["role"] == "system"
