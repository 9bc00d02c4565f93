"""
Guest-facing call content for proactive calls.

All opening lines and assistant instructions for outbound calls live here;
the dispatch code only picks a profile by call type and fills in names.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from proactive_calls.db_models import CallType

WAKE_UP = "wake_up"


@dataclass(frozen=True)
class CallProfile:
    """Per-milestone call settings."""
    name: str
    opening_line: str
    system_prompt: str
    max_duration_seconds: int
    max_attempts: int
    model: str = "gpt-4o-2024-11-20"
    temperature: float = 0.7


# Opening lines. Placeholders: {hotel}, {first_name}, {time}
OPENING_LINES: Dict[str, str] = {
    CallType.PRE_ARRIVAL.value: "Hello, this is {hotel} calling. May I speak with {first_name}?",
    CallType.MID_STAY.value: (
        "Hello {first_name}, this is Guest Services from {hotel}. "
        "I'm calling to check on your stay."
    ),
    CallType.PRE_CHECKOUT.value: "Good morning {first_name}, this is the front desk at {hotel}.",
    CallType.POST_STAY.value: "Hello {first_name}, this is {hotel} calling.",
    WAKE_UP: "Good morning! This is your {hotel} wake-up call. The time is {time}.",
}

SYSTEM_PROMPTS: Dict[str, str] = {
    CallType.PRE_ARRIVAL.value: (
        "You are calling to confirm a guest's upcoming reservation at {hotel}. "
        "Confirm the reservation details, ask for the expected arrival time "
        "(check-in is {check_in_time}), offer airport transportation and a "
        "dinner reservation, and note any special requests."
    ),
    CallType.MID_STAY.value: (
        "You are calling to check on a guest during their stay at {hotel}. "
        "Ask whether everything meets their expectations, log any issue you hear "
        "about and escalate serious ones to staff."
    ),
    CallType.PRE_CHECKOUT.value: (
        "You are calling a guest who is checking out today from {hotel}. "
        "Checkout time is {check_out_time}. Offer late checkout, luggage storage "
        "and transportation."
    ),
    CallType.POST_STAY.value: (
        "You are calling to thank a guest after their stay at {hotel} and gather "
        "feedback. Record feedback, invite an online review and offer a returning "
        "guest discount."
    ),
    WAKE_UP: (
        "You are making a wake-up call for a guest at {hotel}. Be gentle but clear, "
        "give the time and offer breakfast service."
    ),
}

_PROFILE_LIMITS: Dict[str, Dict[str, Any]] = {
    CallType.PRE_ARRIVAL.value: {"max_duration_seconds": 300, "max_attempts": 3},
    CallType.MID_STAY.value: {"max_duration_seconds": 300, "max_attempts": 2},
    CallType.PRE_CHECKOUT.value: {"max_duration_seconds": 240, "max_attempts": 2},
    CallType.POST_STAY.value: {"max_duration_seconds": 300, "max_attempts": 3},
    WAKE_UP: {"max_duration_seconds": 120, "max_attempts": 2, "model": "gpt-4o-mini", "temperature": 0.5},
}

_DISPLAY_NAMES: Dict[str, str] = {
    CallType.PRE_ARRIVAL.value: "Pre-Arrival Call",
    CallType.MID_STAY.value: "Mid-Stay Call",
    CallType.PRE_CHECKOUT.value: "Pre-Checkout Call",
    CallType.POST_STAY.value: "Post-Stay Call",
    WAKE_UP: "Wake-Up Call",
}


def _key(call_type) -> str:
    return call_type.value if isinstance(call_type, CallType) else str(call_type)


def get_profile(call_type, hotel_name: str, check_in_time: str = "15:00",
                check_out_time: str = "11:00") -> CallProfile:
    """Return the call profile for a milestone (or ``WAKE_UP``)."""
    key = _key(call_type)
    if key not in OPENING_LINES:
        raise KeyError(f"No call script for {key!r}")

    return CallProfile(
        name=_DISPLAY_NAMES[key],
        opening_line=OPENING_LINES[key],
        system_prompt=SYSTEM_PROMPTS[key].format(
            hotel=hotel_name,
            check_in_time=check_in_time,
            check_out_time=check_out_time,
        ),
        **_PROFILE_LIMITS[key],
    )


def default_max_attempts(call_type) -> int:
    return _PROFILE_LIMITS[_key(call_type)]["max_attempts"]


def render_opening_line(call_type, hotel_name: str, first_name: Optional[str] = None,
                        local_time: Optional[datetime] = None) -> str:
    """Fill in the opening line for a call type."""
    first_name = (first_name or "").strip() or "there"
    time_text = local_time.strftime("%I:%M %p").lstrip("0") if local_time else ""
    return OPENING_LINES[_key(call_type)].format(hotel=hotel_name, first_name=first_name, time=time_text)


def build_assistant(profile: CallProfile, first_message: str) -> Dict[str, Any]:
    """Conversational configuration handed to the voice platform."""
    return {
        "name": profile.name,
        "firstMessage": first_message,
        "model": {
            "provider": "openai",
            "model": profile.model,
            "temperature": profile.temperature,
            "messages": [{"role": "system", "content": profile.system_prompt}],
        },
        "maxDurationSeconds": profile.max_duration_seconds,
    }
