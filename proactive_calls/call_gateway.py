"""
Outbound call placement through the voice AI platform (Vapi).

Failures are returned as an OutboundCallResult, never raised, so the
dispatch loop can record them on the job.
"""

from typing import Any, Dict, Optional

import httpx

from proactive_calls.config import Config
from proactive_calls.logging_config import get_logger
from proactive_calls.models import OutboundCallResult

logger = get_logger(__name__)

DEFAULT_VOICE = {"provider": "eleven-labs", "voiceId": "21m00Tcm4TlvDq8ikWAM"}
DEFAULT_TRANSCRIBER = {"provider": "deepgram", "model": "nova-2", "language": "en"}


class OutboundCallGateway:
    """Places outbound calls via ``POST /call/phone``."""

    def __init__(self, cfg: Config, http_client: Optional[httpx.Client] = None):
        self.config = cfg
        self._client = http_client

    @property
    def is_configured(self) -> bool:
        return self.config.has_vapi_config()

    def build_request(self, phone_number: str, assistant: Dict[str, Any],
                      metadata: Dict[str, Any]) -> Dict[str, Any]:
        """Assemble the call request body from the rendered assistant config."""
        body = dict(assistant)
        body.setdefault("name", "Proactive Service Agent")
        body.setdefault("voice", DEFAULT_VOICE)
        body.setdefault("transcriber", DEFAULT_TRANSCRIBER)
        body["server"] = {
            "url": self.config.VAPI_SERVER_URL,
            "secret": self.config.VAPI_WEBHOOK_SECRET or None,
        }
        body["silenceTimeoutSeconds"] = 20
        body.setdefault("maxDurationSeconds", 300)
        body["metadata"] = {**metadata, "template": "proactive-services"}

        return {
            "phoneNumberId": self.config.VAPI_PHONE_NUMBER_ID,
            "customer": {"number": phone_number},
            "assistant": body,
        }

    def place_call(self, phone_number: str, assistant: Dict[str, Any],
                   metadata: Dict[str, Any]) -> OutboundCallResult:
        """
        Ask the voice platform to call ``phone_number``.

        Args:
            phone_number: E.164 target number
            assistant: conversational configuration (opening line, model, ...)
            metadata: round-tripped to later webhook events

        Returns:
            OutboundCallResult with the platform call id on success
        """
        if not self.is_configured:
            logger.error("vapi_not_configured")
            return OutboundCallResult(success=False, error="VAPI not configured")

        payload = self.build_request(phone_number, assistant, metadata)
        try:
            response = self._post("/call/phone", payload)
            response.raise_for_status()
            call_id = response.json().get("id")
        except httpx.HTTPStatusError as e:
            logger.warning(
                "outbound_call_rejected",
                status_code=e.response.status_code,
                body=e.response.text[:500],
            )
            return OutboundCallResult(success=False, error=_error_message(e.response))
        except Exception as e:
            logger.error("outbound_call_error", error=str(e))
            return OutboundCallResult(success=False, error=str(e) or e.__class__.__name__)

        if not call_id:
            return OutboundCallResult(success=False, error="Voice platform returned no call id")

        logger.info("outbound_call_initiated", call_id=call_id, metadata=metadata)
        return OutboundCallResult(success=True, call_id=call_id)

    def _post(self, path: str, payload: Dict[str, Any]) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {self.config.VAPI_API_KEY}",
            "Content-Type": "application/json",
        }
        url = self.config.VAPI_API_URL.rstrip("/") + path
        if self._client is not None:
            return self._client.post(url, json=payload, headers=headers)
        with httpx.Client(timeout=self.config.VAPI_TIMEOUT_SECONDS) as client:
            return client.post(url, json=payload, headers=headers)


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    message = data.get("message") if isinstance(data, dict) else None
    if isinstance(message, list):
        message = "; ".join(str(m) for m in message)
    return message or f"HTTP {response.status_code}"
