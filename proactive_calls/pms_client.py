"""HTTP client for the property management system (PMS) REST API."""

from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from proactive_calls.config import Config
from proactive_calls.models import PMSGuest


class PMSClient:
    """Read-only access to PMS reservations and guests."""

    def __init__(self, cfg: Config, http_client: Optional[httpx.Client] = None):
        self.config = cfg
        self._client = http_client

    @property
    def is_configured(self) -> bool:
        return self.config.has_pms_config()

    def list_reservations(self, start: datetime, end: datetime) -> List[Dict[str, Any]]:
        """
        Raw reservation payloads changed within [start, end].

        Items are returned unparsed so one malformed record can be skipped
        without losing the rest of the page.
        """
        path = f"/hotels/{self.config.PMS_HOTEL_ID}/reservations"
        data = self._get(path, params={"from": start.isoformat(), "to": end.isoformat()})
        return list(data.get("reservations") or [])

    def get_guest(self, guest_id: str) -> PMSGuest:
        data = self._get(f"/guests/{guest_id}")
        return PMSGuest.model_validate(data["guest"])

    def _get(self, path: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {self.config.PMS_API_KEY}"}
        url = self.config.PMS_API_URL.rstrip("/") + path
        if self._client is not None:
            response = self._client.get(url, params=params, headers=headers)
        else:
            with httpx.Client(timeout=self.config.PMS_TIMEOUT_SECONDS) as client:
                response = client.get(url, params=params, headers=headers)
        response.raise_for_status()
        return response.json()
