from datetime import datetime, timezone

import httpx
import pytest

from proactive_calls.pms_client import PMSClient


@pytest.fixture
def pms_config(_safe_test_config, monkeypatch):
    monkeypatch.setattr(_safe_test_config, "PMS_API_URL", "https://pms.test/v1/")
    monkeypatch.setattr(_safe_test_config, "PMS_API_KEY", "pms-key")
    return _safe_test_config


def _client(cfg, handler):
    return PMSClient(cfg, http_client=httpx.Client(transport=httpx.MockTransport(handler)))


def test_list_reservations_requests_window(pms_config):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"reservations": [{"id": "R1"}, {"id": "R2"}]})

    start = datetime(2026, 10, 18, tzinfo=timezone.utc)
    end = datetime(2026, 11, 18, tzinfo=timezone.utc)
    items = _client(pms_config, handler).list_reservations(start, end)

    assert [item["id"] for item in items] == ["R1", "R2"]
    [request] = seen
    assert request.url.path == "/v1/hotels/hotel-1/reservations"
    assert request.url.params["from"] == start.isoformat()
    assert request.url.params["to"] == end.isoformat()
    assert request.headers["Authorization"] == "Bearer pms-key"


def test_get_guest_parses_payload(pms_config):
    def handler(request):
        assert request.url.path == "/v1/guests/G1"
        return httpx.Response(200, json={"guest": {
            "id": "G1", "firstName": "Maria", "lastName": "Lopez",
            "phone": "+15551112222", "preferredLanguage": "es", "vipStatus": True,
        }})

    guest = _client(pms_config, handler).get_guest("G1")

    assert guest.first_name == "Maria"
    assert guest.preferred_language == "es"
    assert guest.vip_status is True


def test_http_error_propagates(pms_config):
    def handler(request):
        return httpx.Response(503, json={"error": "maintenance"})

    with pytest.raises(httpx.HTTPStatusError):
        _client(pms_config, handler).list_reservations(datetime.now(timezone.utc), datetime.now(timezone.utc))
