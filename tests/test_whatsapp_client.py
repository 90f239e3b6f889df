import pytest
import requests

from rentdesk.services.whatsapp_client import (
    ReturnReminderDetails,
    WhatsAppClient,
    format_phone_number,
    render_return_reminder,
    validate_phone_number,
)

DETAILS = ReturnReminderDetails(
    booking_id="BK000042",
    return_time="2024-06-01 10:00",
    vehicle_model="Royal Enfield Classic 350",
    registration_number="KA05MN4321",
    return_location="Indiranagar branch",
)


class StubResponse:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


class StubSession:
    def __init__(self, response=None, exc=None):
        self.response = response or StubResponse(body={"success": True})
        self.exc = exc
        self.calls = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if self.exc:
            raise self.exc
        return self.response


def _client(session, api_key="secret"):
    return WhatsAppClient(api_key=api_key, base_url="https://wa.example.test/", country_code="91",
                          timeout=5, support_phone="080-1234-5678", session=session)


@pytest.mark.parametrize("raw, expected", [
    ("9876543210", "919876543210"),
    ("+91 98765-43210", "919876543210"),
    ("(987) 654 3210", "919876543210"),
    ("12345", "12345"),
])
def test_format_phone_number(raw, expected):
    assert format_phone_number(raw) == expected


def test_validate_phone_number():
    assert validate_phone_number("919876543210")
    assert validate_phone_number("9876543210")
    assert not validate_phone_number("12345")
    assert not validate_phone_number("")


def test_reminder_text_carries_the_details():
    text = render_return_reminder(DETAILS, support_phone="080-1234-5678")
    for part in ("BK000042", "Royal Enfield Classic 350", "KA05MN4321", "2024-06-01 10:00",
                 "Indiranagar branch", "080-1234-5678"):
        assert part in text


def test_successful_send_posts_to_provider():
    session = StubSession()
    result = _client(session).send_return_reminder("98765 43210", DETAILS)
    assert result.success
    assert result.error is None
    call = session.calls[0]
    assert call["url"] == "https://wa.example.test/api/send-message"
    assert call["headers"]["Authorization"] == "Bearer secret"
    assert call["json"]["to"] == "919876543210"
    assert "BK000042" in call["json"]["text"]
    assert call["timeout"] == 5


def test_provider_error_is_a_failed_result():
    session = StubSession(response=StubResponse(status_code=500, text="upstream down"))
    result = _client(session).send_return_reminder("9876543210", DETAILS)
    assert not result.success
    assert "500" in result.error


def test_network_error_is_a_failed_result():
    session = StubSession(exc=requests.ConnectionError("connection refused"))
    result = _client(session).send_return_reminder("9876543210", DETAILS)
    assert not result.success
    assert "connection refused" in result.error


def test_bad_phone_never_reaches_provider():
    session = StubSession()
    result = _client(session).send_return_reminder("12-34", DETAILS)
    assert not result.success
    assert session.calls == []


def test_missing_api_key():
    session = StubSession()
    result = _client(session, api_key="").send_return_reminder("9876543210", DETAILS)
    assert not result.success
    assert "not configured" in result.error
    assert session.calls == []
