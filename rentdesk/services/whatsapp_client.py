import logging
import re
from dataclasses import dataclass

import requests

from rentdesk.core.config import settings
from rentdesk.core.errors import ExternalDispatchError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReturnReminderDetails:
    booking_id: str
    return_time: str
    vehicle_model: str
    registration_number: str
    return_location: str


@dataclass(frozen=True)
class DispatchResult:
    success: bool
    error: str | None = None


def format_phone_number(phone: str, country_code: str = "91") -> str:
    cleaned = re.sub(r"\D", "", phone or "")
    if len(cleaned) == 10:
        return f"{country_code}{cleaned}"
    return cleaned


def validate_phone_number(phone: str, country_code: str = "91") -> bool:
    cleaned = re.sub(r"\D", "", phone or "")
    if cleaned.startswith(country_code) and len(cleaned) == len(country_code) + 10:
        return True
    return len(cleaned) == 10


def render_return_reminder(details: ReturnReminderDetails, support_phone: str = "") -> str:
    lines = [
        "*RETURN REMINDER*",
        "",
        f"*Booking ID:* {details.booking_id}",
        f"*Vehicle:* {details.vehicle_model}",
    ]
    if details.registration_number:
        lines.append(f"*Reg. No:* {details.registration_number}")
    lines += [
        f"*Return Time:* {details.return_time}",
        "",
        f"*Return Location:* {details.return_location}",
        "",
        "*Before Returning:*",
        "- Top up fuel to original level",
        "- Remove personal belongings",
        "- Check for any new damages",
        "- Return all documents",
    ]
    if support_phone:
        lines += ["", f"*Running Late?* Call {support_phone}"]
    return "\n".join(lines)


class WhatsAppClient:
    """WasenderAPI-style sender: POST {base}/api/send-message with a bearer key."""

    def __init__(self, api_key: str, base_url: str, country_code: str = "91", timeout: int = 10,
                 support_phone: str = "", session: requests.Session | None = None):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.country_code = country_code
        self.timeout = timeout
        self.support_phone = support_phone
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls) -> "WhatsAppClient":
        return cls(
            api_key=settings.WHATSAPP_API_KEY,
            base_url=settings.WHATSAPP_API_URL,
            country_code=settings.WHATSAPP_COUNTRY_CODE,
            timeout=settings.WHATSAPP_TIMEOUT_SECONDS,
            support_phone=settings.SUPPORT_PHONE,
        )

    def send_message(self, phone: str, text: str) -> dict:
        if not self.api_key:
            raise ExternalDispatchError("WhatsApp API key is not configured")
        to = format_phone_number(phone, self.country_code)
        if not validate_phone_number(to, self.country_code):
            raise ExternalDispatchError(f"invalid phone number format: {phone}")
        try:
            r = self.session.post(
                f"{self.base_url}/api/send-message",
                json={"to": to, "text": text, "type": "text"},
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ExternalDispatchError(f"WhatsApp request failed: {exc}") from exc
        if r.status_code >= 400:
            raise ExternalDispatchError(f"WhatsApp error {r.status_code}: {r.text[:200]}")
        try:
            return r.json()
        except ValueError:
            return {}

    def send_return_reminder(self, phone: str, details: ReturnReminderDetails) -> DispatchResult:
        try:
            self.send_message(phone, render_return_reminder(details, self.support_phone))
        except ExternalDispatchError as exc:
            logger.warning("return reminder for %s not delivered: %s", details.booking_id, exc.message)
            return DispatchResult(success=False, error=exc.message)
        return DispatchResult(success=True)
