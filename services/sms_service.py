import logging
import re
import time
from dataclasses import dataclass
from typing import List, Optional

import httpx

from config.settings import settings
from services.score_service import max_obtainable

logger = logging.getLogger(__name__)


@dataclass
class SendOutcome:
    to: str
    success: bool
    error: Optional[str] = None


def format_phone_number(phone: str) -> str:
    """Normalise to the Nigerian international format Termii expects (2348031234567)."""
    cleaned = re.sub(r"\D", "", phone or "")
    if cleaned.startswith("0"):
        cleaned = "234" + cleaned[1:]
    if not cleaned.startswith("234"):
        cleaned = "234" + cleaned
    return cleaned


def build_result_message(result, student, class_name: str, school) -> str:
    max_total = len(result.subjects or []) * max_obtainable(result.score_columns or [])
    total = result.overall_total or 0
    total_text = int(total) if float(total).is_integer() else total
    return (
        f"Dear {student.parent_name or 'Parent'},\n\n"
        f"{result.term} result for {student.name} ({class_name}) is ready.\n\n"
        f"Overall: {total_text}/{int(max_total)} ({result.overall_average or 0}%) - {result.overall_grade or 'N/A'}\n"
        f"Position: {result.overall_position or 'N/A'}\n\n"
        f"Teacher's Comment: {(result.comments or {}).get('teacher') or 'N/A'}\n\n"
        f"Visit school for full result.\n\n"
        f"{school.name}\n{school.phone or ''}".rstrip()
    )


class SMSService:
    """Termii SMS client. Failures come back as SendOutcome(success=False), never as exceptions."""

    def __init__(self, client: Optional[httpx.Client] = None):
        self.url = settings.TERMII_API_URL
        self.api_key = settings.TERMII_API_KEY
        self.sender_id = settings.TERMII_SENDER_ID
        self.bulk_delay = settings.SMS_BULK_DELAY_MS / 1000
        self.client = client or httpx.Client(timeout=settings.SMS_TIMEOUT)

    def send(self, to: str, message: str) -> SendOutcome:
        phone = format_phone_number(to)
        payload = {
            "api_key": self.api_key,
            "to": phone,
            "from": self.sender_id,
            "sms": message,
            "type": "plain",
            "channel": "generic",
        }
        try:
            r = self.client.post(self.url, json=payload)
            r.raise_for_status()
            body = r.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("SMS to %s failed: %s", phone, e)
            return SendOutcome(to=phone, success=False, error=str(e))

        if not isinstance(body, dict) or body.get("code") != "ok":
            logger.warning("SMS to %s rejected by gateway: %s", phone, body)
            error = body.get("message") if isinstance(body, dict) else None
            return SendOutcome(to=phone, success=False, error=error or str(body))

        logger.info("SMS sent to %s", phone)
        return SendOutcome(to=phone, success=True)

    def send_bulk(self, messages: List[dict]) -> List[SendOutcome]:
        """Send [{"to", "message"}, ...] one by one, pausing between messages to stay under rate limits."""
        logger.info("sending %s bulk messages", len(messages))
        outcomes = []
        for index, msg in enumerate(messages):
            if index and self.bulk_delay:
                time.sleep(self.bulk_delay)
            outcomes.append(self.send(msg["to"], msg["message"]))
        return outcomes


sms_service = SMSService()


def get_sms_service() -> SMSService:
    return sms_service
