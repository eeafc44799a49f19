"""Test-mode SmsProvider that writes the message to the log instead of a carrier.

Carrier integrations live outside this service; deployments inject their own
SmsProvider into create_app(). This one keeps local development and staging
usable without spending SMS credits.
"""

from __future__ import annotations

from config import SmsSettings
from infrastructure.sms.protocol import format_otp_message
from shared.logging import get_logger
from shared.validators import to_international

log = get_logger(__name__)


class LoggingSmsProvider:
    def __init__(self, settings: SmsSettings) -> None:
        self._settings = settings

    async def send_otp(self, phone_number: str, otp_code: str, expiry_minutes: int) -> bool:
        message = format_otp_message(
            self._settings.sms_sender_name, otp_code, expiry_minutes
        )
        # "body" is not a redacted key: test mode must surface the code
        log.info(
            "sms_test_mode_dispatch",
            recipient=to_international(phone_number, self._settings.sms_country_code),
            body=message,
        )
        return True
