"""SmsProvider protocol: the OTP engine depends on this, not a concrete carrier."""

from typing import Protocol


class SmsProvider(Protocol):
    async def send_otp(self, phone_number: str, otp_code: str, expiry_minutes: int) -> bool: ...


def format_otp_message(sender_name: str, otp_code: str, expiry_minutes: int) -> str:
    return (
        f"Your {sender_name} verification code is: {otp_code}. "
        f"This code will expire in {expiry_minutes} minutes. "
        f"Do not share this code with anyone."
    )
