"""
Random code and identifier generators: pure, side-effect-free functions.

All generators use cryptographically secure sources (``secrets`` module).
"""

from __future__ import annotations

import secrets
import string


def generate_otp_code(length: int = 6) -> str:
    """Generate a cryptographically secure numeric OTP.

    Args:
        length: Number of digits (default 6).

    Returns:
        String of random decimal digits.
    """
    return "".join(secrets.choice(string.digits) for _ in range(length))


def generate_token_id() -> str:
    """Random ``jti`` claim so two tokens issued in the same second never collide."""
    return secrets.token_hex(16)


def generate_correlation_id() -> str:
    """Identifier shared by every ledger row that belongs to one login session."""
    return f"sess_{secrets.token_hex(12)}"


def generate_request_id() -> str:
    """Per-request id, bound into the log context and echoed as X-Request-ID."""
    return f"req_{secrets.token_hex(6)}"
