"""
Cryptographic helpers: password hashing and OTP hashing.

New passwords are hashed with argon2 (via argon2-cffi). Accounts created by
the earlier deployment carry BCrypt hashes (``$2a$``/``$2b$``/``$2y$``);
those still verify through the bcrypt library and are flagged for rehashing.
OTP codes are stored as SHA-256 digests.
"""

from __future__ import annotations

import hashlib
import hmac

import bcrypt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

_password_hasher = PasswordHasher()

BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def is_bcrypt_hash(password_hash: str | None) -> bool:
    return bool(password_hash) and password_hash.startswith(BCRYPT_PREFIXES)


def hash_password(plain_password: str) -> str:
    """Hash *plain_password* with argon2id.

    Returns:
        Argon2 hash string (includes algorithm parameters and salt).
    """
    return _password_hasher.hash(plain_password)


def verify_password(plain_password: str, password_hash: str | None) -> bool:
    """Verify *plain_password* against an argon2 or BCrypt *password_hash*.

    Returns:
        ``True`` if the password matches, ``False`` for any failure
        (wrong password, missing or invalid hash).
    """
    if not password_hash:
        return False
    if is_bcrypt_hash(password_hash):
        try:
            return bcrypt.checkpw(
                plain_password.encode("utf-8"), password_hash.encode("utf-8")
            )
        except ValueError:
            # malformed hash, or a password longer than bcrypt's 72-byte limit
            return False
    try:
        return _password_hasher.verify(password_hash, plain_password)
    except (VerificationError, InvalidHashError):
        return False


def password_needs_rehash(password_hash: str) -> bool:
    """True for BCrypt hashes and argon2 hashes with outdated parameters."""
    if is_bcrypt_hash(password_hash):
        return True
    try:
        return _password_hasher.check_needs_rehash(password_hash)
    except InvalidHashError:
        return True


def hash_otp(code: str) -> str:
    """Return the hex-encoded SHA-256 digest of an OTP *code*.

    The challenge store only ever sees this digest.
    """
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


def otp_matches(code: str, stored_digest: str) -> bool:
    """Constant-time comparison of a submitted *code* against its stored digest."""
    return hmac.compare_digest(hash_otp(code), stored_digest)
