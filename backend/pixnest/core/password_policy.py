"""Password Policy: what bcrypt can safely hash.

Invariants:
    - bcrypt consumes at most 72 bytes; longer inputs are rejected, never truncated
    - Length is measured in UTF-8 bytes, not characters
"""

from pixnest.core.errors import PasswordPolicyError

BCRYPT_MAX_BYTES = 72
MIN_PASSWORD_CHARS = 6


def encode_password(raw_password: str) -> bytes:
    """UTF-8 encode a password that satisfies the policy."""
    if len(raw_password) < MIN_PASSWORD_CHARS:
        raise PasswordPolicyError(
            f"Password must be at least {MIN_PASSWORD_CHARS} characters",
        )
    encoded = raw_password.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_BYTES:
        raise PasswordPolicyError(
            f"Password must be at most {BCRYPT_MAX_BYTES} bytes",
        )
    return encoded


def fits_bcrypt(raw_password: str) -> bool:
    return len(raw_password.encode("utf-8")) <= BCRYPT_MAX_BYTES
