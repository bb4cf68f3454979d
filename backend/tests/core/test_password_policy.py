"""Password Policy: bcrypt's 72-byte ceiling is enforced, not silently truncated."""

import pytest

from pixnest.core.errors import PasswordPolicyError
from pixnest.core.password_policy import encode_password, fits_bcrypt


def test_encodes_valid_password():
    assert encode_password("correct-horse") == b"correct-horse"


def test_rejects_short_password():
    with pytest.raises(PasswordPolicyError):
        encode_password("abc")


def test_rejects_more_than_72_bytes_even_if_fewer_chars():
    # 40 chars, 80 bytes in UTF-8
    password = "é" * 40
    assert not fits_bcrypt(password)
    with pytest.raises(PasswordPolicyError):
        encode_password(password)


def test_exactly_72_bytes_is_fine():
    assert encode_password("a" * 72) == b"a" * 72
