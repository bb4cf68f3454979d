"""Session Tokens: generation, hashing, and the ACTIVE/EXPIRED/INVALIDATED mapping."""

from datetime import datetime, timedelta, timezone

from pixnest.core.domain_types import SessionState
from pixnest.core.session_tokens import (
    as_utc, expiry_for, hash_token, new_token, session_state,
)

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def test_tokens_are_unique_and_long():
    tokens = {new_token() for _ in range(50)}
    assert len(tokens) == 50
    assert all(len(t) >= 40 for t in tokens)


def test_hash_is_deterministic_and_not_the_token():
    token = new_token()
    assert hash_token(token) == hash_token(token)
    assert hash_token(token) != token
    assert len(hash_token(token)) == 64


def test_expiry_for():
    assert expiry_for(NOW, 60) == NOW + timedelta(seconds=60)


def test_active_before_expiry():
    assert session_state(NOW + timedelta(seconds=1), None, NOW) is SessionState.ACTIVE


def test_expired_at_exact_expiry():
    assert session_state(NOW, None, NOW) is SessionState.EXPIRED


def test_invalidated_wins_over_expired():
    state = session_state(NOW - timedelta(days=1), NOW - timedelta(days=2), NOW)
    assert state is SessionState.INVALIDATED


def test_naive_datetimes_treated_as_utc():
    naive = datetime(2026, 10, 19, 13, 0)
    assert as_utc(naive).tzinfo is timezone.utc
    assert session_state(naive, None, NOW) is SessionState.ACTIVE
