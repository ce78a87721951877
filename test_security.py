from datetime import timedelta

import jwt
import pytest

from flow.core.config import settings
from flow.core.security import (
    InvalidSessionToken,
    decode_session_token,
    encode_session_token,
    hash_password,
    verify_password,
)
from flow.storage import utcnow


def test_password_hash_roundtrip():
    hashed = hash_password("s3cret-pass")

    assert hashed != "s3cret-pass"
    assert verify_password("s3cret-pass", hashed)
    assert not verify_password("wrong", hashed)


def test_verify_without_hash():
    assert not verify_password("anything", None)
    assert not verify_password("anything", "not-a-bcrypt-hash")


def test_session_token_carries_sid():
    token = encode_session_token("abc123", utcnow() + timedelta(days=1))

    assert decode_session_token(token) == "abc123"


def test_expired_token_is_rejected():
    token = encode_session_token("abc123", utcnow() - timedelta(seconds=5))

    with pytest.raises(InvalidSessionToken):
        decode_session_token(token)


def test_token_signed_with_other_secret_is_rejected():
    forged = jwt.encode({"sid": "abc123"}, "someone-else", algorithm="HS256")

    with pytest.raises(InvalidSessionToken):
        decode_session_token(forged)


def test_token_without_sid_is_rejected():
    token = jwt.encode({"user": "x"}, settings.session_secret, algorithm="HS256")

    with pytest.raises(InvalidSessionToken):
        decode_session_token(token)
