"""
Tests for token verification and avatar encoding helpers.

Run with: pytest storemap/core/test_security.py -v
"""

import base64
import uuid
from datetime import timedelta

import pytest

from .security import create_access_token, decode_access_token, decode_data_url, encode_data_url


def test_token_round_trip():
    user_id = uuid.uuid4()

    payload = decode_access_token(create_access_token(user_id, "admin"))

    assert payload["sub"] == str(user_id)
    assert payload["role"] == "admin"


def test_expired_token_is_rejected():
    token = create_access_token(uuid.uuid4(), "user", expires_delta=timedelta(seconds=-1))

    assert decode_access_token(token) is None


def test_tampered_token_is_rejected():
    token = create_access_token(uuid.uuid4(), "user")

    assert decode_access_token(token[:-2] + "xx") is None


@pytest.mark.parametrize("payload", [
    "data:image/png;base64," + base64.b64encode(b"\x89PNG").decode(),
    base64.b64encode(b"\x89PNG").decode(),
])
def test_decode_data_url_accepts_prefixed_and_bare(payload):
    assert decode_data_url(payload) == b"\x89PNG"


def test_decode_data_url_rejects_garbage():
    with pytest.raises(ValueError):
        decode_data_url("data:image/png;base64,@@not-base64@@")


def test_encode_data_url():
    assert encode_data_url(b"\x89PNG") == "data:image/png;base64,iVBORw=="
