"""Unit tests for JWT handler."""

from datetime import timedelta
from unittest.mock import patch

import pytest
from jose import jwt

from src.gm_common.errors import InvalidCredentialsError, InvalidRefreshTokenError
from src.gm_gateway.auth.jwt_handler import (
    create_access_token,
    create_refresh_token,
    decode_token,
)


def test_access_token_carries_id_nickname_and_type() -> None:
    token = create_access_token("user-123", "seller01")
    payload = jwt.get_unverified_claims(token)
    assert payload["sub"] == "user-123"
    assert payload["nick"] == "seller01"
    assert payload["type"] == "access"


def test_decode_valid_refresh_token() -> None:
    token = create_refresh_token("user-abc", "buyer")
    payload = decode_token(token, expected_type="refresh")
    assert payload["sub"] == "user-abc"
    assert payload["type"] == "refresh"


def test_access_token_rejected_as_refresh() -> None:
    token = create_access_token("user-abc", "buyer")
    with pytest.raises(InvalidRefreshTokenError):
        decode_token(token, expected_type="refresh")


def test_refresh_token_rejected_as_access() -> None:
    token = create_refresh_token("user-abc", "buyer")
    with pytest.raises(InvalidCredentialsError):
        decode_token(token, expected_type="access")


def test_expired_access_token_raises_credentials_error() -> None:
    with patch("src.gm_gateway.auth.jwt_handler._ACCESS_EXPIRE", timedelta(seconds=-1)):
        token = create_access_token("user-abc", "buyer")
    with pytest.raises(InvalidCredentialsError):
        decode_token(token, expected_type="access")


def test_tampered_token_raises_error() -> None:
    token = create_access_token("user-abc", "buyer")
    with pytest.raises(InvalidCredentialsError):
        decode_token(token[:-4] + "xxxx", expected_type="access")
