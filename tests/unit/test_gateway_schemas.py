"""Unit tests for gm_gateway Pydantic schemas."""

import pytest
from pydantic import ValidationError

from src.gm_gateway.user.schemas import LoginResponse, RegisterRequest, UserInfo


class TestRegisterRequest:
    def test_valid_input(self) -> None:
        req = RegisterRequest(nickname="  Вася ", password="secret1")
        assert req.nickname == "Вася"

    def test_nickname_too_short_after_strip(self) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(nickname=" a ", password="secret1")

    def test_nickname_too_long(self) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(nickname="a" * 65, password="secret1")

    def test_password_too_short(self) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(nickname="alice", password="12345")


def test_login_response_defaults_to_bearer() -> None:
    resp = LoginResponse(
        access_token="a",
        refresh_token="r",
        expires_in=1800,
        user=UserInfo(user_id="u-1", nickname="alice"),
    )
    assert resp.token_type == "Bearer"
    assert resp.user.is_admin is False
