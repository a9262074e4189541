"""Pydantic request/response schemas for gm_gateway."""

from pydantic import BaseModel, Field, field_validator


class RegisterRequest(BaseModel):
    nickname: str = Field(..., min_length=2, max_length=64)
    password: str = Field(..., min_length=6, max_length=128)

    @field_validator("nickname")
    @classmethod
    def strip_nickname(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Nickname must be at least 2 characters")
        return v


class LoginRequest(BaseModel):
    nickname: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class UserInfo(BaseModel):
    user_id: str
    nickname: str
    is_admin: bool = False


class MeResponse(BaseModel):
    user_id: str
    nickname: str
    avatar_url: str | None
    available_balance: int
    frozen_balance: int
    is_admin: bool


class RegisterResponse(BaseModel):
    user_id: str
    nickname: str
    access_token: str
    created_at: str


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
    user: UserInfo


class RefreshResponse(BaseModel):
    access_token: str
    expires_in: int
