"""Pydantic schemas for the admin API."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from src.gm_catalog.domain.title import normalize_media_url
from src.gm_common.datetime_utils import to_iso
from src.gm_common.money import amount_to_display


class CreditRequest(BaseModel):
    amount: int
    reason: str | None = Field(None, max_length=500)

    @field_validator("amount")
    @classmethod
    def amount_not_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("amount must not be 0")
        return v


class BulkDeleteRequest(BaseModel):
    # Raw values: malformed ids are reported per entry instead of failing the batch
    ids: list[int | str] = Field(..., min_length=1, max_length=500)


class AdminUserResponse(BaseModel):
    user_id: str
    nickname: str
    avatar_url: str
    is_active: bool
    available_balance: int
    frozen_balance: int
    balance_display: str
    created_at: str

    @classmethod
    def from_row(
        cls,
        user_id: str,
        nickname: str,
        avatar_url: str | None,
        is_active: bool,
        available: int,
        frozen: int,
        created_at: datetime | None,
    ) -> "AdminUserResponse":
        return cls(
            user_id=user_id,
            nickname=nickname,
            avatar_url=normalize_media_url(avatar_url),
            is_active=is_active,
            available_balance=available,
            frozen_balance=frozen,
            balance_display=amount_to_display(available),
            created_at=to_iso(created_at),
        )


class CreditResponse(BaseModel):
    user_id: str
    operation_id: int
    op_type: str
    amount: int
    available_balance: int
    frozen_balance: int


class SkippedItem(BaseModel):
    id: int | str
    reason: str     # bad_id | not_found | has_deals


class BulkDeleteResponse(BaseModel):
    deleted: list[int]
    skipped: list[SkippedItem]


class SanitizeResponse(BaseModel):
    total: int
    updated: int
