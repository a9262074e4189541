"""Pydantic schemas and cursor utilities for gm_account API."""

import base64
import json

from pydantic import BaseModel, Field, field_validator

from src.gm_common.money import amount_to_display

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: int) -> str:
    """Encode a BIGINT primary key into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode a cursor string back to the last seen id. Returns None on error."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except (ValueError, KeyError, TypeError):
        return None


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class TopupRequest(BaseModel):
    amount: int = Field(..., gt=0, description="Amount to top up, RUB")
    bank: str = Field(..., min_length=1, max_length=32)


class WithdrawRequest(BaseModel):
    amount: int = Field(..., gt=0, description="Amount to withdraw, RUB")
    bank: str = Field(..., min_length=1, max_length=32)
    country: str = Field(..., min_length=2, max_length=2)
    card_number: str = Field(..., pattern=r"^\d{16}$")

    @field_validator("country")
    @classmethod
    def upper_country(cls, v: str) -> str:
        return v.upper()


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    user_id: str
    available_balance: int
    available_balance_display: str
    frozen_balance: int
    frozen_balance_display: str
    total_balance: int
    total_balance_display: str

    @classmethod
    def from_amounts(cls, user_id: str, available: int, frozen: int) -> "BalanceResponse":
        return cls(
            user_id=user_id,
            available_balance=available,
            available_balance_display=amount_to_display(available),
            frozen_balance=frozen,
            frozen_balance_display=amount_to_display(frozen),
            total_balance=available + frozen,
            total_balance_display=amount_to_display(available + frozen),
        )


class TopupResponse(BaseModel):
    operation_id: int
    status: str
    amount: int
    amount_display: str
    payment_details: str
    comment: str


class WithdrawResponse(BaseModel):
    operation_id: int
    status: str
    available_balance: int
    available_balance_display: str
    withdrawn: int
    withdrawn_display: str

    @classmethod
    def from_result(
        cls, operation_id: int, status: str, available: int, amount: int
    ) -> "WithdrawResponse":
        return cls(
            operation_id=operation_id,
            status=status,
            available_balance=available,
            available_balance_display=amount_to_display(available),
            withdrawn=amount,
            withdrawn_display=amount_to_display(amount),
        )


class OperationItem(BaseModel):
    id: int
    op_type: str
    amount: int
    amount_display: str
    status: str
    reference_id: str | None
    description: str | None
    created_at: str  # ISO8601 string


class OperationsResponse(BaseModel):
    items: list[OperationItem]
    next_cursor: str | None
    has_more: bool
