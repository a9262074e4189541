"""Domain models for gm_account — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Account:
    user_id: str
    available_balance: int
    frozen_balance: int
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def total_balance(self) -> int:
        return self.available_balance + self.frozen_balance


@dataclass
class Operation:
    """Append-only audit record. ``amount`` is always positive; ``op_type`` carries the sign."""

    id: int                          # BIGSERIAL
    user_id: str
    op_type: str                     # OperationType value
    amount: int
    status: str                      # OperationStatus value
    reference_id: str | None = None  # deal id for escrow movements
    description: str | None = None
    created_at: datetime | None = None
