"""Global enums — must match DB CHECK constraints exactly (see alembic/versions)."""

from enum import Enum


class ItemStatus(str, Enum):
    ACTIVE = "active"
    RESERVED = "reserved"
    SOLD = "sold"


class DealStatus(str, Enum):
    PENDING = "pending"
    SELLER_CONFIRMED = "seller_confirmed"
    COMPLETED = "completed"
    DISPUTE = "dispute"


class OperationType(str, Enum):
    # Wallet (simulated)
    TOPUP = "topup"
    WITHDRAW = "withdraw"
    # Administrative adjustments
    ADMIN_CREDIT = "admin_credit"
    ADMIN_DEBIT = "admin_debit"
    # Escrow movements driven by deals
    DEAL_FREEZE = "deal_freeze"
    DEAL_RELEASE = "deal_release"
    DEAL_PAYOUT = "deal_payout"


class OperationStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class ChatMessageType(str, Enum):
    TEXT = "text"
    SYSTEM = "system"
