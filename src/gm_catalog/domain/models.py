"""Domain models for gm_catalog — pure dataclasses, no business logic."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Item:
    id: int                       # BIGSERIAL
    game_id: int
    seller_id: str
    name: str
    description: str
    price: int                    # RUB, >= 0
    photo_ref: str | None         # relative path under the uploads dir, or absolute URL
    status: str                   # ItemStatus value; changed only by the deal flow
    dedup_key: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
    seller_nickname: str | None = None  # filled by joined listings only


@dataclass
class NewItem:
    """Insert payload. ``name`` is already cleaned, ``dedup_key`` already built."""

    game_id: int
    seller_id: str
    name: str
    description: str
    price: int
    photo_ref: str | None
    dedup_key: str


@dataclass
class DealListing:
    """An item seen through one of its deals (purchases and sales history)."""

    item: Item
    deal_id: int
    deal_price: int
    deal_status: str
    deal_created_at: datetime | None
    counterparty_nickname: str | None
