"""Domain models for gm_deal — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Deal:
    id: int                      # BIGSERIAL
    item_id: int
    buyer_id: str
    seller_id: str               # the item's seller, joined in
    price: int                   # copied from the item at purchase; never changes
    status: str                  # DealStatus value
    created_at: datetime | None = None
    updated_at: datetime | None = None
    # Listing extras, filled by list queries only
    item_name: str | None = None
    item_photo: str | None = None
    buyer_nickname: str | None = None
    seller_nickname: str | None = None
