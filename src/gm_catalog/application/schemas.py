"""Pydantic schemas for gm_catalog API responses."""

from pydantic import BaseModel

from src.gm_catalog.domain.models import DealListing, Item
from src.gm_catalog.domain.title import normalize_media_url
from src.gm_common.datetime_utils import to_iso
from src.gm_common.money import amount_to_display


class ItemResponse(BaseModel):
    id: int
    game_id: int
    seller_id: str
    title: str
    description: str
    price: int
    price_display: str
    image_url: str
    status: str
    created_at: str
    seller_nickname: str | None = None

    @classmethod
    def from_domain(cls, item: Item) -> "ItemResponse":
        return cls(
            id=item.id,
            game_id=item.game_id,
            seller_id=item.seller_id,
            title=item.name,
            description=item.description,
            price=item.price,
            price_display=amount_to_display(item.price),
            image_url=normalize_media_url(item.photo_ref),
            status=item.status,
            created_at=to_iso(item.created_at),
            seller_nickname=item.seller_nickname,
        )


class DealListingResponse(BaseModel):
    deal_id: int
    deal_status: str
    price: int
    price_display: str
    date: str
    counterparty_nickname: str | None
    item: ItemResponse

    @classmethod
    def from_domain(cls, listing: DealListing) -> "DealListingResponse":
        return cls(
            deal_id=listing.deal_id,
            deal_status=listing.deal_status,
            price=listing.deal_price,
            price_display=amount_to_display(listing.deal_price),
            date=to_iso(listing.deal_created_at),
            counterparty_nickname=listing.counterparty_nickname,
            item=ItemResponse.from_domain(listing.item),
        )
