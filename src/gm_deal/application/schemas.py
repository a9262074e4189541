"""Pydantic schemas for gm_deal API responses."""

from pydantic import BaseModel

from src.gm_catalog.domain.title import normalize_media_url
from src.gm_common.datetime_utils import to_iso
from src.gm_common.money import amount_to_display
from src.gm_deal.domain.models import Deal
from src.gm_deal.domain.state_machine import DealRole


class DealResponse(BaseModel):
    id: int
    item_id: int
    item_name: str | None
    image_url: str
    price: int
    price_display: str
    status: str
    role: DealRole
    buyer_id: str
    seller_id: str
    buyer_nickname: str | None = None
    seller_nickname: str | None = None
    chat_id: int | None = None
    created_at: str

    @classmethod
    def from_domain(cls, deal: Deal, role: DealRole, chat_id: int | None = None) -> "DealResponse":
        return cls(
            id=deal.id,
            item_id=deal.item_id,
            item_name=deal.item_name,
            image_url=normalize_media_url(deal.item_photo),
            price=deal.price,
            price_display=amount_to_display(deal.price),
            status=deal.status,
            role=role,
            buyer_id=deal.buyer_id,
            seller_id=deal.seller_id,
            buyer_nickname=deal.buyer_nickname,
            seller_nickname=deal.seller_nickname,
            chat_id=chat_id,
            created_at=to_iso(deal.created_at),
        )


class DealActionResponse(BaseModel):
    success: bool = True
    deal_id: int
    status: str
