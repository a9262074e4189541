"""Pydantic schemas for gm_chat."""

from pydantic import BaseModel, Field, field_validator

from src.gm_catalog.domain.title import normalize_media_url
from src.gm_chat.domain.models import ChatMessage, ChatSummary
from src.gm_common.datetime_utils import to_iso


class PostMessageRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=4000)

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Message text is empty")
        return v


class ChatSummaryResponse(BaseModel):
    id: int
    deal_id: int
    item_name: str
    partner_nickname: str
    partner_avatar: str
    last_message: str | None
    last_time: str

    @classmethod
    def from_domain(cls, summary: ChatSummary) -> "ChatSummaryResponse":
        return cls(
            id=summary.id,
            deal_id=summary.deal_id,
            item_name=summary.item_name,
            partner_nickname=summary.partner_nickname,
            partner_avatar=normalize_media_url(summary.partner_avatar),
            last_message=summary.last_message,
            last_time=to_iso(summary.last_time),
        )


class MessageResponse(BaseModel):
    id: int
    type: str
    text: str
    sender_id: str | None
    me: bool
    created_at: str

    @classmethod
    def from_domain(cls, msg: ChatMessage, viewer_id: str) -> "MessageResponse":
        return cls(
            id=msg.id,
            type=msg.msg_type,
            text=msg.text,
            sender_id=msg.sender_id,
            me=msg.sender_id == viewer_id,
            created_at=to_iso(msg.created_at),
        )
