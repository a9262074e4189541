"""Domain models for gm_chat — one chat per deal, polled by clients."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Chat:
    id: int
    deal_id: int
    buyer_id: str
    seller_id: str
    created_at: datetime | None = None

    def is_participant(self, user_id: str) -> bool:
        return user_id in (self.buyer_id, self.seller_id)


@dataclass
class ChatMessage:
    id: int
    chat_id: int
    sender_id: str | None        # None for system messages
    msg_type: str                # ChatMessageType value
    text: str
    created_at: datetime | None = None


@dataclass
class ChatSummary:
    id: int
    deal_id: int
    item_name: str
    partner_nickname: str
    partner_avatar: str | None
    last_message: str | None
    last_time: datetime | None
