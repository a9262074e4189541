"""Repository Protocol for deal chats."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_chat.domain.models import Chat, ChatMessage, ChatSummary


class ChatRepositoryProtocol(Protocol):
    async def get_or_create_for_deal(
        self, db: AsyncSession, deal_id: int, buyer_id: str, seller_id: str
    ) -> Chat: ...

    async def get_chat(self, db: AsyncSession, chat_id: int) -> Chat | None: ...

    async def add_message(
        self,
        db: AsyncSession,
        chat_id: int,
        sender_id: str | None,
        msg_type: str,
        text: str,
    ) -> ChatMessage: ...

    async def list_for_user(self, db: AsyncSession, user_id: str) -> list[ChatSummary]: ...

    async def list_messages(
        self, db: AsyncSession, chat_id: int, after_id: int | None, limit: int
    ) -> list[ChatMessage]: ...
