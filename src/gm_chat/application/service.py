"""ChatApplicationService — deal chats, readable and writable by the two parties only."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_chat.application.schemas import ChatSummaryResponse, MessageResponse
from src.gm_chat.domain.models import Chat
from src.gm_chat.domain.repository import ChatRepositoryProtocol
from src.gm_chat.infrastructure.persistence import ChatRepository
from src.gm_common.enums import ChatMessageType
from src.gm_common.errors import ChatNotFoundError, ForbiddenError

logger = logging.getLogger(__name__)


class ChatApplicationService:
    def __init__(self, repo: ChatRepositoryProtocol | None = None) -> None:
        self._repo: ChatRepositoryProtocol = repo or ChatRepository()

    async def _participant_chat(self, db: AsyncSession, chat_id: int, user_id: str) -> Chat:
        chat = await self._repo.get_chat(db, chat_id)
        if chat is None:
            raise ChatNotFoundError(str(chat_id))
        if not chat.is_participant(user_id):
            raise ForbiddenError("Only deal participants can access this chat")
        return chat

    async def list_chats(self, db: AsyncSession, user_id: str) -> list[ChatSummaryResponse]:
        summaries = await self._repo.list_for_user(db, user_id)
        return [ChatSummaryResponse.from_domain(s) for s in summaries]

    async def list_messages(
        self,
        db: AsyncSession,
        chat_id: int,
        user_id: str,
        after_id: int | None = None,
        limit: int = 200,
    ) -> list[MessageResponse]:
        """Messages in ascending order; pollers pass the last id they saw as after_id."""
        await self._participant_chat(db, chat_id, user_id)
        messages = await self._repo.list_messages(db, chat_id, after_id, limit)
        return [MessageResponse.from_domain(m, user_id) for m in messages]

    async def post_message(
        self, db: AsyncSession, chat_id: int, user_id: str, text: str
    ) -> MessageResponse:
        await self._participant_chat(db, chat_id, user_id)
        try:
            msg = await self._repo.add_message(
                db, chat_id, user_id, ChatMessageType.TEXT.value, text
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.debug("Chat %d: message %d from %s", chat_id, msg.id, user_id)
        return MessageResponse.from_domain(msg, user_id)
