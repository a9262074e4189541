"""Unit tests for ChatApplicationService participant checks."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.gm_chat.application.schemas import PostMessageRequest
from src.gm_chat.application.service import ChatApplicationService
from src.gm_chat.domain.models import Chat, ChatMessage
from src.gm_common.errors import ChatNotFoundError, ForbiddenError

BUYER = "buyer-1"
SELLER = "seller-1"


def _repo() -> AsyncMock:
    repo = AsyncMock()
    repo.get_chat.return_value = Chat(id=5, deal_id=9, buyer_id=BUYER, seller_id=SELLER)
    return repo


def _db() -> MagicMock:
    db = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    return db


class TestAccess:
    async def test_missing_chat(self) -> None:
        repo = _repo()
        repo.get_chat.return_value = None
        with pytest.raises(ChatNotFoundError):
            await ChatApplicationService(repo).list_messages(_db(), 5, BUYER)

    async def test_outsider_forbidden(self) -> None:
        repo = _repo()
        with pytest.raises(ForbiddenError):
            await ChatApplicationService(repo).post_message(_db(), 5, "stranger", "hi")
        repo.add_message.assert_not_awaited()


class TestMessages:
    async def test_list_marks_own_messages_and_passes_after_id(self) -> None:
        repo = _repo()
        repo.list_messages.return_value = [
            ChatMessage(id=1, chat_id=5, sender_id=None, msg_type="system", text="opened"),
            ChatMessage(id=2, chat_id=5, sender_id=SELLER, msg_type="text", text="hello"),
            ChatMessage(id=3, chat_id=5, sender_id=BUYER, msg_type="text", text="hi"),
        ]

        messages = await ChatApplicationService(repo).list_messages(_db(), 5, BUYER, after_id=0)

        assert [(m.type, m.me) for m in messages] == [
            ("system", False), ("text", False), ("text", True)
        ]
        assert repo.list_messages.call_args.args[2:] == (0, 200)

    async def test_post_commits_text_message(self) -> None:
        repo = _repo()
        repo.add_message.return_value = ChatMessage(
            id=4, chat_id=5, sender_id=SELLER, msg_type="text", text="sent"
        )
        db = _db()

        msg = await ChatApplicationService(repo).post_message(db, 5, SELLER, "sent")

        assert msg.me is True
        assert repo.add_message.call_args.args[1:] == (5, SELLER, "text", "sent")
        db.commit.assert_awaited_once()


def test_post_request_strips_and_rejects_blank() -> None:
    assert PostMessageRequest(text="  hi  ").text == "hi"
    with pytest.raises(ValueError):
        PostMessageRequest(text="   ")
