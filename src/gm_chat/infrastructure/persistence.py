"""ChatRepository — raw SQL over ``chats`` and ``chat_messages``.

``chats.deal_id`` is UNIQUE: get_or_create_for_deal inserts with
ON CONFLICT DO NOTHING and falls back to reading the existing row.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_chat.domain.models import Chat, ChatMessage, ChatSummary
from src.gm_common.errors import InternalError

_CHAT_COLUMNS = "id, deal_id, buyer_id, seller_id, created_at"
_MESSAGE_COLUMNS = "id, chat_id, sender_id, msg_type, text, created_at"

_INSERT_CHAT_SQL = text(f"""
    INSERT INTO chats (deal_id, buyer_id, seller_id)
    VALUES (:deal_id, :buyer_id, :seller_id)
    ON CONFLICT (deal_id) DO NOTHING
    RETURNING {_CHAT_COLUMNS}
""")

_GET_BY_DEAL_SQL = text(f"""
    SELECT {_CHAT_COLUMNS} FROM chats WHERE deal_id = :deal_id
""")

_GET_CHAT_SQL = text(f"""
    SELECT {_CHAT_COLUMNS} FROM chats WHERE id = :chat_id
""")

_INSERT_MESSAGE_SQL = text(f"""
    INSERT INTO chat_messages (chat_id, sender_id, msg_type, text)
    VALUES (:chat_id, :sender_id, :msg_type, :text)
    RETURNING {_MESSAGE_COLUMNS}
""")

_LIST_FOR_USER_SQL = text("""
    SELECT c.id, c.deal_id,
           i.name AS item_name,
           partner.nickname AS partner_nickname,
           partner.avatar_url AS partner_avatar,
           last.text AS last_message,
           last.created_at AS last_time
    FROM chats c
    JOIN deals d ON d.id = c.deal_id
    JOIN items i ON i.id = d.item_id
    JOIN users partner
      ON partner.id = CASE WHEN c.buyer_id = :user_id THEN c.seller_id ELSE c.buyer_id END
    LEFT JOIN LATERAL (
        SELECT m.text, m.created_at
        FROM chat_messages m
        WHERE m.chat_id = c.id
        ORDER BY m.id DESC
        LIMIT 1
    ) last ON TRUE
    WHERE c.buyer_id = :user_id OR c.seller_id = :user_id
    ORDER BY COALESCE(last.created_at, c.created_at) DESC, c.id DESC
""")

_LIST_MESSAGES_SQL = text(f"""
    SELECT {_MESSAGE_COLUMNS}
    FROM chat_messages
    WHERE chat_id = :chat_id
      AND (CAST(:after_id AS BIGINT) IS NULL OR id > CAST(:after_id AS BIGINT))
    ORDER BY id ASC
    LIMIT :limit
""")


def _row_to_chat(row: object) -> Chat:
    return Chat(
        id=row.id,  # type: ignore[attr-defined]
        deal_id=row.deal_id,  # type: ignore[attr-defined]
        buyer_id=str(row.buyer_id),  # type: ignore[attr-defined]
        seller_id=str(row.seller_id),  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


def _row_to_message(row: object) -> ChatMessage:
    sender = row.sender_id  # type: ignore[attr-defined]
    return ChatMessage(
        id=row.id,  # type: ignore[attr-defined]
        chat_id=row.chat_id,  # type: ignore[attr-defined]
        sender_id=str(sender) if sender is not None else None,
        msg_type=row.msg_type,  # type: ignore[attr-defined]
        text=row.text,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class ChatRepository:
    async def get_or_create_for_deal(
        self, db: AsyncSession, deal_id: int, buyer_id: str, seller_id: str
    ) -> Chat:
        result = await db.execute(
            _INSERT_CHAT_SQL,
            {"deal_id": deal_id, "buyer_id": buyer_id, "seller_id": seller_id},
        )
        row = result.fetchone()
        if row is None:
            result = await db.execute(_GET_BY_DEAL_SQL, {"deal_id": deal_id})
            row = result.fetchone()
        if row is None:
            raise InternalError(f"Chat for deal {deal_id} could not be created")
        return _row_to_chat(row)

    async def get_chat(self, db: AsyncSession, chat_id: int) -> Chat | None:
        result = await db.execute(_GET_CHAT_SQL, {"chat_id": chat_id})
        row = result.fetchone()
        return _row_to_chat(row) if row else None

    async def add_message(
        self,
        db: AsyncSession,
        chat_id: int,
        sender_id: str | None,
        msg_type: str,
        text: str,
    ) -> ChatMessage:
        result = await db.execute(
            _INSERT_MESSAGE_SQL,
            {"chat_id": chat_id, "sender_id": sender_id, "msg_type": msg_type, "text": text},
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Chat message insert returned no rows")
        return _row_to_message(row)

    async def list_for_user(self, db: AsyncSession, user_id: str) -> list[ChatSummary]:
        result = await db.execute(_LIST_FOR_USER_SQL, {"user_id": user_id})
        return [
            ChatSummary(
                id=row.id,
                deal_id=row.deal_id,
                item_name=row.item_name,
                partner_nickname=row.partner_nickname,
                partner_avatar=row.partner_avatar,
                last_message=row.last_message,
                last_time=row.last_time,
            )
            for row in result.fetchall()
        ]

    async def list_messages(
        self, db: AsyncSession, chat_id: int, after_id: int | None, limit: int
    ) -> list[ChatMessage]:
        result = await db.execute(
            _LIST_MESSAGES_SQL, {"chat_id": chat_id, "after_id": after_id, "limit": limit}
        )
        return [_row_to_message(row) for row in result.fetchall()]
