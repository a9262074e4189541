"""007: create chats and chat_messages tables

Revision ID: 007
Revises: 006
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE chats (
            id              BIGSERIAL       PRIMARY KEY,
            deal_id         BIGINT          NOT NULL REFERENCES deals (id),
            buyer_id        UUID            NOT NULL REFERENCES users (id),
            seller_id       UUID            NOT NULL REFERENCES users (id),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_chats_deal_id UNIQUE (deal_id)
        );
    """)
    op.execute("CREATE INDEX idx_chats_buyer ON chats (buyer_id);")
    op.execute("CREATE INDEX idx_chats_seller ON chats (seller_id);")
    op.execute("""
        CREATE TABLE chat_messages (
            id              BIGSERIAL       PRIMARY KEY,
            chat_id         BIGINT          NOT NULL REFERENCES chats (id) ON DELETE CASCADE,
            sender_id       UUID            REFERENCES users (id),
            msg_type        VARCHAR(10)     NOT NULL DEFAULT 'text',
            text            TEXT            NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_chat_messages_type CHECK (msg_type IN ('text', 'system'))
        );
    """)
    op.execute("CREATE INDEX idx_chat_messages_chat ON chat_messages (chat_id, id);")
    op.execute("COMMENT ON COLUMN chat_messages.sender_id IS 'NULL for system messages';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS chat_messages CASCADE;")
    op.execute("DROP TABLE IF EXISTS chats CASCADE;")
