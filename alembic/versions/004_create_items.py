"""004: create items table

Revision ID: 004
Revises: 003
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE items (
            id              BIGSERIAL       PRIMARY KEY,
            game_id         BIGINT          NOT NULL,
            seller_id       UUID            NOT NULL REFERENCES users (id),
            name            TEXT            NOT NULL,
            description     TEXT            NOT NULL DEFAULT '',
            price           BIGINT          NOT NULL,
            photo_ref       VARCHAR(500)    NOT NULL,
            status          VARCHAR(16)     NOT NULL DEFAULT 'active',
            dedup_key       TEXT            NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_items_dedup_key   UNIQUE (dedup_key),
            CONSTRAINT ck_items_price_gte_0 CHECK (price >= 0),
            CONSTRAINT ck_items_status      CHECK (status IN ('active', 'reserved', 'sold'))
        );
    """)
    op.execute("CREATE INDEX idx_items_game_status ON items (game_id, status);")
    op.execute("CREATE INDEX idx_items_seller ON items (seller_id, game_id);")
    op.execute("""
        CREATE TRIGGER trg_items_updated_at
            BEFORE UPDATE ON items
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON COLUMN items.dedup_key IS 'scheme|game_id|seller_id|title_key';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS items CASCADE;")
