"""005: create deals table

Revision ID: 005
Revises: 004
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE deals (
            id              BIGSERIAL       PRIMARY KEY,
            item_id         BIGINT          NOT NULL REFERENCES items (id),
            buyer_id        UUID            NOT NULL REFERENCES users (id),
            price           BIGINT          NOT NULL,
            status          VARCHAR(20)     NOT NULL DEFAULT 'pending',
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_deals_price_gte_0 CHECK (price >= 0),
            CONSTRAINT ck_deals_status      CHECK (
                status IN ('pending', 'seller_confirmed', 'completed', 'dispute')
            )
        );
    """)
    op.execute("CREATE INDEX idx_deals_buyer ON deals (buyer_id, created_at DESC);")
    op.execute("CREATE INDEX idx_deals_item ON deals (item_id);")
    op.execute("""
        CREATE TRIGGER trg_deals_updated_at
            BEFORE UPDATE ON deals
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON COLUMN deals.price IS 'Copied from the item at purchase; immutable';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS deals CASCADE;")
