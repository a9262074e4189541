"""006: create operations table

Revision ID: 006
Revises: 005
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE operations (
            id              BIGSERIAL       PRIMARY KEY,
            user_id         UUID            NOT NULL REFERENCES users (id),
            op_type         VARCHAR(20)     NOT NULL,
            amount          BIGINT          NOT NULL,
            status          VARCHAR(16)     NOT NULL DEFAULT 'completed',
            reference_id    VARCHAR(64),
            description     TEXT,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_operations_amount_gt_0 CHECK (amount > 0),
            CONSTRAINT ck_operations_type CHECK (op_type IN (
                'topup', 'withdraw', 'admin_credit', 'admin_debit',
                'deal_freeze', 'deal_release', 'deal_payout'
            )),
            CONSTRAINT ck_operations_status CHECK (status IN ('pending', 'completed'))
        );
    """)
    op.execute("CREATE INDEX idx_operations_user_id ON operations (user_id, id DESC);")
    op.execute("CREATE INDEX idx_operations_reference ON operations (reference_id);")
    op.execute("COMMENT ON TABLE operations IS 'Append-only balance audit log';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS operations CASCADE;")
