"""002: create users table

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE users (
            id              UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            nickname        VARCHAR(64)     NOT NULL,
            password_hash   VARCHAR(255)    NOT NULL,
            avatar_url      VARCHAR(500),
            is_active       BOOLEAN         NOT NULL DEFAULT TRUE,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_users_nickname     UNIQUE (nickname),
            CONSTRAINT ck_users_nickname_len CHECK (LENGTH(nickname) >= 2)
        );
    """)
    op.execute("CREATE INDEX idx_users_nickname_lower ON users (LOWER(nickname));")
    op.execute("""
        CREATE TRIGGER trg_users_updated_at
            BEFORE UPDATE ON users
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE users IS 'Marketplace users: nickname + password login';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS users CASCADE;")
