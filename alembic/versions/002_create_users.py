"""002: create users table

Revision ID: 002
Revises: 001
Create Date: 2026-10-16
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
            id              VARCHAR(64)     PRIMARY KEY,
            username        VARCHAR(64)     NOT NULL,
            balance         BIGINT          NOT NULL DEFAULT 0,
            rank_points     INTEGER         NOT NULL DEFAULT 0,
            version         BIGINT          NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_users_username        UNIQUE (username),
            CONSTRAINT ck_users_balance_gte_0   CHECK (balance >= 0),
            CONSTRAINT ck_users_rank_points_gte_0 CHECK (rank_points >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_users_rank_points ON users (rank_points DESC);")
    op.execute("""
        CREATE TRIGGER trg_users_updated_at
            BEFORE UPDATE ON users
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE users IS 'Wallet balance (cents) and rank points per user';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS users CASCADE;")
