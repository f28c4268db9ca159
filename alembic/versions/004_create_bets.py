"""004: create bets table

Revision ID: 004
Revises: 003
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE bets (
            id              VARCHAR(64)     PRIMARY KEY,
            match_id        VARCHAR(64)     NOT NULL REFERENCES matches(id),
            user_id         VARCHAR(64)     NOT NULL REFERENCES users(id),
            amount          BIGINT          NOT NULL,
            odd             NUMERIC(8, 2)   NOT NULL,
            potential_win   BIGINT          NOT NULL,
            status          VARCHAR(20)     NOT NULL DEFAULT 'active',
            cashout_amount  BIGINT,
            win_amount      BIGINT,
            settled_at      TIMESTAMPTZ,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_bets_amount_gt_0 CHECK (amount > 0),
            CONSTRAINT ck_bets_potential_win_gte_0 CHECK (potential_win >= 0),
            CONSTRAINT ck_bets_status CHECK (
                status IN ('active', 'won', 'lost', 'cashout', 'cancelled')
            ),
            CONSTRAINT ck_bets_settled_iff_terminal CHECK (
                (status = 'active') = (settled_at IS NULL)
            ),
            CONSTRAINT ck_bets_cashout_amount CHECK (
                (status = 'cashout') = (cashout_amount IS NOT NULL)
            )
        );
    """)
    op.execute("CREATE INDEX idx_bets_match_status ON bets (match_id, status);")
    op.execute("CREATE INDEX idx_bets_user ON bets (user_id, id DESC);")
    op.execute("""
        CREATE TRIGGER trg_bets_updated_at
            BEFORE UPDATE ON bets
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE bets IS 'Wagers; active -> won | lost | cashout | cancelled (terminal)';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS bets CASCADE;")
