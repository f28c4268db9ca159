"""007: create platform_revenue table

Revision ID: 007
Revises: 006
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE platform_revenue (
            id                  BIGSERIAL       PRIMARY KEY,
            match_id            VARCHAR(64)     NOT NULL REFERENCES matches(id),
            total_bet_amount    BIGINT          NOT NULL,
            platform_fee        BIGINT          NOT NULL,
            prize_pool          BIGINT          NOT NULL,
            rounding_remainder  BIGINT          NOT NULL DEFAULT 0,
            unclaimed_pool      BIGINT          NOT NULL DEFAULT 0,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_platform_revenue_match UNIQUE (match_id),
            CONSTRAINT ck_platform_revenue_non_negative CHECK (
                platform_fee >= 0 AND rounding_remainder >= 0 AND unclaimed_pool >= 0
            ),
            CONSTRAINT ck_platform_revenue_pool CHECK (
                prize_pool = total_bet_amount - platform_fee
            )
        );
    """)
    op.execute("COMMENT ON TABLE platform_revenue IS 'Per-match fee, rounding remainder and unclaimed pool';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS platform_revenue CASCADE;")
