"""008: create notifications table

Revision ID: 008
Revises: 007
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "008"
down_revision: Union[str, None] = "007"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE notifications (
            id                  BIGSERIAL       PRIMARY KEY,
            user_id             VARCHAR(64)     NOT NULL,
            notification_type   VARCHAR(30)     NOT NULL,
            title               VARCHAR(200)    NOT NULL,
            message             TEXT            NOT NULL,
            data                JSONB           NOT NULL DEFAULT '{}'::jsonb,
            is_read             BOOLEAN         NOT NULL DEFAULT FALSE,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_notifications_type CHECK (
                notification_type IN ('match_won', 'match_lost', 'rank_changed',
                                      'bet_cashout', 'bet_cancelled', 'match_voided')
            )
        );
    """)
    op.execute("CREATE INDEX idx_notifications_user ON notifications (user_id, created_at DESC);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS notifications CASCADE;")
