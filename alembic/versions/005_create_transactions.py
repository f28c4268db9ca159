"""005: create transactions table

Revision ID: 005
Revises: 004
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE transactions (
            id              BIGSERIAL       PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL REFERENCES users(id),
            tx_type         VARCHAR(20)     NOT NULL,
            amount          BIGINT          NOT NULL,
            balance_after   BIGINT          NOT NULL,
            status          VARCHAR(20)     NOT NULL DEFAULT 'completed',
            reference_type  VARCHAR(10)     NOT NULL,
            reference_id    VARCHAR(64)     NOT NULL,
            description     TEXT,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_transactions_type CHECK (
                tx_type IN ('bet', 'win', 'cashout', 'refund')
            ),
            CONSTRAINT ck_transactions_reference_type CHECK (
                reference_type IN ('match', 'bet')
            ),
            CONSTRAINT ck_transactions_sign CHECK (
                (tx_type = 'bet' AND amount < 0) OR (tx_type <> 'bet' AND amount >= 0)
            )
        );
    """)
    op.execute("CREATE INDEX idx_transactions_user ON transactions (user_id, id DESC);")
    op.execute(
        "CREATE INDEX idx_transactions_reference ON transactions (reference_type, reference_id);"
    )
    op.execute("""
        CREATE TRIGGER trg_transactions_append_only
            BEFORE UPDATE OR DELETE ON transactions
            FOR EACH ROW EXECUTE FUNCTION fn_reject_mutation();
    """)
    op.execute("COMMENT ON TABLE transactions IS 'Wallet movements — append-only, one row per balance change';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS transactions CASCADE;")
