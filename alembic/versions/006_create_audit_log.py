"""006: create audit_log table

Revision ID: 006
Revises: 005
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE audit_log (
            id              BIGSERIAL       PRIMARY KEY,
            event_type      VARCHAR(30)     NOT NULL,
            entity_type     VARCHAR(20)     NOT NULL,
            entity_id       VARCHAR(64)     NOT NULL,
            actor_id        VARCHAR(64)     NOT NULL,
            payload         JSONB           NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_audit_event_type CHECK (
                event_type IN ('MATCH_VALIDATED', 'MATCH_VOIDED', 'RANK_ADJUSTED')
            )
        );
    """)
    op.execute("CREATE INDEX idx_audit_entity ON audit_log (entity_type, entity_id, created_at);")
    op.execute("""
        CREATE TRIGGER trg_audit_log_append_only
            BEFORE UPDATE OR DELETE ON audit_log
            FOR EACH ROW EXECUTE FUNCTION fn_reject_mutation();
    """)
    op.execute("COMMENT ON TABLE audit_log IS 'Admin actions with inputs and computed outcome — append-only';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS audit_log CASCADE;")
