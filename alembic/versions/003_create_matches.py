"""003: create matches and match_players tables

Revision ID: 003
Revises: 002
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE matches (
            id                  VARCHAR(64)     PRIMARY KEY,
            status              VARCHAR(30)     NOT NULL DEFAULT 'waiting',
            game_mode           VARCHAR(20)     NOT NULL DEFAULT 'casual',
            winner_id           VARCHAR(64),
            winner_type         VARCHAR(10),
            validated_by        VARCHAR(64),
            validated_at        TIMESTAMPTZ,
            validation_notes    TEXT,
            started_at          TIMESTAMPTZ,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_matches_status CHECK (
                status IN ('waiting', 'in_progress', 'awaiting_validation',
                           'validated', 'cancelled')
            ),
            CONSTRAINT ck_matches_game_mode CHECK (
                game_mode IN ('casual', 'ranked', 'tournament')
            ),
            CONSTRAINT ck_matches_winner_type CHECK (
                winner_type IS NULL OR winner_type IN ('user', 'team')
            ),
            CONSTRAINT ck_matches_validated_has_winner CHECK (
                status <> 'validated' OR (winner_id IS NOT NULL AND validated_at IS NOT NULL)
            )
        );
    """)
    op.execute("CREATE INDEX idx_matches_status ON matches (status);")
    op.execute("""
        CREATE TRIGGER trg_matches_updated_at
            BEFORE UPDATE ON matches
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("""
        CREATE TABLE match_players (
            match_id        VARCHAR(64)     NOT NULL REFERENCES matches(id),
            user_id         VARCHAR(64)     NOT NULL REFERENCES users(id),
            team_id         VARCHAR(64),
            PRIMARY KEY (match_id, user_id)
        );
    """)
    op.execute("CREATE INDEX idx_match_players_team ON match_players (match_id, team_id);")
    op.execute("COMMENT ON TABLE matches IS 'Match lifecycle; validated exactly once by settlement';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS match_players CASCADE;")
    op.execute("DROP TABLE IF EXISTS matches CASCADE;")
