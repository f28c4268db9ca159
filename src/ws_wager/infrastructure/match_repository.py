"""MatchRepository — read matches and move them out of their open states.

Both status changes are compare-and-set. mark_validated only matches rows still
in `awaiting_validation`, so of two concurrent settlements exactly one gets a
row back. Bet actions read the match FOR SHARE, which blocks behind an
in-flight settlement's row lock until it commits.
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.ws_wager.domain.models import Match, MatchPlayer

_MATCH_COLUMNS = """
    id, status, game_mode, winner_id, winner_type, validated_by,
    validated_at, validation_notes, started_at, created_at, updated_at
"""

_GET_MATCH_SQL = text(f"SELECT {_MATCH_COLUMNS} FROM matches WHERE id = :match_id")

_GET_MATCH_FOR_SHARE_SQL = text(
    f"SELECT {_MATCH_COLUMNS} FROM matches WHERE id = :match_id FOR SHARE"
)

_GET_PLAYERS_SQL = text("""
    SELECT user_id, team_id
    FROM match_players
    WHERE match_id = :match_id
    ORDER BY user_id
""")

_MARK_VALIDATED_SQL = text(f"""
    UPDATE matches
    SET status = 'validated',
        winner_id = :winner_id,
        winner_type = :winner_type,
        validated_by = :validated_by,
        validated_at = :validated_at,
        validation_notes = :notes,
        updated_at = NOW()
    WHERE id = :match_id AND status = 'awaiting_validation'
    RETURNING {_MATCH_COLUMNS}
""")

_MARK_CANCELLED_SQL = text(f"""
    UPDATE matches
    SET status = 'cancelled',
        validated_by = :validated_by,
        validated_at = :validated_at,
        validation_notes = :notes,
        updated_at = NOW()
    WHERE id = :match_id
      AND status IN ('waiting', 'in_progress', 'awaiting_validation')
    RETURNING {_MATCH_COLUMNS}
""")


def _row_to_match(row: object, players: list[MatchPlayer] | None = None) -> Match:
    return Match(
        id=row.id,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        game_mode=row.game_mode,  # type: ignore[attr-defined]
        players=players or [],
        winner_id=row.winner_id,  # type: ignore[attr-defined]
        winner_type=row.winner_type,  # type: ignore[attr-defined]
        validated_by=row.validated_by,  # type: ignore[attr-defined]
        validated_at=row.validated_at,  # type: ignore[attr-defined]
        validation_notes=row.validation_notes,  # type: ignore[attr-defined]
        started_at=row.started_at,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class MatchRepository:
    async def get_match(
        self,
        db: AsyncSession,
        match_id: str,
        with_players: bool = False,
        for_share: bool = False,
    ) -> Match | None:
        sql = _GET_MATCH_FOR_SHARE_SQL if for_share else _GET_MATCH_SQL
        row = (await db.execute(sql, {"match_id": match_id})).fetchone()
        if row is None:
            return None
        players: list[MatchPlayer] = []
        if with_players:
            result = await db.execute(_GET_PLAYERS_SQL, {"match_id": match_id})
            players = [
                MatchPlayer(user_id=str(p.user_id), team_id=p.team_id)
                for p in result.fetchall()
            ]
        return _row_to_match(row, players)

    async def mark_validated(
        self,
        db: AsyncSession,
        match_id: str,
        winner_id: str,
        winner_type: str,
        validated_by: str,
        validated_at: datetime,
        notes: str | None,
    ) -> Match | None:
        result = await db.execute(
            _MARK_VALIDATED_SQL,
            {
                "match_id": match_id,
                "winner_id": winner_id,
                "winner_type": winner_type,
                "validated_by": validated_by,
                "validated_at": validated_at,
                "notes": notes,
            },
        )
        row = result.fetchone()
        return _row_to_match(row) if row else None

    async def mark_cancelled(
        self,
        db: AsyncSession,
        match_id: str,
        cancelled_by: str,
        cancelled_at: datetime,
        reason: str,
    ) -> Match | None:
        result = await db.execute(
            _MARK_CANCELLED_SQL,
            {
                "match_id": match_id,
                "validated_by": cancelled_by,
                "validated_at": cancelled_at,
                "notes": reason,
            },
        )
        row = result.fetchone()
        return _row_to_match(row) if row else None
