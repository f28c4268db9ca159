"""BetRepository — concrete implementation of BetRepositoryProtocol.

Status transitions are a single compare-and-set UPDATE guarded by
`status = 'active'`. A result of 0 rows means another worker already moved
the bet to a terminal state; the caller turns that into InvalidStateError.

Transaction ownership: the CALLER opens and commits the unit of work.
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.ws_common.enums import BetStatus
from src.ws_common.errors import InternalError
from src.ws_wager.domain.models import Bet

_BET_COLUMNS = """
    id, match_id, user_id, amount, odd, potential_win, status,
    cashout_amount, win_amount, settled_at, created_at, updated_at
"""

_GET_BET_SQL = text(f"SELECT {_BET_COLUMNS} FROM bets WHERE id = :bet_id")

_INSERT_BET_SQL = text(f"""
    INSERT INTO bets (id, match_id, user_id, amount, odd, potential_win, status)
    VALUES (:id, :match_id, :user_id, :amount, :odd, :potential_win, :status)
    RETURNING {_BET_COLUMNS}
""")

# Row locks keep a concurrent cashout/cancel from touching these bets until settlement commits
_LIST_ACTIVE_FOR_MATCH_SQL = text(f"""
    SELECT {_BET_COLUMNS}
    FROM bets
    WHERE match_id = :match_id AND status = 'active'
    ORDER BY id
    FOR UPDATE
""")

_CAS_STATUS_SQL = text(f"""
    UPDATE bets
    SET status = :target,
        settled_at = :settled_at,
        cashout_amount = :cashout_amount,
        win_amount = :win_amount,
        updated_at = NOW()
    WHERE id = :bet_id AND status = 'active'
    RETURNING {_BET_COLUMNS}
""")

_LIST_USER_BETS_SQL = text(f"""
    SELECT {_BET_COLUMNS}
    FROM bets
    WHERE user_id = :user_id
      AND (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
      AND (CAST(:match_id AS TEXT) IS NULL OR match_id = CAST(:match_id AS TEXT))
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR CAST(id AS BIGINT) < CAST(:cursor_id AS BIGINT))
    ORDER BY CAST(id AS BIGINT) DESC
    LIMIT :limit
""")


def _row_to_bet(row: object) -> Bet:
    return Bet(
        id=row.id,  # type: ignore[attr-defined]
        match_id=row.match_id,  # type: ignore[attr-defined]
        user_id=str(row.user_id),  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        odd=row.odd,  # type: ignore[attr-defined]
        potential_win=row.potential_win,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        cashout_amount=row.cashout_amount,  # type: ignore[attr-defined]
        win_amount=row.win_amount,  # type: ignore[attr-defined]
        settled_at=row.settled_at,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class BetRepository:
    """Concrete repository — writes are atomic at the SQL level."""

    async def get_bet(self, db: AsyncSession, bet_id: str) -> Bet | None:
        row = (await db.execute(_GET_BET_SQL, {"bet_id": bet_id})).fetchone()
        return _row_to_bet(row) if row else None

    async def insert_bet(self, db: AsyncSession, bet: Bet) -> Bet:
        result = await db.execute(
            _INSERT_BET_SQL,
            {
                "id": bet.id,
                "match_id": bet.match_id,
                "user_id": bet.user_id,
                "amount": bet.amount,
                "odd": bet.odd,
                "potential_win": bet.potential_win,
                "status": BetStatus.ACTIVE,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Bet insert returned no rows — this should never happen")
        return _row_to_bet(row)

    async def list_active_for_match(self, db: AsyncSession, match_id: str) -> list[Bet]:
        result = await db.execute(_LIST_ACTIVE_FOR_MATCH_SQL, {"match_id": match_id})
        return [_row_to_bet(row) for row in result.fetchall()]

    async def compare_and_set_status(
        self,
        db: AsyncSession,
        bet_id: str,
        target: str,
        settled_at: datetime,
        cashout_amount: int | None,
        win_amount: int | None,
    ) -> Bet | None:
        result = await db.execute(
            _CAS_STATUS_SQL,
            {
                "bet_id": bet_id,
                "target": target,
                "settled_at": settled_at,
                "cashout_amount": cashout_amount,
                "win_amount": win_amount,
            },
        )
        row = result.fetchone()
        return _row_to_bet(row) if row else None

    async def list_user_bets(
        self,
        db: AsyncSession,
        user_id: str,
        status: str | None,
        match_id: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Bet]:
        result = await db.execute(
            _LIST_USER_BETS_SQL,
            {
                "user_id": user_id,
                "status": status,
                "match_id": match_id,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_bet(row) for row in result.fetchall()]
