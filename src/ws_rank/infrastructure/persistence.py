"""RankRepository — rank_points lives on the users row, next to the balance."""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

_GET_POINTS_FOR_UPDATE_SQL = text(
    "SELECT rank_points FROM users WHERE id = :user_id FOR UPDATE"
)

_GET_POINTS_SQL = text("SELECT rank_points FROM users WHERE id = :user_id")

_SET_POINTS_SQL = text("""
    UPDATE users
    SET rank_points = :points,
        updated_at = NOW()
    WHERE id = :user_id
    RETURNING rank_points
""")

_COUNT_AHEAD_SQL = text("SELECT COUNT(*) AS ahead FROM users WHERE rank_points > :points")


class RankRepository:
    async def get_points(
        self, db: AsyncSession, user_id: str, for_update: bool = False
    ) -> int | None:
        sql = _GET_POINTS_FOR_UPDATE_SQL if for_update else _GET_POINTS_SQL
        row = (await db.execute(sql, {"user_id": user_id})).fetchone()
        return int(row.rank_points) if row else None

    async def set_points(self, db: AsyncSession, user_id: str, points: int) -> int | None:
        row = (
            await db.execute(_SET_POINTS_SQL, {"user_id": user_id, "points": points})
        ).fetchone()
        return int(row.rank_points) if row else None

    async def leaderboard_position(self, db: AsyncSession, points: int) -> int:
        row = (await db.execute(_COUNT_AHEAD_SQL, {"points": points})).fetchone()
        ahead = int(row.ahead) if row else 0
        return ahead + 1
