"""DB helpers for audit_log and platform_revenue.

Called from the settlement coordinator within its transaction.
"""
import json
from dataclasses import dataclass

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

_INSERT_AUDIT_SQL = text("""
    INSERT INTO audit_log (event_type, entity_type, entity_id, actor_id, payload)
    VALUES (:event_type, :entity_type, :entity_id, :actor_id, :payload)
""")

# match_id is UNIQUE: a second revenue row for the same match fails the whole unit
_INSERT_REVENUE_SQL = text("""
    INSERT INTO platform_revenue
        (match_id, total_bet_amount, platform_fee, prize_pool,
         rounding_remainder, unclaimed_pool)
    VALUES
        (:match_id, :total_bet_amount, :platform_fee, :prize_pool,
         :rounding_remainder, :unclaimed_pool)
""")

_GET_REVENUE_SQL = text("""
    SELECT match_id, total_bet_amount, platform_fee, prize_pool,
           rounding_remainder, unclaimed_pool
    FROM platform_revenue
    WHERE match_id = :match_id
""")

_SETTLED_STAKE_SQL = text("""
    SELECT COALESCE(SUM(amount), 0) AS total_bet_amount,
           COUNT(*) FILTER (WHERE status = 'won') AS winning_bets
    FROM bets
    WHERE match_id = :match_id AND status IN ('won', 'lost')
""")


@dataclass(frozen=True)
class RevenueRecord:
    match_id: str
    total_bet_amount: int
    platform_fee: int
    prize_pool: int
    rounding_remainder: int
    unclaimed_pool: int


async def write_audit_event(
    event_type: str,
    entity_type: str,
    entity_id: str,
    actor_id: str,
    payload: dict[str, object],
    db: AsyncSession,
) -> None:
    """Insert one row into audit_log within the caller's transaction."""
    await db.execute(
        _INSERT_AUDIT_SQL,
        {
            "event_type": event_type,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "actor_id": actor_id,
            "payload": json.dumps(payload, default=str),
        },
    )


async def write_revenue(record: RevenueRecord, db: AsyncSession) -> None:
    await db.execute(
        _INSERT_REVENUE_SQL,
        {
            "match_id": record.match_id,
            "total_bet_amount": record.total_bet_amount,
            "platform_fee": record.platform_fee,
            "prize_pool": record.prize_pool,
            "rounding_remainder": record.rounding_remainder,
            "unclaimed_pool": record.unclaimed_pool,
        },
    )


async def get_revenue(match_id: str, db: AsyncSession) -> RevenueRecord | None:
    row = (await db.execute(_GET_REVENUE_SQL, {"match_id": match_id})).fetchone()
    if row is None:
        return None
    return RevenueRecord(
        match_id=row.match_id,
        total_bet_amount=row.total_bet_amount,
        platform_fee=row.platform_fee,
        prize_pool=row.prize_pool,
        rounding_remainder=row.rounding_remainder,
        unclaimed_pool=row.unclaimed_pool,
    )


async def get_settled_stake(match_id: str, db: AsyncSession) -> tuple[int, int]:
    """(Σ amount of won+lost bets, number of won bets) for a settled match."""
    row = (await db.execute(_SETTLED_STAKE_SQL, {"match_id": match_id})).fetchone()
    if row is None:
        return 0, 0
    return int(row.total_bet_amount), int(row.winning_bets)
