"""Admin application service — manual rank corrections.

Match settlement, void and conservation checks live on the
MatchSettlementCoordinator; this service only adds what has no other home.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.ws_common.database import async_session_factory
from src.ws_common.errors import ValidationError
from src.ws_common.unit_of_work import run_atomic
from src.ws_rank.application.engine import RankEngine
from src.ws_rank.domain.models import RankUpdate
from src.ws_settlement.infrastructure.records import write_audit_event

logger = logging.getLogger(__name__)


class AdminService:
    def __init__(
        self,
        rank_engine: RankEngine | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        self._session_factory = session_factory or async_session_factory
        self._rank = rank_engine or RankEngine(session_factory=self._session_factory)

    async def adjust_rank(
        self, user_id: str, delta: int, admin_id: str, reason: str
    ) -> RankUpdate:
        if delta == 0:
            raise ValidationError("delta must be non-zero")

        async def work(db: AsyncSession) -> RankUpdate:
            update = await self._rank.apply_result(db, user_id, delta)
            await write_audit_event(
                "RANK_ADJUSTED",
                "user",
                user_id,
                admin_id,
                {
                    "delta": delta,
                    "applied_delta": update.delta,
                    "reason": reason,
                    "old_points": update.old_points,
                    "new_points": update.new_points,
                    "old_tier": update.old_tier,
                    "new_tier": update.new_tier,
                },
                db,
            )
            return update

        update = await run_atomic(work, self._session_factory, label=f"adjust rank {user_id}")
        logger.info(
            "Admin %s adjusted rank of %s by %d (applied %+d): %d → %d",
            admin_id,
            user_id,
            delta,
            update.delta,
            update.old_points,
            update.new_points,
        )
        await self._rank.announce(update)
        return update
