"""RankEngine — points and tiers for match outcomes and manual corrections.

apply_result() runs in the caller's transaction. apply_and_notify() is the
post-settlement entry point: its own unit of work, then a best-effort
rank_changed notification when the tier name changed.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.ws_common.database import async_session_factory
from src.ws_common.enums import NotificationType
from src.ws_common.errors import WalletNotFoundError
from src.ws_common.unit_of_work import run_atomic
from src.ws_notify.domain.dispatcher import NotificationDispatcher, notify_safely
from src.ws_notify.infrastructure.dispatcher import DbNotificationDispatcher
from src.ws_rank.domain.models import RankProfile, RankUpdate
from src.ws_rank.domain.tiers import POSITION_TIER_MIN_POINTS, resolve_tier
from src.ws_rank.infrastructure.persistence import RankRepository

logger = logging.getLogger(__name__)


class RankEngine:
    def __init__(
        self,
        repo: RankRepository | None = None,
        dispatcher: NotificationDispatcher | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        self._repo = repo or RankRepository()
        self._dispatcher: NotificationDispatcher = dispatcher or DbNotificationDispatcher()
        self._session_factory = session_factory or async_session_factory

    async def _tier_for(self, db: AsyncSession, points: int) -> tuple[str, int | None]:
        # Leaderboard position only matters once the position tiers are reachable
        if points < POSITION_TIER_MIN_POINTS:
            return resolve_tier(points), None
        position = await self._repo.leaderboard_position(db, points)
        return resolve_tier(points, position), position

    async def apply_result(self, db: AsyncSession, user_id: str, delta: int) -> RankUpdate:
        old_points = await self._repo.get_points(db, user_id, for_update=True)
        if old_points is None:
            raise WalletNotFoundError(user_id)
        old_tier, _ = await self._tier_for(db, old_points)

        new_points = max(0, old_points + delta)
        await self._repo.set_points(db, user_id, new_points)
        new_tier, position = await self._tier_for(db, new_points)

        return RankUpdate(
            user_id=user_id,
            old_points=old_points,
            new_points=new_points,
            old_tier=old_tier,
            new_tier=new_tier,
            position=position,
        )

    async def apply_and_notify(self, user_id: str, delta: int) -> RankUpdate:
        async def work(db: AsyncSession) -> RankUpdate:
            return await self.apply_result(db, user_id, delta)

        update = await run_atomic(work, self._session_factory, label=f"rank {user_id}")
        logger.info(
            "Rank %s: %d → %d (%+d, %s → %s)",
            user_id,
            update.old_points,
            update.new_points,
            update.delta,
            update.old_tier,
            update.new_tier,
        )
        await self.announce(update)
        return update

    async def announce(self, update: RankUpdate) -> None:
        """Best-effort rank_changed notification; no-op when the tier is unchanged."""
        if update.tier_changed:
            await notify_safely(
                self._dispatcher,
                update.user_id,
                NotificationType.RANK_CHANGED.value,
                "Rank changed",
                f"You are now {update.new_tier}",
                {
                    "old_tier": update.old_tier,
                    "new_tier": update.new_tier,
                    "points": update.new_points,
                },
            )

    async def get_profile(self, db: AsyncSession, user_id: str) -> RankProfile:
        points = await self._repo.get_points(db, user_id)
        if points is None:
            raise WalletNotFoundError(user_id)
        position = await self._repo.leaderboard_position(db, points)
        return RankProfile(
            user_id=user_id,
            points=points,
            tier=resolve_tier(points, position),
            position=position,
        )
