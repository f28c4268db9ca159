"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.ws_wager.domain.models import Bet


class BetRepositoryProtocol(Protocol):
    async def get_bet(self, db: AsyncSession, bet_id: str) -> Bet | None: ...

    async def insert_bet(self, db: AsyncSession, bet: Bet) -> Bet: ...

    async def list_active_for_match(
        self, db: AsyncSession, match_id: str
    ) -> list[Bet]: ...

    async def compare_and_set_status(
        self,
        db: AsyncSession,
        bet_id: str,
        target: str,
        settled_at: datetime,
        cashout_amount: int | None,
        win_amount: int | None,
    ) -> Bet | None: ...

    async def list_user_bets(
        self,
        db: AsyncSession,
        user_id: str,
        status: str | None,
        match_id: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Bet]: ...
