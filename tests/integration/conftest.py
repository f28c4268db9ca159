"""Integration-test fixtures.

Requires a running PostgreSQL at DATABASE_URL with migrations applied
(alembic upgrade head). Tests are skipped when the store is unreachable.

The engine uses NullPool: every session opens and closes its own connection,
so nothing outlives the event loop of the test that created it, and
concurrent sessions really are concurrent transactions in PostgreSQL.
"""

import uuid
from collections.abc import AsyncIterator
from dataclasses import dataclass
from decimal import Decimal

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from config.settings import settings
from src.ws_common.id_generator import generate_id
from src.ws_lifecycle.application.service import BetLifecycleManager
from src.ws_notify.infrastructure.dispatcher import DbNotificationDispatcher
from src.ws_rank.application.engine import RankEngine
from src.ws_settlement.application.coordinator import MatchSettlementCoordinator

FEE_BPS = 1000


@dataclass
class Services:
    factory: async_sessionmaker[AsyncSession]
    coordinator: MatchSettlementCoordinator
    manager: BetLifecycleManager


@pytest.fixture
async def store() -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine = create_async_engine(
        settings.DATABASE_URL,
        poolclass=NullPool,
        connect_args={
            "server_settings": {
                "lock_timeout": str(settings.DB_LOCK_TIMEOUT_MS),
                "statement_timeout": str(settings.DB_STATEMENT_TIMEOUT_MS),
            }
        },
    )
    try:
        async with engine.connect() as conn:
            ready = (await conn.execute(text("SELECT to_regclass('bets')"))).scalar()
    except Exception as exc:
        await engine.dispose()
        pytest.skip(f"PostgreSQL not reachable: {exc}")
    if ready is None:
        await engine.dispose()
        pytest.skip("migrations not applied (run alembic upgrade head)")

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def services(store: async_sessionmaker[AsyncSession]) -> Services:
    dispatcher = DbNotificationDispatcher(store)
    rank = RankEngine(dispatcher=dispatcher, session_factory=store)
    return Services(
        factory=store,
        coordinator=MatchSettlementCoordinator(
            rank_engine=rank, dispatcher=dispatcher, session_factory=store, fee_bps=FEE_BPS
        ),
        manager=BetLifecycleManager(dispatcher=dispatcher, session_factory=store),
    )


# ---------------------------------------------------------------------------
# Seeding: each test creates its own users and match. Rows are left behind,
# since transactions and audit_log reject deletes.
# ---------------------------------------------------------------------------


class Seeder:
    def __init__(self, services: Services) -> None:
        self._services = services
        self._factory = services.factory

    async def user(self, balance: int = 100_000, rank_points: int = 0) -> str:
        user_id = f"it_{uuid.uuid4().hex[:12]}"
        async with self._factory() as db:
            await db.execute(
                text(
                    "INSERT INTO users (id, username, balance, rank_points) "
                    "VALUES (:id, :id, :balance, :rank_points)"
                ),
                {"id": user_id, "balance": balance, "rank_points": rank_points},
            )
            await db.commit()
        return user_id

    async def match(self, player_ids: list[str], game_mode: str = "ranked") -> str:
        match_id = generate_id()
        async with self._factory() as db:
            await db.execute(
                text("INSERT INTO matches (id, status, game_mode) VALUES (:id, 'waiting', :mode)"),
                {"id": match_id, "mode": game_mode},
            )
            for user_id in player_ids:
                await db.execute(
                    text("INSERT INTO match_players (match_id, user_id) VALUES (:m, :u)"),
                    {"m": match_id, "u": user_id},
                )
            await db.commit()
        return match_id

    async def move_match(self, match_id: str, status: str) -> None:
        """Stand-in for matchmaking: started 15 minutes ago, now in `status`."""
        async with self._factory() as db:
            await db.execute(
                text(
                    "UPDATE matches SET status = :status, "
                    "started_at = NOW() - INTERVAL '15 minutes' WHERE id = :id"
                ),
                {"id": match_id, "status": status},
            )
            await db.commit()

    async def bet(self, user_id: str, match_id: str, amount: int, odd: str = "2.00") -> str:
        view = await self._services.manager.place_bet(user_id, match_id, amount, Decimal(odd))
        return view.id

    async def balance(self, user_id: str) -> int:
        async with self._factory() as db:
            result = await db.execute(
                text("SELECT balance FROM users WHERE id = :id"), {"id": user_id}
            )
            return int(result.scalar_one())

    async def bet_status(self, bet_id: str) -> str:
        async with self._factory() as db:
            result = await db.execute(
                text("SELECT status FROM bets WHERE id = :id"), {"id": bet_id}
            )
            return str(result.scalar_one())

    async def tx_count(self, user_id: str, tx_type: str) -> int:
        async with self._factory() as db:
            result = await db.execute(
                text("SELECT COUNT(*) FROM transactions WHERE user_id = :u AND tx_type = :t"),
                {"u": user_id, "t": tx_type},
            )
            return int(result.scalar_one())


@pytest.fixture
def seed(services: Services) -> Seeder:
    return Seeder(services)
