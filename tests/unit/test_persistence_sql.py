"""Unit tests for the raw-SQL repositories (BetRepository, MatchRepository, RankRepository)."""

from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from src.ws_rank.infrastructure.persistence import RankRepository
from src.ws_wager.infrastructure.match_repository import MatchRepository
from src.ws_wager.infrastructure.persistence import BetRepository

_NOW = datetime(2026, 5, 1, tzinfo=UTC)


def _result(row: object | None = None, rows: list[object] | None = None) -> MagicMock:
    result = MagicMock()
    result.fetchone.return_value = row
    result.fetchall.return_value = rows or []
    return result


def _bet_row(status: str = "active") -> MagicMock:
    row = MagicMock()
    row.id = "7001"
    row.match_id = "100"
    row.user_id = "user1"
    row.amount = 20
    row.odd = Decimal("2.00")
    row.potential_win = 40
    row.status = status
    row.cashout_amount = None
    row.win_amount = None
    row.settled_at = None
    row.created_at = _NOW
    row.updated_at = _NOW
    return row


def _match_row(status: str = "awaiting_validation") -> MagicMock:
    row = MagicMock()
    row.id = "100"
    row.status = status
    row.game_mode = "ranked"
    row.winner_id = None
    row.winner_type = None
    row.validated_by = None
    row.validated_at = None
    row.validation_notes = None
    row.started_at = _NOW
    row.created_at = _NOW
    row.updated_at = _NOW
    return row


def _sql(db: AsyncMock, index: int = 0) -> str:
    return str(db.execute.call_args_list[index].args[0])


class TestBetRepository:
    async def test_cas_guarded_by_active_status(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(_bet_row("won"))

        bet = await BetRepository().compare_and_set_status(db, "7001", "won", _NOW, None, 40)

        assert bet is not None and bet.status == "won"
        assert "status = 'active'" in _sql(db)
        assert "RETURNING" in _sql(db)
        assert db.execute.call_args.args[1]["win_amount"] == 40

    async def test_cas_zero_rows_returns_none(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(None)

        assert await BetRepository().compare_and_set_status(db, "7001", "won", _NOW, None, 0) is None

    async def test_active_bets_locked_for_update(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(rows=[_bet_row(), _bet_row()])

        bets = await BetRepository().list_active_for_match(db, "100")

        assert len(bets) == 2
        assert "FOR UPDATE" in _sql(db)

    async def test_get_missing_bet(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(None)

        assert await BetRepository().get_bet(db, "1") is None


class TestMatchRepository:
    async def test_get_with_players(self) -> None:
        db = AsyncMock()
        p1, p2 = MagicMock(), MagicMock()
        p1.user_id, p1.team_id = "user1", "red"
        p2.user_id, p2.team_id = "user2", "blue"
        db.execute.side_effect = [_result(_match_row()), _result(rows=[p1, p2])]

        match = await MatchRepository().get_match(db, "100", with_players=True)

        assert match is not None
        assert match.player_ids == ["user1", "user2"]
        assert match.team_members("red") == ["user1"]

    async def test_for_share_lock(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(_match_row("waiting"))

        await MatchRepository().get_match(db, "100", for_share=True)

        assert "FOR SHARE" in _sql(db)
        assert db.execute.await_count == 1

    async def test_mark_validated_is_compare_and_set(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(None)

        result = await MatchRepository().mark_validated(
            db, "100", "user1", "user", "admin1", _NOW, None
        )

        assert result is None
        assert "status = 'awaiting_validation'" in _sql(db)

    async def test_mark_cancelled_only_from_open_states(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _result(_match_row("cancelled"))

        match = await MatchRepository().mark_cancelled(db, "100", "admin1", _NOW, "abandoned")

        assert match is not None and match.status == "cancelled"
        assert "'validated'" not in _sql(db)


class TestRankRepository:
    async def test_position_is_one_plus_users_ahead(self) -> None:
        db = AsyncMock()
        row = MagicMock()
        row.ahead = 9
        db.execute.return_value = _result(row)

        assert await RankRepository().leaderboard_position(db, 6000) == 10

    async def test_points_locked_for_update(self) -> None:
        db = AsyncMock()
        row = MagicMock()
        row.rank_points = 950
        db.execute.return_value = _result(row)

        assert await RankRepository().get_points(db, "user1", for_update=True) == 950
        assert "FOR UPDATE" in _sql(db)
