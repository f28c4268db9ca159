"""Unit tests for MatchSettlementCoordinator with mocked repositories."""

from dataclasses import replace
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.ws_common.errors import (
    InvalidMatchStateError,
    InvalidWinnerError,
    MatchNotFoundError,
    WalletNotFoundError,
)
from src.ws_rank.domain.models import RankUpdate
from src.ws_settlement.application.coordinator import MatchSettlementCoordinator
from src.ws_wager.domain.models import Bet, Match, MatchPlayer
from src.ws_wallet.domain.models import Transaction, Wallet

MATCH_ID = "100"


def _match(status: str = "awaiting_validation", teams: bool = False) -> Match:
    players = [
        MatchPlayer("user1", "red" if teams else None),
        MatchPlayer("user2", "blue" if teams else None),
    ]
    return Match(id=MATCH_ID, status=status, game_mode="ranked", players=players)


def _bet(bet_id: str, user_id: str, amount: int) -> Bet:
    return Bet(
        id=bet_id,
        match_id=MATCH_ID,
        user_id=user_id,
        amount=amount,
        odd=Decimal("1.50"),
        potential_win=amount * 3 // 2,
        status="active",
    )


def _tx(user_id: str, amount: int, tx_type: str = "win") -> Transaction:
    return Transaction(
        id=900,
        user_id=user_id,
        tx_type=tx_type,
        amount=amount,
        balance_after=1000 + amount,
        status="completed",
        reference_type="match",
        reference_id=MATCH_ID,
    )


def _cas(bets: list[Bet]) -> Any:
    by_id = {b.id: b for b in bets}

    async def compare_and_set_status(db, bet_id, target, **kwargs):  # type: ignore[no-untyped-def]
        return replace(
            by_id[bet_id],
            status=target,
            settled_at=kwargs["settled_at"],
            win_amount=kwargs.get("win_amount"),
            cashout_amount=kwargs.get("cashout_amount"),
        )

    return compare_and_set_status


class _Harness:
    def __init__(self, session_factory, bets: list[Bet] | None = None, match: Match | None = None) -> None:  # type: ignore[no-untyped-def]
        self.db = AsyncMock()
        self.bets = bets if bets is not None else [_bet("1", "user1", 100), _bet("2", "user2", 50)]
        self.match_repo = AsyncMock()
        self.match_repo.get_match.return_value = match or _match()
        self.match_repo.mark_validated.return_value = replace(match or _match(), status="validated")
        self.match_repo.mark_cancelled.return_value = replace(match or _match(), status="cancelled")
        self.bet_repo = AsyncMock()
        self.bet_repo.list_active_for_match.return_value = self.bets
        self.bet_repo.compare_and_set_status.side_effect = _cas(self.bets)
        self.wallet = AsyncMock()
        self.wallet.apply.side_effect = lambda db, user_id, amount, tx_type, *a: (
            Wallet(user_id, 1000 + amount, 2),
            _tx(user_id, amount, tx_type),
        )
        self.rank = AsyncMock()
        self.rank.apply_and_notify.side_effect = lambda user_id, delta: RankUpdate(
            user_id, 900, 900 + delta, "Silver III", "Gold I"
        )
        self.dispatcher = AsyncMock()
        self.coordinator = MatchSettlementCoordinator(
            match_repo=self.match_repo,
            bet_repo=self.bet_repo,
            wallet=self.wallet,
            rank_engine=self.rank,
            dispatcher=self.dispatcher,
            session_factory=session_factory(self.db),
            fee_bps=1000,
        )

    def notified(self, notification_type: str) -> list[str]:
        return [
            c.args[0] for c in self.dispatcher.notify.call_args_list if c.args[1] == notification_type
        ]


class TestValidateMatch:
    async def test_worked_example(self, session_factory) -> None:
        h = _Harness(session_factory)

        result = await h.coordinator.validate_match(MATCH_ID, "user1", "user", "admin1", "clean")

        assert result.total_bet_amount_cents == 150
        assert result.platform_fee_cents == 15
        assert result.prize_pool_cents == 135
        assert [(p.user_id, p.win_amount_cents) for p in result.payment_results] == [("user1", 135)]
        assert result.lost_bet_ids == ["2"]
        # user1 += 135; user2 has no wallet effect
        h.wallet.apply.assert_awaited_once()
        assert h.wallet.apply.call_args.args[1:6] == ("user1", 135, "win", "match", MATCH_ID)
        targets = [c.args[2] for c in h.bet_repo.compare_and_set_status.call_args_list]
        assert targets == ["won", "lost"]
        h.db.commit.assert_awaited_once()

    async def test_revenue_and_audit_written_in_same_unit(self, session_factory) -> None:
        h = _Harness(session_factory)

        await h.coordinator.validate_match(MATCH_ID, "user1", "user", "admin1")

        assert h.db.execute.await_count == 2
        revenue = h.db.execute.call_args_list[0].args[1]
        assert revenue["platform_fee"] == 15
        assert revenue["rounding_remainder"] == 0
        audit = h.db.execute.call_args_list[1].args[1]
        assert audit["event_type"] == "MATCH_VALIDATED"
        assert audit["actor_id"] == "admin1"
        assert '"prize_pool": 135' in audit["payload"]

    async def test_rank_and_notifications_after_commit(self, session_factory) -> None:
        h = _Harness(session_factory)

        result = await h.coordinator.validate_match(MATCH_ID, "user1", "user", "admin1")

        h.rank.apply_and_notify.assert_awaited_once_with("user1", 75)
        assert result.rank_updates[0].new_tier == "Gold I"
        assert h.notified("match_won") == ["user1"]
        assert h.notified("match_lost") == ["user2"]

    async def test_second_settlement_rejected_without_paying(self, session_factory) -> None:
        h = _Harness(session_factory)
        await h.coordinator.validate_match(MATCH_ID, "user1", "user", "admin1")
        h.match_repo.get_match.return_value = _match("validated")
        h.wallet.apply.reset_mock()

        with pytest.raises(InvalidMatchStateError):
            await h.coordinator.validate_match(MATCH_ID, "user1", "user", "admin1")

        h.wallet.apply.assert_not_awaited()
        assert h.db.commit.await_count == 1

    async def test_lost_cas_race(self, session_factory) -> None:
        h = _Harness(session_factory)
        h.match_repo.get_match.side_effect = [_match(), _match("validated")]
        h.match_repo.mark_validated.return_value = None

        with pytest.raises(InvalidMatchStateError) as exc_info:
            await h.coordinator.validate_match(MATCH_ID, "user1", "user", "admin1")

        assert exc_info.value.status == "validated"
        h.bet_repo.list_active_for_match.assert_not_awaited()
        h.db.rollback.assert_awaited_once()

    async def test_match_not_found(self, session_factory) -> None:
        h = _Harness(session_factory)
        h.match_repo.get_match.return_value = None

        with pytest.raises(MatchNotFoundError):
            await h.coordinator.validate_match(MATCH_ID, "user1", "user", "admin1")

    async def test_winner_must_be_participant(self, session_factory) -> None:
        h = _Harness(session_factory)

        with pytest.raises(InvalidWinnerError):
            await h.coordinator.validate_match(MATCH_ID, "user9", "user", "admin1")

        h.match_repo.mark_validated.assert_not_awaited()

    async def test_team_winner_expands_to_members(self, session_factory) -> None:
        h = _Harness(session_factory, match=_match(teams=True))

        result = await h.coordinator.validate_match(MATCH_ID, "blue", "team", "admin1")

        assert result.winner_user_ids == ["user2"]
        # user2's 50 is the only winning stake: prize pool 135 goes to bet 2
        assert [(p.bet_id, p.win_amount_cents) for p in result.payment_results] == [("2", 135)]

    async def test_unknown_team_rejected(self, session_factory) -> None:
        h = _Harness(session_factory, match=_match(teams=True))

        with pytest.raises(InvalidWinnerError):
            await h.coordinator.validate_match(MATCH_ID, "green", "team", "admin1")

    async def test_no_backers_retains_pool(self, session_factory) -> None:
        h = _Harness(session_factory, bets=[_bet("2", "user2", 50)])

        result = await h.coordinator.validate_match(MATCH_ID, "user1", "user", "admin1")

        assert result.payment_results == []
        assert result.unclaimed_pool_cents == result.prize_pool_cents
        h.wallet.apply.assert_not_awaited()
        h.db.commit.assert_awaited_once()

    async def test_failure_inside_unit_rolls_back_everything(self, session_factory) -> None:
        h = _Harness(session_factory)
        h.wallet.apply.side_effect = WalletNotFoundError("user1")

        with pytest.raises(WalletNotFoundError):
            await h.coordinator.validate_match(MATCH_ID, "user1", "user", "admin1")

        h.db.commit.assert_not_awaited()
        h.db.rollback.assert_awaited_once()
        h.rank.apply_and_notify.assert_not_awaited()
        h.dispatcher.notify.assert_not_awaited()

    async def test_notification_failure_never_escalates(self, session_factory) -> None:
        h = _Harness(session_factory)
        h.dispatcher.notify.side_effect = RuntimeError("push gateway down")

        result = await h.coordinator.validate_match(MATCH_ID, "user1", "user", "admin1")

        assert result.prize_pool_cents == 135
        h.db.commit.assert_awaited_once()

    async def test_rank_failure_never_escalates(self, session_factory) -> None:
        h = _Harness(session_factory)
        h.rank.apply_and_notify.side_effect = RuntimeError("deadlock")

        result = await h.coordinator.validate_match(MATCH_ID, "user1", "user", "admin1")

        assert result.rank_updates == []
        assert h.notified("match_won") == ["user1"]


class TestVoidMatch:
    async def test_refunds_every_active_bet(self, session_factory) -> None:
        h = _Harness(session_factory, match=_match("in_progress"))

        result = await h.coordinator.void_match(MATCH_ID, "server crash", "admin1")

        assert result.previous_status == "in_progress"
        assert result.total_refunded_cents == 150
        refunds = [c.args[1:4] for c in h.wallet.apply.call_args_list]
        assert refunds == [("user1", 100, "refund"), ("user2", 50, "refund")]
        targets = [c.args[2] for c in h.bet_repo.compare_and_set_status.call_args_list]
        assert targets == ["cancelled", "cancelled"]
        assert sorted(h.notified("match_voided")) == ["user1", "user2"]
        h.db.commit.assert_awaited_once()

    async def test_validated_match_cannot_be_voided(self, session_factory) -> None:
        h = _Harness(session_factory, match=_match("validated"))

        with pytest.raises(InvalidMatchStateError):
            await h.coordinator.void_match(MATCH_ID, "oops", "admin1")

        h.match_repo.mark_cancelled.assert_not_awaited()
        h.wallet.apply.assert_not_awaited()


def _row(**fields: Any) -> MagicMock:
    row = MagicMock()
    for key, value in fields.items():
        setattr(row, key, value)
    result = MagicMock()
    result.fetchone.return_value = row
    return result


class TestVerifyConservation:
    async def _report(self, session_factory, revenue: dict[str, int], stake: int, winners: int,
                      paid: list[int]):  # type: ignore[no-untyped-def]
        h = _Harness(session_factory, match=_match("validated"))
        db = AsyncMock()
        # side_effect order: GET_REVENUE, SETTLED_STAKE
        db.execute.side_effect = [
            _row(match_id=MATCH_ID, **revenue),
            _row(total_bet_amount=stake, winning_bets=winners),
        ]
        h.wallet.list_by_reference.return_value = [_tx("user1", amount) for amount in paid]
        return await h.coordinator.verify_match_conservation(db, MATCH_ID)

    async def test_balanced_match(self, session_factory) -> None:
        report = await self._report(
            session_factory,
            dict(total_bet_amount=150, platform_fee=15, prize_pool=135,
                 rounding_remainder=0, unclaimed_pool=0),
            stake=150, winners=1, paid=[135],
        )
        assert report.balanced is True
        assert report.violations == []

    async def test_overpayment_reported(self, session_factory) -> None:
        report = await self._report(
            session_factory,
            dict(total_bet_amount=150, platform_fee=15, prize_pool=135,
                 rounding_remainder=0, unclaimed_pool=0),
            stake=150, winners=1, paid=[135, 5],
        )
        assert report.balanced is False
        assert any("exceeds prize pool" in v for v in report.violations)

    async def test_requires_validated_match(self, session_factory) -> None:
        h = _Harness(session_factory, match=_match("in_progress"))
        with pytest.raises(InvalidMatchStateError):
            await h.coordinator.verify_match_conservation(AsyncMock(), MATCH_ID)
