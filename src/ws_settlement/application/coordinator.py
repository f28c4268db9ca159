"""MatchSettlementCoordinator — the single place a match outcome moves money.

validate_match() runs one unit of work (run_atomic):

    1. read match + players; must be awaiting_validation
    2. resolve winner user ids (team → members); empty → InvalidWinnerError
    3. CAS match → validated (loser of a concurrent settle gets 0 rows)
    4. lock active bets FOR UPDATE, run the payout distributor
    5. winning bets → won (+ win credit, Transaction), others → lost
    6. platform_revenue row, audit_log row

Any failure rolls back all of it; the match stays awaiting_validation.
Only after commit: rank points for winners, notifications for everyone
involved. Those side effects are logged on failure and never raised.

void_match() follows the same discipline for cancelling a match with refunds.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import settings
from src.ws_common.cents import cents_to_display
from src.ws_common.database import async_session_factory
from src.ws_common.datetime_utils import utc_now
from src.ws_common.enums import (
    BetStatus,
    MatchStatus,
    NotificationType,
    ReferenceType,
    TransactionType,
)
from src.ws_common.errors import (
    ConservationViolation,
    InvalidMatchStateError,
    MatchNotFoundError,
)
from src.ws_common.unit_of_work import run_atomic
from src.ws_notify.domain.dispatcher import NotificationDispatcher, notify_safely
from src.ws_notify.infrastructure.dispatcher import DbNotificationDispatcher
from src.ws_payout.domain.distributor import Distribution, distribute
from src.ws_rank.application.engine import RankEngine
from src.ws_rank.domain.models import RankUpdate
from src.ws_rank.domain.tiers import win_points
from src.ws_settlement.application.schemas import (
    ConservationReport,
    RankUpdateView,
    RefundResult,
    SettlementResult,
    VoidResult,
    payment_result,
)
from src.ws_settlement.domain.winners import resolve_winner_user_ids
from src.ws_settlement.infrastructure.records import (
    RevenueRecord,
    get_revenue,
    get_settled_stake,
    write_audit_event,
    write_revenue,
)
from src.ws_wager.domain.models import Match
from src.ws_wager.domain.repository import BetRepositoryProtocol
from src.ws_wager.domain.state_machine import Credit, WagerLedger
from src.ws_wager.infrastructure.match_repository import MatchRepository
from src.ws_wager.infrastructure.persistence import BetRepository
from src.ws_wallet.infrastructure.ledger import WalletLedger

logger = logging.getLogger(__name__)

_VOIDABLE = (
    MatchStatus.WAITING.value,
    MatchStatus.IN_PROGRESS.value,
    MatchStatus.AWAITING_VALIDATION.value,
)


@dataclass
class _Settled:
    """What the committed unit of work hands to the post-commit phase."""

    match: Match
    winner_user_ids: list[str]
    distribution: Distribution
    tx_ids: dict[str, int | None] = field(default_factory=dict)
    losing_bettors: list[str] = field(default_factory=list)


@dataclass
class _Voided:
    previous_status: str
    refunds: list[RefundResult] = field(default_factory=list)


class MatchSettlementCoordinator:
    def __init__(
        self,
        match_repo: MatchRepository | None = None,
        bet_repo: BetRepositoryProtocol | None = None,
        wallet: WalletLedger | None = None,
        rank_engine: RankEngine | None = None,
        dispatcher: NotificationDispatcher | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        fee_bps: int | None = None,
    ) -> None:
        self._matches = match_repo or MatchRepository()
        self._bets: BetRepositoryProtocol = bet_repo or BetRepository()
        self._wallet = wallet or WalletLedger()
        self._ledger = WagerLedger(self._bets, self._wallet)
        self._dispatcher: NotificationDispatcher = dispatcher or DbNotificationDispatcher()
        self._session_factory = session_factory or async_session_factory
        self._rank = rank_engine or RankEngine(
            dispatcher=self._dispatcher, session_factory=self._session_factory
        )
        self._fee_bps = settings.PLATFORM_FEE_BPS if fee_bps is None else fee_bps

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    async def validate_match(
        self,
        match_id: str,
        winner_id: str,
        winner_type: str,
        validator_id: str,
        notes: str | None = None,
    ) -> SettlementResult:
        async def work(db: AsyncSession) -> _Settled:
            return await self._settle_in_tx(
                db, match_id, winner_id, winner_type, validator_id, notes
            )

        settled = await run_atomic(work, self._session_factory, label=f"settle {match_id}")
        d = settled.distribution
        logger.info(
            "Settled match %s: %d bets, fee=%d prize_pool=%d remainder=%d unclaimed=%d",
            match_id,
            len(d.payouts) + len(d.losing_bet_ids),
            d.platform_fee,
            d.prize_pool,
            d.rounding_remainder,
            d.unclaimed_pool,
        )

        rank_updates = await self._after_settlement(settled)
        return SettlementResult(
            match_id=match_id,
            winner_id=winner_id,
            winner_type=winner_type,
            winner_user_ids=settled.winner_user_ids,
            total_bet_amount_cents=d.total_bet_amount,
            platform_fee_cents=d.platform_fee,
            prize_pool_cents=d.prize_pool,
            prize_pool_display=cents_to_display(d.prize_pool),
            rounding_remainder_cents=d.rounding_remainder,
            unclaimed_pool_cents=d.unclaimed_pool,
            payment_results=[
                payment_result(
                    p.user_id, p.bet_id, p.bet_amount, p.win_amount, settled.tx_ids.get(p.bet_id)
                )
                for p in d.payouts
            ],
            lost_bet_ids=d.losing_bet_ids,
            rank_updates=[
                RankUpdateView(
                    user_id=u.user_id,
                    old_points=u.old_points,
                    new_points=u.new_points,
                    old_tier=u.old_tier,
                    new_tier=u.new_tier,
                    tier_changed=u.tier_changed,
                )
                for u in rank_updates
            ],
        )

    async def _settle_in_tx(
        self,
        db: AsyncSession,
        match_id: str,
        winner_id: str,
        winner_type: str,
        validator_id: str,
        notes: str | None,
    ) -> _Settled:
        match = await self._matches.get_match(db, match_id, with_players=True)
        if match is None:
            raise MatchNotFoundError(match_id)
        if match.status != MatchStatus.AWAITING_VALIDATION:
            raise InvalidMatchStateError(
                match_id, match.status, MatchStatus.AWAITING_VALIDATION.value
            )
        winners = resolve_winner_user_ids(match, winner_id, winner_type)

        claimed = await self._matches.mark_validated(
            db, match_id, winner_id, winner_type, validator_id, utc_now(), notes
        )
        if claimed is None:
            current = await self._matches.get_match(db, match_id)
            status = current.status if current else "missing"
            raise InvalidMatchStateError(
                match_id, status, MatchStatus.AWAITING_VALIDATION.value
            )

        bets = await self._bets.list_active_for_match(db, match_id)
        try:
            distribution = distribute(bets, winners, self._fee_bps)
        except ConservationViolation:
            logger.exception("Aborting settlement of match %s", match_id)
            raise

        by_id = {b.id: b for b in bets}
        tx_ids: dict[str, int | None] = {}
        for payout in distribution.payouts:
            _, tx = await self._ledger.transition(
                db,
                by_id[payout.bet_id],
                BetStatus.WON,
                credit=Credit(
                    amount=payout.win_amount,
                    tx_type=TransactionType.WIN.value,
                    reference_type=ReferenceType.MATCH.value,
                    reference_id=match_id,
                    description=f"Win on bet {payout.bet_id}",
                ),
                win_amount=payout.win_amount,
            )
            tx_ids[payout.bet_id] = tx.id if tx else None

        losing_bettors: list[str] = []
        for bet_id in distribution.losing_bet_ids:
            bet = by_id[bet_id]
            await self._ledger.transition(db, bet, BetStatus.LOST, win_amount=0)
            losing_bettors.append(bet.user_id)

        await write_revenue(
            RevenueRecord(
                match_id=match_id,
                total_bet_amount=distribution.total_bet_amount,
                platform_fee=distribution.platform_fee,
                prize_pool=distribution.prize_pool,
                rounding_remainder=distribution.rounding_remainder,
                unclaimed_pool=distribution.unclaimed_pool,
            ),
            db,
        )
        await write_audit_event(
            "MATCH_VALIDATED",
            "match",
            match_id,
            validator_id,
            {
                "winner_id": winner_id,
                "winner_type": winner_type,
                "winner_user_ids": winners,
                "notes": notes,
                "fee_bps": self._fee_bps,
                "total_bet_amount": distribution.total_bet_amount,
                "platform_fee": distribution.platform_fee,
                "prize_pool": distribution.prize_pool,
                "rounding_remainder": distribution.rounding_remainder,
                "unclaimed_pool": distribution.unclaimed_pool,
                "payouts": [
                    {"user_id": p.user_id, "bet_id": p.bet_id, "win_amount": p.win_amount}
                    for p in distribution.payouts
                ],
                "lost_bet_ids": distribution.losing_bet_ids,
            },
            db,
        )
        return _Settled(
            match=match,
            winner_user_ids=winners,
            distribution=distribution,
            tx_ids=tx_ids,
            losing_bettors=losing_bettors,
        )

    async def _after_settlement(self, settled: _Settled) -> list[RankUpdate]:
        match = settled.match
        winners = settled.winner_user_ids
        winnings: dict[str, int] = {}
        for p in settled.distribution.payouts:
            winnings[p.user_id] = winnings.get(p.user_id, 0) + p.win_amount

        rank_updates: list[RankUpdate] = []
        points = win_points(match.game_mode)
        for user_id in winners:
            try:
                rank_updates.append(await self._rank.apply_and_notify(user_id, points))
            except Exception:
                logger.exception("Rank update for %s after match %s failed", user_id, match.id)
            await notify_safely(
                self._dispatcher,
                user_id,
                NotificationType.MATCH_WON.value,
                "Match won",
                f"You won match {match.id}",
                {"match_id": match.id, "win_amount": winnings.get(user_id, 0)},
            )

        for user_id in _losers(match.player_ids, settled.losing_bettors, winners):
            await notify_safely(
                self._dispatcher,
                user_id,
                NotificationType.MATCH_LOST.value,
                "Match lost",
                f"Match {match.id} was settled against you",
                {"match_id": match.id},
            )
        return rank_updates

    # ------------------------------------------------------------------
    # Void
    # ------------------------------------------------------------------

    async def void_match(self, match_id: str, reason: str, admin_id: str) -> VoidResult:
        async def work(db: AsyncSession) -> _Voided:
            return await self._void_in_tx(db, match_id, reason, admin_id)

        voided = await run_atomic(work, self._session_factory, label=f"void {match_id}")
        logger.info(
            "Voided match %s (was %s): %d bets refunded",
            match_id,
            voided.previous_status,
            len(voided.refunds),
        )
        for user_id in dict.fromkeys(r.user_id for r in voided.refunds):
            await notify_safely(
                self._dispatcher,
                user_id,
                NotificationType.MATCH_VOIDED.value,
                "Match voided",
                f"Match {match_id} was voided and your bets refunded",
                {"match_id": match_id, "reason": reason},
            )
        return VoidResult(
            match_id=match_id,
            previous_status=voided.previous_status,
            refunds=voided.refunds,
            total_refunded_cents=sum(r.refund_cents for r in voided.refunds),
        )

    async def _void_in_tx(
        self, db: AsyncSession, match_id: str, reason: str, admin_id: str
    ) -> _Voided:
        match = await self._matches.get_match(db, match_id)
        if match is None:
            raise MatchNotFoundError(match_id)
        if match.status not in _VOIDABLE:
            raise InvalidMatchStateError(match_id, match.status, " | ".join(_VOIDABLE))

        cancelled = await self._matches.mark_cancelled(db, match_id, admin_id, utc_now(), reason)
        if cancelled is None:
            current = await self._matches.get_match(db, match_id)
            status = current.status if current else "missing"
            raise InvalidMatchStateError(match_id, status, " | ".join(_VOIDABLE))

        voided = _Voided(previous_status=match.status)
        for bet in await self._bets.list_active_for_match(db, match_id):
            _, tx = await self._ledger.transition(
                db,
                bet,
                BetStatus.CANCELLED,
                credit=Credit(
                    amount=bet.amount,
                    tx_type=TransactionType.REFUND.value,
                    reference_type=ReferenceType.BET.value,
                    reference_id=bet.id,
                    description=f"Refund: match {match_id} voided",
                ),
            )
            voided.refunds.append(
                RefundResult(
                    user_id=bet.user_id,
                    bet_id=bet.id,
                    refund_cents=bet.amount,
                    transaction_id=tx.id if tx else None,
                )
            )

        await write_audit_event(
            "MATCH_VOIDED",
            "match",
            match_id,
            admin_id,
            {
                "reason": reason,
                "previous_status": match.status,
                "refunds": [
                    {"user_id": r.user_id, "bet_id": r.bet_id, "amount": r.refund_cents}
                    for r in voided.refunds
                ],
            },
            db,
        )
        return voided

    # ------------------------------------------------------------------
    # Conservation audit (read-only)
    # ------------------------------------------------------------------

    async def verify_match_conservation(
        self, db: AsyncSession, match_id: str
    ) -> ConservationReport:
        match = await self._matches.get_match(db, match_id)
        if match is None:
            raise MatchNotFoundError(match_id)
        if match.status != MatchStatus.VALIDATED:
            raise InvalidMatchStateError(match_id, match.status, MatchStatus.VALIDATED.value)

        violations: list[str] = []
        revenue = await get_revenue(match_id, db)
        total_bet_amount, winning_bets = await get_settled_stake(match_id, db)
        txs = await self._wallet.list_by_reference(db, ReferenceType.MATCH.value, match_id)
        total_paid = sum(t.amount for t in txs if t.tx_type == TransactionType.WIN)

        if revenue is None:
            violations.append("no platform_revenue row for validated match")
            revenue = RevenueRecord(match_id, total_bet_amount, 0, 0, 0, 0)
        elif revenue.total_bet_amount != total_bet_amount:
            violations.append(
                f"recorded total {revenue.total_bet_amount} != settled bets {total_bet_amount}"
            )

        accounted = (
            total_paid + revenue.platform_fee + revenue.rounding_remainder + revenue.unclaimed_pool
        )
        if accounted != total_bet_amount:
            violations.append(f"accounted {accounted} != total bet amount {total_bet_amount}")
        if total_paid > revenue.prize_pool:
            violations.append(f"paid {total_paid} exceeds prize pool {revenue.prize_pool}")
        if not 0 <= revenue.rounding_remainder < max(winning_bets, 1):
            violations.append(
                f"rounding remainder {revenue.rounding_remainder} outside [0, {winning_bets})"
            )

        if violations:
            logger.error("Conservation check failed for match %s: %s", match_id, violations)
        return ConservationReport(
            match_id=match_id,
            total_bet_amount_cents=total_bet_amount,
            total_paid_cents=total_paid,
            platform_fee_cents=revenue.platform_fee,
            rounding_remainder_cents=revenue.rounding_remainder,
            unclaimed_pool_cents=revenue.unclaimed_pool,
            winning_bets=winning_bets,
            balanced=not violations,
            violations=violations,
        )


def _losers(
    participants: Sequence[str], losing_bettors: Sequence[str], winners: Sequence[str]
) -> list[str]:
    """Losing participants plus bettors with lost bets, deduplicated, order kept."""
    winner_set = set(winners)
    return [
        u
        for u in dict.fromkeys([*participants, *losing_bettors])
        if u not in winner_set
    ]
