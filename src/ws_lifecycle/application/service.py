"""BetLifecycleManager — placing, cashing out and cancelling single bets.

Every mutation is one run_atomic unit: the match is read FOR SHARE (it waits
behind an in-flight settlement's row lock), then the bet moves through the
WagerLedger compare-and-set together with its wallet leg. A cashout racing a
settlement on the same bet therefore fails with InvalidStateError or
InvalidMatchStateError; it can never be paid twice.
"""

import logging
from decimal import ROUND_FLOOR, Decimal

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import settings
from src.ws_common.database import async_session_factory
from src.ws_common.datetime_utils import utc_now
from src.ws_common.enums import (
    BetAction,
    BetStatus,
    MatchStatus,
    NotificationType,
    ReferenceType,
    TransactionType,
)
from src.ws_common.errors import (
    AuthorizationError,
    BetLimitError,
    BetNotFoundError,
    InvalidMatchStateError,
    MatchNotFoundError,
    ValidationError,
)
from src.ws_common.id_generator import generate_id
from src.ws_common.unit_of_work import run_atomic
from src.ws_lifecycle.application.schemas import (
    BetListResponse,
    BetView,
    cursor_decode,
    cursor_encode,
)
from src.ws_lifecycle.domain.cashout import cashout_amount, match_progress_bps
from src.ws_notify.domain.dispatcher import NotificationDispatcher, notify_safely
from src.ws_notify.infrastructure.dispatcher import DbNotificationDispatcher
from src.ws_wager.domain.models import Bet, Match
from src.ws_wager.domain.repository import BetRepositoryProtocol
from src.ws_wager.domain.state_machine import Credit, WagerLedger, check_transition
from src.ws_wager.infrastructure.match_repository import MatchRepository
from src.ws_wager.infrastructure.persistence import BetRepository
from src.ws_wallet.infrastructure.ledger import WalletLedger

logger = logging.getLogger(__name__)


class BetLifecycleManager:
    def __init__(
        self,
        bet_repo: BetRepositoryProtocol | None = None,
        match_repo: MatchRepository | None = None,
        wallet: WalletLedger | None = None,
        dispatcher: NotificationDispatcher | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        self._bets: BetRepositoryProtocol = bet_repo or BetRepository()
        self._matches = match_repo or MatchRepository()
        self._wallet = wallet or WalletLedger()
        self._ledger = WagerLedger(self._bets, self._wallet)
        self._dispatcher: NotificationDispatcher = dispatcher or DbNotificationDispatcher()
        self._session_factory = session_factory or async_session_factory

    async def _owned_bet(self, db: AsyncSession, bet_id: str, user_id: str) -> Bet:
        bet = await self._bets.get_bet(db, bet_id)
        if bet is None:
            raise BetNotFoundError(bet_id)
        if bet.user_id != user_id:
            raise AuthorizationError(f"bet {bet_id} belongs to another user")
        return bet

    async def _match_in(self, db: AsyncSession, match_id: str, expected: MatchStatus) -> Match:
        match = await self._matches.get_match(db, match_id, for_share=True)
        if match is None:
            raise MatchNotFoundError(match_id)
        if match.status != expected:
            raise InvalidMatchStateError(match_id, match.status, expected.value)
        return match

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def place_bet(
        self, user_id: str, match_id: str, amount: int, odd: Decimal
    ) -> BetView:
        if not settings.MIN_BET_CENTS <= amount <= settings.MAX_BET_CENTS:
            raise BetLimitError(amount, settings.MIN_BET_CENTS, settings.MAX_BET_CENTS)
        if odd <= 1:
            raise ValidationError(f"odd must be greater than 1, got {odd}")
        potential_win = int((Decimal(amount) * odd).to_integral_value(rounding=ROUND_FLOOR))

        async def work(db: AsyncSession) -> Bet:
            await self._match_in(db, match_id, MatchStatus.WAITING)
            bet_id = generate_id()
            await self._wallet.apply(
                db,
                user_id,
                -amount,
                TransactionType.BET.value,
                ReferenceType.BET.value,
                bet_id,
                f"Bet on match {match_id}",
            )
            return await self._bets.insert_bet(
                db,
                Bet(
                    id=bet_id,
                    match_id=match_id,
                    user_id=user_id,
                    amount=amount,
                    odd=odd,
                    potential_win=potential_win,
                    status=BetStatus.ACTIVE.value,
                ),
            )

        bet = await run_atomic(work, self._session_factory, label=f"place bet {match_id}")
        logger.info("Bet %s placed by %s on match %s: %d cents", bet.id, user_id, match_id, amount)
        return BetView.from_bet(bet)

    async def cashout(self, bet_id: str, user_id: str) -> BetView:
        async def work(db: AsyncSession) -> Bet:
            bet = await self._owned_bet(db, bet_id, user_id)
            check_transition(bet, BetStatus.CASHOUT)
            match = await self._match_in(db, bet.match_id, MatchStatus.IN_PROGRESS)
            progress = match_progress_bps(
                match.started_at, utc_now(), settings.MATCH_EXPECTED_DURATION_MINUTES
            )
            amount = cashout_amount(bet.potential_win, progress)
            updated, _ = await self._ledger.transition(
                db,
                bet,
                BetStatus.CASHOUT,
                credit=Credit(
                    amount=amount,
                    tx_type=TransactionType.CASHOUT.value,
                    reference_type=ReferenceType.BET.value,
                    reference_id=bet.id,
                    description=f"Cashout at {progress} bps progress",
                ),
                cashout_amount=amount,
            )
            return updated

        bet = await run_atomic(work, self._session_factory, label=f"cashout {bet_id}")
        logger.info("Bet %s cashed out for %s cents", bet_id, bet.cashout_amount)
        await notify_safely(
            self._dispatcher,
            user_id,
            NotificationType.BET_CASHOUT.value,
            "Bet cashed out",
            f"Bet {bet_id} cashed out",
            {"bet_id": bet_id, "cashout_amount": bet.cashout_amount},
        )
        return BetView.from_bet(bet)

    async def cancel(self, bet_id: str, user_id: str) -> BetView:
        async def work(db: AsyncSession) -> Bet:
            bet = await self._owned_bet(db, bet_id, user_id)
            check_transition(bet, BetStatus.CANCELLED)
            await self._match_in(db, bet.match_id, MatchStatus.WAITING)
            updated, _ = await self._ledger.transition(
                db,
                bet,
                BetStatus.CANCELLED,
                credit=Credit(
                    amount=bet.amount,
                    tx_type=TransactionType.REFUND.value,
                    reference_type=ReferenceType.BET.value,
                    reference_id=bet.id,
                    description="Bet cancelled by owner",
                ),
            )
            return updated

        bet = await run_atomic(work, self._session_factory, label=f"cancel {bet_id}")
        logger.info("Bet %s cancelled, %d cents refunded", bet_id, bet.amount)
        await notify_safely(
            self._dispatcher,
            user_id,
            NotificationType.BET_CANCELLED.value,
            "Bet cancelled",
            f"Bet {bet_id} cancelled and refunded",
            {"bet_id": bet_id, "refund_amount": bet.amount},
        )
        return BetView.from_bet(bet)

    async def bet_action(self, bet_id: str, user_id: str, action: BetAction) -> BetView:
        if action is BetAction.CASHOUT:
            return await self.cashout(bet_id, user_id)
        return await self.cancel(bet_id, user_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_bet(
        self, db: AsyncSession, bet_id: str, caller_id: str, is_admin: bool = False
    ) -> BetView:
        bet = await self._bets.get_bet(db, bet_id)
        if bet is None:
            raise BetNotFoundError(bet_id)
        if bet.user_id != caller_id and not is_admin:
            raise AuthorizationError(f"bet {bet_id} belongs to another user")
        match = await self._matches.get_match(db, bet.match_id)
        return BetView.from_bet(bet, match)

    async def list_bets(
        self,
        db: AsyncSession,
        user_id: str,
        status: str | None,
        match_id: str | None,
        cursor: str | None,
        limit: int,
    ) -> BetListResponse:
        if status is not None:
            try:
                BetStatus(status)
            except ValueError:
                raise ValidationError(f"unknown bet status {status!r}") from None
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        bets = await self._bets.list_user_bets(
            db, user_id, status, match_id, cursor_id, limit + 1
        )
        has_more = len(bets) > limit
        page = bets[:limit]
        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return BetListResponse(
            items=[BetView.from_bet(b) for b in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )
