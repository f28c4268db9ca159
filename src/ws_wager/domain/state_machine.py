"""Bet state machine: active → {won, lost, cashout, cancelled}, all terminal.

WagerLedger.transition is the single entry point for leaving `active`. In the
caller's transaction it:
  1. rejects non-active bets up front (no mutation),
  2. flips status with a compare-and-set (settled_at set in the same write),
  3. issues the wallet credit and its Transaction row, when money moves.

A bet that lost the compare-and-set race raises InvalidStateError; money is
never re-applied to a bet that is already terminal.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from src.ws_common.datetime_utils import utc_now
from src.ws_common.enums import TERMINAL_BET_STATUSES, BetStatus
from src.ws_common.errors import InvalidStateError, ValidationError
from src.ws_wager.domain.models import Bet
from src.ws_wager.domain.repository import BetRepositoryProtocol
from src.ws_wager.infrastructure.persistence import BetRepository
from src.ws_wallet.domain.models import Transaction
from src.ws_wallet.infrastructure.ledger import WalletLedger

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[BetStatus, frozenset[BetStatus]] = {
    BetStatus.ACTIVE: TERMINAL_BET_STATUSES,
}


def check_transition(bet: Bet, target: BetStatus) -> None:
    """Raise InvalidStateError if bet cannot move to target. Pure, no I/O."""
    allowed = ALLOWED_TRANSITIONS.get(BetStatus(bet.status), frozenset())
    if target not in allowed:
        raise InvalidStateError(bet.id, bet.status, target.value)


@dataclass
class Credit:
    """Money leg of a transition: one wallet increment + one Transaction."""

    amount: int
    tx_type: str
    reference_type: str
    reference_id: str
    description: str


class WagerLedger:
    def __init__(
        self,
        repo: BetRepositoryProtocol | None = None,
        wallet: WalletLedger | None = None,
    ) -> None:
        self._repo: BetRepositoryProtocol = repo or BetRepository()
        self._wallet = wallet or WalletLedger()

    async def transition(
        self,
        db: AsyncSession,
        bet: Bet,
        target: BetStatus,
        credit: Credit | None = None,
        cashout_amount: int | None = None,
        win_amount: int | None = None,
    ) -> tuple[Bet, Transaction | None]:
        check_transition(bet, target)
        if credit is not None and credit.amount < 0:
            raise ValidationError(f"transition credit must be >= 0, got {credit.amount}")

        updated = await self._repo.compare_and_set_status(
            db,
            bet.id,
            target.value,
            settled_at=utc_now(),
            cashout_amount=cashout_amount,
            win_amount=win_amount,
        )
        if updated is None:
            current = await self._repo.get_bet(db, bet.id)
            status = current.status if current else "missing"
            logger.info("Bet %s lost transition race to %s (now %s)", bet.id, target.value, status)
            raise InvalidStateError(bet.id, status, target.value)

        tx: Transaction | None = None
        if credit is not None:
            _, tx = await self._wallet.apply(
                db,
                updated.user_id,
                credit.amount,
                credit.tx_type,
                credit.reference_type,
                credit.reference_id,
                credit.description,
            )
        return updated, tx
