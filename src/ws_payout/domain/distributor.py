"""Payout Distributor — pure function, no I/O.

    total_pool      = Σ bet.amount
    platform_fee    = ceil(total_pool × fee_bps / 10000)
    prize_pool      = total_pool − platform_fee
    win_amount(bet) = floor(prize_pool × bet.amount / total_winning_stake)

Flooring means Σ win_amount ≤ prize_pool; the difference (rounding_remainder,
strictly less than the number of winning bets) stays with the platform. When
the winners had no backers the whole prize pool is retained as unclaimed_pool.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from src.ws_common.cents import calculate_fee
from src.ws_common.errors import ConservationViolation, ValidationError
from src.ws_wager.domain.models import Bet


@dataclass(frozen=True)
class Payout:
    user_id: str
    bet_id: str
    bet_amount: int
    win_amount: int


@dataclass(frozen=True)
class Distribution:
    total_bet_amount: int
    platform_fee: int
    prize_pool: int
    total_winning_stake: int
    payouts: list[Payout] = field(default_factory=list)
    losing_bet_ids: list[str] = field(default_factory=list)
    rounding_remainder: int = 0
    unclaimed_pool: int = 0

    @property
    def total_paid(self) -> int:
        return sum(p.win_amount for p in self.payouts)

    @property
    def platform_revenue(self) -> int:
        return self.platform_fee + self.rounding_remainder + self.unclaimed_pool


def distribute(
    bets: Sequence[Bet],
    winner_user_ids: Iterable[str],
    fee_bps: int,
) -> Distribution:
    """Compute the settlement of one match. Raises ConservationViolation on any breach."""
    if not 0 <= fee_bps <= 10000:
        raise ValidationError(f"fee_bps must be within [0, 10000], got {fee_bps}")
    for bet in bets:
        if bet.amount <= 0:
            raise ValidationError(f"bet {bet.id} has non-positive amount {bet.amount}")

    winners = set(winner_user_ids)
    total_pool = sum(b.amount for b in bets)
    platform_fee = calculate_fee(total_pool, fee_bps)
    prize_pool = total_pool - platform_fee

    winning_bets = [b for b in bets if b.user_id in winners]
    losing_bet_ids = [b.id for b in bets if b.user_id not in winners]
    total_winning_stake = sum(b.amount for b in winning_bets)

    if total_winning_stake == 0:
        # No backers on the winning side: nothing to pay, pool retained by the platform
        return Distribution(
            total_bet_amount=total_pool,
            platform_fee=platform_fee,
            prize_pool=prize_pool,
            total_winning_stake=0,
            payouts=[],
            losing_bet_ids=losing_bet_ids,
            rounding_remainder=0,
            unclaimed_pool=prize_pool,
        )

    payouts = [
        Payout(
            user_id=b.user_id,
            bet_id=b.id,
            bet_amount=b.amount,
            win_amount=(prize_pool * b.amount) // total_winning_stake,
        )
        for b in winning_bets
    ]
    distribution = Distribution(
        total_bet_amount=total_pool,
        platform_fee=platform_fee,
        prize_pool=prize_pool,
        total_winning_stake=total_winning_stake,
        payouts=payouts,
        losing_bet_ids=losing_bet_ids,
        rounding_remainder=prize_pool - sum(p.win_amount for p in payouts),
        unclaimed_pool=0,
    )
    verify_conservation(distribution)
    return distribution


def verify_conservation(d: Distribution) -> None:
    """Σ payouts + fee + remainder + unclaimed == total, remainder within [0, #winning bets)."""
    if d.total_paid > d.prize_pool:
        raise ConservationViolation(
            f"payouts {d.total_paid} exceed prize pool {d.prize_pool}"
        )
    if any(p.win_amount < 0 for p in d.payouts):
        raise ConservationViolation("negative payout computed")
    if not 0 <= d.rounding_remainder < max(len(d.payouts), 1):
        raise ConservationViolation(
            f"rounding remainder {d.rounding_remainder} outside [0, {len(d.payouts)})"
        )
    accounted = d.total_paid + d.platform_fee + d.rounding_remainder + d.unclaimed_pool
    if accounted != d.total_bet_amount:
        raise ConservationViolation(
            f"accounted {accounted} != total bet amount {d.total_bet_amount}"
        )
