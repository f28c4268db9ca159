"""Pydantic schemas for settlement, void and conservation checks."""

from pydantic import BaseModel, Field

from src.ws_common.cents import cents_to_display

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class SettleRequest(BaseModel):
    winner_id: str = Field(..., min_length=1, max_length=64)
    winner_type: str = Field(..., pattern="^(user|team)$")
    notes: str | None = Field(None, max_length=1000)


class VoidRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class PaymentResult(BaseModel):
    user_id: str
    bet_id: str
    bet_amount_cents: int
    win_amount_cents: int
    win_amount_display: str
    transaction_id: int | None = None


class RankUpdateView(BaseModel):
    user_id: str
    old_points: int
    new_points: int
    old_tier: str
    new_tier: str
    tier_changed: bool


class SettlementResult(BaseModel):
    match_id: str
    winner_id: str
    winner_type: str
    winner_user_ids: list[str]
    total_bet_amount_cents: int
    platform_fee_cents: int
    prize_pool_cents: int
    prize_pool_display: str
    rounding_remainder_cents: int
    unclaimed_pool_cents: int
    payment_results: list[PaymentResult]
    lost_bet_ids: list[str]
    rank_updates: list[RankUpdateView] = Field(default_factory=list)


class RefundResult(BaseModel):
    user_id: str
    bet_id: str
    refund_cents: int
    transaction_id: int | None = None


class VoidResult(BaseModel):
    match_id: str
    previous_status: str
    refunds: list[RefundResult]
    total_refunded_cents: int


class ConservationReport(BaseModel):
    match_id: str
    total_bet_amount_cents: int
    total_paid_cents: int
    platform_fee_cents: int
    rounding_remainder_cents: int
    unclaimed_pool_cents: int
    winning_bets: int
    balanced: bool
    violations: list[str]


def payment_result(
    user_id: str, bet_id: str, bet_amount: int, win_amount: int, tx_id: int | None
) -> PaymentResult:
    return PaymentResult(
        user_id=user_id,
        bet_id=bet_id,
        bet_amount_cents=bet_amount,
        win_amount_cents=win_amount,
        win_amount_display=cents_to_display(win_amount),
        transaction_id=tx_id,
    )
