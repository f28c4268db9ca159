"""Pydantic schemas and cursor utilities for the bet API."""

import base64
import json
from decimal import Decimal

from pydantic import BaseModel, Field

from src.ws_common.cents import cents_to_display
from src.ws_common.enums import BetAction
from src.ws_common.id_generator import MAX_ENTITY_ID
from src.ws_wager.domain.models import Bet, Match

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: str) -> str:
    """Encode a snowflake bet id into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> str | None:
    """Decode a cursor string back to the last seen id. Returns None on error.

    The id is compared as BIGINT in SQL, so anything outside that range is
    treated as a malformed cursor.
    """
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        last_id = int(payload["id"])
    except Exception:
        return None
    if not 0 <= last_id <= MAX_ENTITY_ID:
        return None
    return str(last_id)


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class PlaceBetRequest(BaseModel):
    match_id: str = Field(..., pattern=r"^[0-9]{1,19}$")
    amount_cents: int = Field(..., gt=0, description="Stake in cents")
    odd: Decimal = Field(..., gt=1, le=1000, max_digits=8, decimal_places=2)


class BetActionRequest(BaseModel):
    action: BetAction


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class MatchSummary(BaseModel):
    id: str
    status: str
    game_mode: str
    winner_id: str | None = None
    started_at: str | None = None


class BetView(BaseModel):
    id: str
    match_id: str
    user_id: str
    amount_cents: int
    amount_display: str
    odd: str
    potential_win_cents: int
    status: str
    cashout_amount_cents: int | None = None
    win_amount_cents: int | None = None
    settled_at: str | None = None
    created_at: str | None = None
    match: MatchSummary | None = None

    @classmethod
    def from_bet(cls, bet: Bet, match: Match | None = None) -> "BetView":
        return cls(
            id=bet.id,
            match_id=bet.match_id,
            user_id=bet.user_id,
            amount_cents=bet.amount,
            amount_display=cents_to_display(bet.amount),
            odd=str(bet.odd),
            potential_win_cents=bet.potential_win,
            status=bet.status,
            cashout_amount_cents=bet.cashout_amount,
            win_amount_cents=bet.win_amount,
            settled_at=bet.settled_at.isoformat() if bet.settled_at else None,
            created_at=bet.created_at.isoformat() if bet.created_at else None,
            match=(
                MatchSummary(
                    id=match.id,
                    status=match.status,
                    game_mode=match.game_mode,
                    winner_id=match.winner_id,
                    started_at=match.started_at.isoformat() if match.started_at else None,
                )
                if match
                else None
            ),
        )


class BetListResponse(BaseModel):
    items: list[BetView]
    next_cursor: str | None
    has_more: bool
