"""Global enums — must match DB CHECK constraints exactly (see alembic/versions)."""

from enum import Enum


class MatchStatus(str, Enum):
    WAITING = "waiting"
    IN_PROGRESS = "in_progress"
    AWAITING_VALIDATION = "awaiting_validation"
    VALIDATED = "validated"
    CANCELLED = "cancelled"


class BetStatus(str, Enum):
    ACTIVE = "active"
    WON = "won"
    LOST = "lost"
    CASHOUT = "cashout"
    CANCELLED = "cancelled"


TERMINAL_BET_STATUSES = frozenset(
    {BetStatus.WON, BetStatus.LOST, BetStatus.CASHOUT, BetStatus.CANCELLED}
)


class BetAction(str, Enum):
    CASHOUT = "cashout"
    CANCEL = "cancel"


class WinnerType(str, Enum):
    USER = "user"
    TEAM = "team"


class GameMode(str, Enum):
    CASUAL = "casual"
    RANKED = "ranked"
    TOURNAMENT = "tournament"


class TransactionType(str, Enum):
    BET = "bet"
    WIN = "win"
    CASHOUT = "cashout"
    REFUND = "refund"


class TransactionStatus(str, Enum):
    COMPLETED = "completed"


class ReferenceType(str, Enum):
    MATCH = "match"
    BET = "bet"


class NotificationType(str, Enum):
    MATCH_WON = "match_won"
    MATCH_LOST = "match_lost"
    RANK_CHANGED = "rank_changed"
    BET_CASHOUT = "bet_cashout"
    BET_CANCELLED = "bet_cancelled"
    MATCH_VOIDED = "match_voided"
