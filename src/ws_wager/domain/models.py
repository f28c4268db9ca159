"""Domain models for ws_wager — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal


@dataclass
class Bet:
    id: str
    match_id: str
    user_id: str
    amount: int                      # cents, > 0
    odd: Decimal                     # informational; potential_win is the stored truth
    potential_win: int               # cents
    status: str
    cashout_amount: int | None = None
    win_amount: int | None = None
    settled_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class MatchPlayer:
    user_id: str
    team_id: str | None = None


@dataclass
class Match:
    id: str
    status: str
    game_mode: str
    players: list[MatchPlayer] = field(default_factory=list)
    winner_id: str | None = None
    winner_type: str | None = None
    validated_by: str | None = None
    validated_at: datetime | None = None
    validation_notes: str | None = None
    started_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def team_members(self, team_id: str) -> list[str]:
        return [p.user_id for p in self.players if p.team_id == team_id]

    @property
    def player_ids(self) -> list[str]:
        return [p.user_id for p in self.players]
