"""Domain models for ws_rank."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RankUpdate:
    user_id: str
    old_points: int
    new_points: int
    old_tier: str
    new_tier: str
    position: int | None = None

    @property
    def tier_changed(self) -> bool:
        return self.old_tier != self.new_tier

    @property
    def delta(self) -> int:
        return self.new_points - self.old_points


@dataclass(frozen=True)
class RankProfile:
    user_id: str
    points: int
    tier: str
    position: int
