"""Rank tier table and per-game-mode point awards.

Tiers are resolved from rank points, except the top two, which also depend on
leaderboard position:

    Challenger  points >= 5500 and position <= CHALLENGER_MAX_POSITION
    Legend      points >= 5500 and position <= LEGEND_MAX_POSITION

Position is 1 + the number of users with strictly more points.
"""

from config.settings import settings
from src.ws_common.enums import GameMode

# (threshold, name), ascending by threshold
POINT_TIERS: tuple[tuple[int, str], ...] = (
    (0, "Novice"),
    (50, "Bronze I"),
    (100, "Bronze II"),
    (200, "Bronze III"),
    (350, "Silver I"),
    (500, "Silver II"),
    (700, "Silver III"),
    (950, "Gold I"),
    (1250, "Gold II"),
    (1600, "Gold III"),
    (2000, "Platinum I"),
    (2500, "Platinum II"),
    (3100, "Platinum III"),
    (3800, "Diamond I"),
    (4600, "Diamond II"),
    (5500, "Diamond III"),
)

POSITION_TIER_MIN_POINTS = POINT_TIERS[-1][0]
LEGEND = "Legend"
CHALLENGER = "Challenger"

WIN_POINTS_BY_MODE: dict[GameMode, int] = {
    GameMode.CASUAL: 50,
    GameMode.RANKED: 75,
    GameMode.TOURNAMENT: 100,
}


def points_tier(points: int) -> str:
    name = POINT_TIERS[0][1]
    for threshold, tier in POINT_TIERS:
        if points < threshold:
            break
        name = tier
    return name


def resolve_tier(points: int, position: int | None = None) -> str:
    """Highest tier for points, with the leaderboard override for the top two."""
    if position is not None and points >= POSITION_TIER_MIN_POINTS:
        if position <= settings.CHALLENGER_MAX_POSITION:
            return CHALLENGER
        if position <= settings.LEGEND_MAX_POSITION:
            return LEGEND
    return points_tier(points)


def win_points(game_mode: str) -> int:
    try:
        return WIN_POINTS_BY_MODE[GameMode(game_mode)]
    except ValueError:
        return WIN_POINTS_BY_MODE[GameMode.CASUAL]
