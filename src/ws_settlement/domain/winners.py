"""Winner resolution: a validated result names one user or one team."""

from src.ws_common.enums import WinnerType
from src.ws_common.errors import InvalidWinnerError, ValidationError
from src.ws_wager.domain.models import Match


def resolve_winner_user_ids(match: Match, winner_id: str, winner_type: str) -> list[str]:
    """Expand the claimed winner into participant user ids.

    A user winner must be a participant of the match; a team winner expands
    to the team's members. An empty result raises InvalidWinnerError.
    """
    try:
        kind = WinnerType(winner_type)
    except ValueError:
        raise ValidationError(f"winner_type must be 'user' or 'team', got {winner_type!r}") from None

    if kind is WinnerType.TEAM:
        winners = match.team_members(winner_id)
    else:
        winners = [winner_id] if winner_id in match.player_ids else []

    if not winners:
        raise InvalidWinnerError(
            f"{kind.value} {winner_id} has no participants in match {match.id}"
        )
    return winners
