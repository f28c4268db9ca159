"""Tests for ws_common.enums — every value must appear in its DB CHECK constraint."""

from enum import Enum
from pathlib import Path

import pytest

from src.ws_common.enums import (
    TERMINAL_BET_STATUSES,
    BetAction,
    BetStatus,
    GameMode,
    MatchStatus,
    NotificationType,
    ReferenceType,
    TransactionType,
    WinnerType,
)

_VERSIONS = Path(__file__).resolve().parents[2] / "alembic" / "versions"


def _migration(prefix: str) -> str:
    (path,) = _VERSIONS.glob(f"{prefix}_*.py")
    return path.read_text()


@pytest.mark.parametrize(
    ("enum_cls", "migration"),
    [
        (MatchStatus, "003"),
        (GameMode, "003"),
        (WinnerType, "003"),
        (BetStatus, "004"),
        (TransactionType, "005"),
        (ReferenceType, "005"),
        (NotificationType, "008"),
    ],
)
def test_values_match_check_constraint(enum_cls: type[Enum], migration: str) -> None:
    sql = _migration(migration)
    for member in enum_cls:
        assert f"'{member.value}'" in sql, f"{enum_cls.__name__}.{member.name}"


class TestBetStatus:
    def test_is_str(self) -> None:
        assert isinstance(BetStatus.ACTIVE, str)
        assert BetStatus.ACTIVE == "active"

    def test_terminal_statuses(self) -> None:
        assert BetStatus.ACTIVE not in TERMINAL_BET_STATUSES
        assert len(TERMINAL_BET_STATUSES) == 4


def test_bet_actions() -> None:
    assert {a.value for a in BetAction} == {"cashout", "cancel"}
