"""Cash-out pricing.

    progress      = elapsed / expected match duration, clamped to [0, 1]
    percentage    = 70% + progress × 25%          ∈ [70%, 95%], non-decreasing
    cashout value = floor(potential_win × percentage)

Everything is in basis points so no float ever touches money.
"""

from datetime import datetime

from src.ws_common.cents import BPS_DENOMINATOR, apply_bps_floor
from src.ws_common.datetime_utils import as_utc

CASHOUT_MIN_BPS = 7000
CASHOUT_MAX_BPS = 9500


def match_progress_bps(
    started_at: datetime | None, now: datetime, expected_minutes: int
) -> int:
    if started_at is None or expected_minutes <= 0:
        return 0
    elapsed_ms = int((as_utc(now) - as_utc(started_at)).total_seconds() * 1000)
    expected_ms = expected_minutes * 60 * 1000
    progress = elapsed_ms * BPS_DENOMINATOR // expected_ms
    return max(0, min(BPS_DENOMINATOR, progress))


def cashout_percentage_bps(progress_bps: int) -> int:
    progress_bps = max(0, min(BPS_DENOMINATOR, progress_bps))
    return CASHOUT_MIN_BPS + progress_bps * (CASHOUT_MAX_BPS - CASHOUT_MIN_BPS) // BPS_DENOMINATOR


def cashout_amount(potential_win: int, progress_bps: int) -> int:
    return apply_bps_floor(potential_win, cashout_percentage_bps(progress_bps))
