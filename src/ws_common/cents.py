"""Integer arithmetic utilities for cents-based wagering.

All amounts and balances use int (cents). Rates use basis points (1 bps = 0.01%).
"""

BPS_DENOMINATOR = 10000


def cents_to_display(cents: int) -> str:
    """Convert cents to display string: 6500 -> '$65.00', -1200 -> '-$12.00'."""
    if cents < 0:
        abs_cents = -cents
        return f"-${abs_cents // 100:,}.{abs_cents % 100:02d}"
    return f"${cents // 100:,}.{cents % 100:02d}"


def calculate_fee(total: int, fee_rate_bps: int) -> int:
    """Calculate fee with ceiling division (platform never loses).

    fee = ceil(total * fee_rate_bps / 10000)
    Using integer ceiling: (a + b - 1) // b
    """
    if total == 0 or fee_rate_bps == 0:
        return 0
    return (total * fee_rate_bps + BPS_DENOMINATOR - 1) // BPS_DENOMINATOR


def apply_bps_floor(amount: int, rate_bps: int) -> int:
    """floor(amount * rate_bps / 10000) — used for payouts to users (never rounds up)."""
    return (amount * rate_bps) // BPS_DENOMINATOR
