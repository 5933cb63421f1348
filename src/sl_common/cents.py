"""Integer arithmetic utilities for cents and basis points.

All money amounts are int (cents). Rates (stake percentage, markup) are int
basis points where 10000 bps == 1.0. No float.
"""

BPS_SCALE = 10_000


def cents_to_display(cents: int) -> str:
    """Convert cents to display string: 6500 -> '$65.00', -1200 -> '-$12.00'."""
    if cents < 0:
        abs_cents = -cents
        return f"-${abs_cents // 100:,}.{abs_cents % 100:02d}"
    return f"${cents // 100:,}.{cents % 100:02d}"


def bps_to_percent_display(bps: int) -> str:
    """5000 -> '50%', 1250 -> '12.5%', 333 -> '3.33%'."""
    whole, frac = divmod(bps, 100)
    if frac == 0:
        return f"{whole}%"
    return f"{whole}.{frac:02d}".rstrip("0") + "%"


def markup_to_display(markup_bps: int) -> str:
    """12000 -> '1.20x'."""
    whole, frac = divmod(markup_bps, BPS_SCALE)
    return f"{whole}.{frac // 100:02d}x"


def div_round_half_away(numerator: int, denominator: int) -> int:
    """Integer division rounding half away from zero.

    Symmetric for negative numerators, so flipping the sign of the input
    flips the sign of the result and nothing else.
    """
    if denominator <= 0:
        raise ValueError(f"denominator must be positive, got {denominator}")
    quotient, remainder = divmod(abs(numerator), denominator)
    if remainder * 2 >= denominator:
        quotient += 1
    return quotient if numerator >= 0 else -quotient


# Exact settlement amounts are kept in cents × BPS_SCALE² so percentage × markup
# never leaves the integers; they are rounded only when shown as whole cents.
SETTLEMENT_SCALE = BPS_SCALE * BPS_SCALE
_SETTLEMENT_DIGITS = 8


def exact_cents_to_str(scaled: int) -> str:
    """Exact amount in cents as a decimal string: -50_000_000 -> '-0.5'."""
    sign = "-" if scaled < 0 else ""
    whole, frac = divmod(abs(scaled), SETTLEMENT_SCALE)
    if frac == 0:
        return f"{sign}{whole}"
    return f"{sign}{whole}.{frac:0{_SETTLEMENT_DIGITS}d}".rstrip("0")
