"""SettlementCalculator — signed amount owed between staked player and staker.

    profit               = cashout - buy_in
    staker_gross_share   = profit * percentage
    adjusted_share       = staker_gross_share * markup
    settlement_amount    = -adjusted_share

Negative: the player transfers to the staker (staker's share of a win).
Positive: the staker transfers to the player (staker's share of a loss).

percentage and markup are basis points, so the product is an exact integer in
cents × SETTLEMENT_SCALE. That exact value is what a stake stores; whole cents
are derived from it (half away from zero) only for display. Scaling the markup
therefore scales the stored amount exactly, and the same inputs always give
the same int.
"""

import logging
from datetime import datetime

from src.sl_common.cents import BPS_SCALE, SETTLEMENT_SCALE, div_round_half_away
from src.sl_common.enums import StakeStatus
from src.sl_common.errors import (
    InvalidMarkupError,
    InvalidPercentageError,
    StakeAlreadySettledError,
)
from src.sl_staking.domain.models import StakeContract

logger = logging.getLogger(__name__)


def validate_stake_terms(stake_percentage_bps: int, markup_bps: int) -> None:
    if not (0 < stake_percentage_bps <= BPS_SCALE):
        raise InvalidPercentageError(stake_percentage_bps)
    if markup_bps < BPS_SCALE:
        raise InvalidMarkupError(markup_bps)


def settlement_amount_scaled(
    buy_in_cents: int,
    cashout_cents: int,
    stake_percentage_bps: int,
    markup_bps: int,
) -> int:
    """Exact settlement amount in cents × SETTLEMENT_SCALE."""
    profit = cashout_cents - buy_in_cents
    return -(profit * stake_percentage_bps * markup_bps)


def calculate_settlement(
    buy_in_cents: int,
    cashout_cents: int,
    stake_percentage_bps: int,
    markup_bps: int,
) -> int:
    """Settlement amount in whole cents."""
    return div_round_half_away(
        settlement_amount_scaled(buy_in_cents, cashout_cents, stake_percentage_bps, markup_bps),
        SETTLEMENT_SCALE,
    )


def staker_cost_cents(buy_in_cents: int, stake_percentage_bps: int, markup_bps: int) -> int:
    """What the staker's piece of the action is worth at the agreed markup."""
    return div_round_half_away(buy_in_cents * stake_percentage_bps * markup_bps, SETTLEMENT_SCALE)


def staker_share_of_cashout_cents(cashout_cents: int, stake_percentage_bps: int) -> int:
    return div_round_half_away(cashout_cents * stake_percentage_bps, BPS_SCALE)


def recompute(
    stake: StakeContract, buy_in_cents: int, cashout_cents: int, now: datetime
) -> bool:
    """Refresh a stake against new session facts. Returns True if anything changed."""
    if stake.status == StakeStatus.SETTLED:
        raise StakeAlreadySettledError(stake.id)

    amount = settlement_amount_scaled(
        buy_in_cents, cashout_cents, stake.stake_percentage_bps, stake.markup_bps
    )
    changed = (
        stake.session_buy_in_cents != buy_in_cents
        or stake.session_cashout_cents != cashout_cents
        or stake.settlement_amount_scaled != amount
    )
    if changed:
        logger.debug(
            "Stake %s recomputed: buy_in=%d cashout=%d amount %d -> %d (scaled)",
            stake.id, buy_in_cents, cashout_cents, stake.settlement_amount_scaled, amount,
        )
        stake.session_buy_in_cents = buy_in_cents
        stake.session_cashout_cents = cashout_cents
        stake.settlement_amount_scaled = amount
        stake.last_updated_at = now
    return changed


def recompute_open_stakes(
    stakes: list[StakeContract], buy_in_cents: int, cashout_cents: int, now: datetime
) -> list[StakeContract]:
    """Recompute every open stake; settled, declined and cancelled ones are left as they are.

    Returns the stakes that changed and need persisting.
    """
    return [
        stake
        for stake in stakes
        if stake.is_open and recompute(stake, buy_in_cents, cashout_cents, now)
    ]
