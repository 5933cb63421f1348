"""StakeStatusMachine — lifecycle of a stake contract.

    PROPOSED ──accept──▶ AWAITING_SETTLEMENT ──mark_settled──────────▶ SETTLED
       │                    │        ▲                                  │
    decline            initiate   withdraw                              │
       ▼                    ▼        │                                  │
    DECLINED          AWAITING_CONFIRMATION ──confirm──▶ SETTLED        │
                                                                        │
    AWAITING_SETTLEMENT ◀───────────────── reopen (explicit, logged) ───┘

Any open status can be CANCELLED (parent session deleted).
Off-app stakes start at AWAITING_SETTLEMENT: there is nobody to accept them.
"""

import logging
from datetime import datetime

from src.sl_common.enums import OPEN_STAKE_STATUSES, StakeStatus
from src.sl_common.errors import InvalidTransitionError
from src.sl_staking.domain.models import StakeContract, StakerRef

logger = logging.getLogger(__name__)

_TRANSITIONS: dict[str, tuple[frozenset[StakeStatus], StakeStatus]] = {
    "accept": (frozenset({StakeStatus.PROPOSED}), StakeStatus.AWAITING_SETTLEMENT),
    "decline": (frozenset({StakeStatus.PROPOSED}), StakeStatus.DECLINED),
    "mark settled": (
        frozenset({StakeStatus.AWAITING_SETTLEMENT, StakeStatus.AWAITING_CONFIRMATION}),
        StakeStatus.SETTLED,
    ),
    "initiate settlement of": (
        frozenset({StakeStatus.AWAITING_SETTLEMENT}),
        StakeStatus.AWAITING_CONFIRMATION,
    ),
    "confirm settlement of": (
        frozenset({StakeStatus.AWAITING_CONFIRMATION}),
        StakeStatus.SETTLED,
    ),
    "withdraw settlement of": (
        frozenset({StakeStatus.AWAITING_CONFIRMATION}),
        StakeStatus.AWAITING_SETTLEMENT,
    ),
    "cancel": (OPEN_STAKE_STATUSES, StakeStatus.CANCELLED),
    "reopen": (frozenset({StakeStatus.SETTLED}), StakeStatus.AWAITING_SETTLEMENT),
}


def initial_status(staker: StakerRef) -> StakeStatus:
    if staker.is_off_app:
        return StakeStatus.AWAITING_SETTLEMENT
    return StakeStatus.PROPOSED


def can(stake: StakeContract, action: str) -> bool:
    allowed_from, _ = _TRANSITIONS[action]
    return stake.status in allowed_from


def _apply(stake: StakeContract, action: str, now: datetime) -> StakeStatus:
    allowed_from, target = _TRANSITIONS[action]
    if stake.status not in allowed_from:
        raise InvalidTransitionError("stake", stake.status.value, action)
    previous = stake.status
    stake.status = target
    stake.last_updated_at = now
    return previous


def accept(stake: StakeContract, now: datetime) -> None:
    _apply(stake, "accept", now)
    stake.accepted_at = now


def decline(stake: StakeContract, now: datetime) -> None:
    _apply(stake, "decline", now)
    stake.declined_at = now


def mark_settled(stake: StakeContract, now: datetime, *, settled_by: str | None = None) -> None:
    _apply(stake, "mark settled", now)
    stake.settled_at = now
    stake.settlement_confirmer_id = settled_by


def initiate_settlement(stake: StakeContract, initiator_id: str, now: datetime) -> None:
    _apply(stake, "initiate settlement of", now)
    stake.settlement_initiator_id = initiator_id


def confirm_settlement(
    stake: StakeContract, now: datetime, *, confirmer_id: str | None = None
) -> None:
    _apply(stake, "confirm settlement of", now)
    stake.settled_at = now
    stake.settlement_confirmer_id = confirmer_id


def withdraw_settlement(stake: StakeContract, now: datetime) -> None:
    _apply(stake, "withdraw settlement of", now)
    stake.settlement_initiator_id = None


def cancel(stake: StakeContract, now: datetime) -> None:
    _apply(stake, "cancel", now)


def reopen(stake: StakeContract, actor_id: str, now: datetime) -> None:
    """Move a settled stake back to AWAITING_SETTLEMENT so it follows the session again."""
    _apply(stake, "reopen", now)
    logger.warning(
        "Stake %s reopened by %s (was settled at %s for %d cents)",
        stake.id,
        actor_id,
        stake.settled_at.isoformat() if stake.settled_at else "unknown",
        stake.settlement_amount_cents,
    )
    stake.settled_at = None
    stake.settlement_initiator_id = None
    stake.settlement_confirmer_id = None
