"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class GameType(str, Enum):
    CASH = "CASH"
    TOURNAMENT = "TOURNAMENT"


class SessionStatus(str, Enum):
    SETUP = "SETUP"
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    ENDING = "ENDING"
    COMPLETED = "COMPLETED"


class ChipUpdateKind(str, Enum):
    """Origin of a chip stack snapshot."""
    UPDATE = "UPDATE"
    REBUY = "REBUY"


class StakeStatus(str, Enum):
    PROPOSED = "PROPOSED"
    AWAITING_SETTLEMENT = "AWAITING_SETTLEMENT"
    AWAITING_CONFIRMATION = "AWAITING_CONFIRMATION"
    SETTLED = "SETTLED"
    DECLINED = "DECLINED"
    CANCELLED = "CANCELLED"


# Stakes in these states still follow the session's financial facts
OPEN_STAKE_STATUSES = frozenset({
    StakeStatus.PROPOSED,
    StakeStatus.AWAITING_SETTLEMENT,
    StakeStatus.AWAITING_CONFIRMATION,
})

LIVE_SESSION_STATUSES = frozenset({
    SessionStatus.ACTIVE,
    SessionStatus.PAUSED,
    SessionStatus.ENDING,
})
