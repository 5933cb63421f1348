"""Domain models for sl_session — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from datetime import datetime

from src.sl_common.enums import ChipUpdateKind, GameType, SessionStatus


@dataclass(frozen=True)
class ChipStackUpdate:
    """Snapshot of the player's stack.

    amount_cents is ABSOLUTE (the whole stack at `timestamp`), not a delta
    from the previous update.
    """

    id: str
    session_id: str
    amount_cents: int
    timestamp: datetime
    note: str | None = None
    kind: ChipUpdateKind = ChipUpdateKind.UPDATE
    rebuy_amount_cents: int = 0   # > 0 only when kind == REBUY


@dataclass
class Session:
    id: str
    player_id: str
    game_type: GameType
    game_name: str
    stakes_label: str
    status: SessionStatus = SessionStatus.SETUP
    buy_in_cents: int = 0                   # cumulative: initial + rebuys
    cashout_cents: int | None = None        # set on completion
    elapsed_seconds: float = 0.0            # active time folded in at each pause
    last_active_at: datetime | None = None  # set only while ACTIVE
    last_paused_at: datetime | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None
    location: str | None = None
    tournament_base_buy_in_cents: int | None = None
    chip_updates: list[ChipStackUpdate] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_tournament(self) -> bool:
        return self.game_type == GameType.TOURNAMENT

    @property
    def profit_cents(self) -> int | None:
        """Final profit; derived on every read so it cannot drift from buy-in/cashout."""
        if self.cashout_cents is None:
            return None
        return self.cashout_cents - self.buy_in_cents


@dataclass(frozen=True)
class SessionCompleted:
    """Fact emitted by finalize(); the staking ledger settles against it."""

    session_id: str
    player_id: str
    buy_in_cents: int
    cashout_cents: int
    profit_cents: int
    elapsed_seconds: float
    ended_at: datetime
