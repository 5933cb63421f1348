"""Pydantic schemas for sl_session API.

Amount fields are plain ints on purpose: range checks live in the domain so
every rejection carries its AppError code.
"""

from datetime import datetime

from pydantic import AwareDatetime, BaseModel, Field

from src.sl_common.cents import cents_to_display
from src.sl_common.enums import GameType, SessionStatus
from src.sl_session.domain.accumulator import LiveSessionAccumulator
from src.sl_session.domain.models import ChipStackUpdate

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CreateSessionRequest(BaseModel):
    game_type: GameType = GameType.CASH
    game_name: str = Field("", max_length=200, description="Venue or game, e.g. 'Wynn'")
    stakes_label: str = Field("", max_length=50, description="e.g. '$2/$5'")
    location: str | None = Field(None, max_length=200)
    tournament_base_buy_in_cents: int | None = None


class StartSessionRequest(BaseModel):
    buy_in_cents: int
    game_name: str | None = Field(None, max_length=200, description="Overrides the name given at creation")


class ChipUpdateRequest(BaseModel):
    amount_cents: int = Field(..., description="Absolute stack, not a delta")
    note: str | None = Field(None, max_length=500)
    timestamp: AwareDatetime | None = Field(
        None, description="When the stack was counted; must include a UTC offset"
    )


class AdjustStackRequest(BaseModel):
    delta_cents: int
    note: str | None = Field(None, max_length=500)


class RebuyRequest(BaseModel):
    amount_cents: int


class FinalizeRequest(BaseModel):
    cashout_cents: int


class EditBuyInRequest(BaseModel):
    buy_in_cents: int


class EditCashoutRequest(BaseModel):
    cashout_cents: int


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ChipUpdateItem(BaseModel):
    id: str
    amount_cents: int
    amount_display: str
    kind: str
    rebuy_amount_cents: int
    note: str | None
    timestamp: str  # ISO8601 string

    @classmethod
    def from_domain(cls, update: ChipStackUpdate) -> "ChipUpdateItem":
        return cls(
            id=update.id,
            amount_cents=update.amount_cents,
            amount_display=cents_to_display(update.amount_cents),
            kind=update.kind.value,
            rebuy_amount_cents=update.rebuy_amount_cents,
            note=update.note,
            timestamp=update.timestamp.isoformat(),
        )


class SessionResponse(BaseModel):
    id: str
    player_id: str
    game_type: GameType
    game_name: str
    stakes_label: str
    location: str | None
    status: SessionStatus
    buy_in_cents: int
    buy_in_display: str
    cashout_cents: int | None
    current_stack_cents: int | None
    current_profit_cents: int | None
    current_profit_display: str | None
    elapsed_active_seconds: float
    rebuy_count: int
    chip_history_cents: list[int]
    chip_updates: list[ChipUpdateItem]
    started_at: str | None
    ended_at: str | None

    @classmethod
    def from_accumulator(cls, acc: LiveSessionAccumulator, now: datetime) -> "SessionResponse":
        s = acc.session
        initialized = s.status != SessionStatus.SETUP
        profit = acc.current_profit() if initialized else None
        return cls(
            id=s.id,
            player_id=s.player_id,
            game_type=s.game_type,
            game_name=s.game_name,
            stakes_label=s.stakes_label,
            location=s.location,
            status=s.status,
            buy_in_cents=s.buy_in_cents,
            buy_in_display=cents_to_display(s.buy_in_cents),
            cashout_cents=s.cashout_cents,
            current_stack_cents=acc.current_stack() if initialized else None,
            current_profit_cents=profit,
            current_profit_display=cents_to_display(profit) if profit is not None else None,
            elapsed_active_seconds=acc.elapsed_active_seconds(now),
            rebuy_count=acc.event_log.rebuy_count,
            chip_history_cents=acc.event_log.chip_history() if initialized else [],
            chip_updates=[ChipUpdateItem.from_domain(u) for u in s.chip_updates],
            started_at=s.started_at.isoformat() if s.started_at else None,
            ended_at=s.ended_at.isoformat() if s.ended_at else None,
        )


class SessionListResponse(BaseModel):
    items: list[SessionResponse]
