"""Domain models for sl_staking — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.sl_common.cents import SETTLEMENT_SCALE, div_round_half_away
from src.sl_common.enums import OPEN_STAKE_STATUSES, StakeStatus


@dataclass(frozen=True)
class AppUserStaker:
    """Staker with an account in the app; can accept/decline and confirm settlement."""

    user_id: str

    @property
    def staker_id(self) -> str:
        return self.user_id

    @property
    def is_off_app(self) -> bool:
        return False


@dataclass(frozen=True)
class ManualStaker:
    """Off-app staker tracked by the player. display_name is denormalized from the profile."""

    profile_id: str
    display_name: str | None = None

    @property
    def staker_id(self) -> str:
        return self.profile_id

    @property
    def is_off_app(self) -> bool:
        return True


StakerRef = AppUserStaker | ManualStaker


@dataclass
class StakeContract:
    id: str
    session_id: str
    staker: StakerRef
    staked_player_id: str
    stake_percentage_bps: int       # (0, 10000]
    markup_bps: int                 # >= 10000
    session_buy_in_cents: int       # financial facts the amount was computed from
    session_cashout_cents: int
    settlement_amount_scaled: int   # exact, cents × SETTLEMENT_SCALE; negative: player pays staker
    status: StakeStatus
    proposed_at: datetime
    last_updated_at: datetime
    is_tournament_session: bool = False
    session_game_name: str = ""
    session_stakes_label: str = ""
    accepted_at: datetime | None = None
    declined_at: datetime | None = None
    settled_at: datetime | None = None
    settlement_initiator_id: str | None = None
    settlement_confirmer_id: str | None = None   # user who marked or confirmed it settled
    session_date: datetime | None = None         # session start, captured at contract time

    @property
    def settlement_amount_cents(self) -> int:
        """Whole cents, rounded half away from zero."""
        return div_round_half_away(self.settlement_amount_scaled, SETTLEMENT_SCALE)

    @property
    def is_off_app(self) -> bool:
        return self.staker.is_off_app

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STAKE_STATUSES

    def is_party(self, user_id: str) -> bool:
        if user_id == self.staked_player_id:
            return True
        return isinstance(self.staker, AppUserStaker) and self.staker.user_id == user_id


@dataclass
class ManualStakerProfile:
    id: str
    name: str
    created_by_user_id: str
    contact_info: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
