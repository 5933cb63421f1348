"""Pydantic schemas for sl_staking API."""

from pydantic import BaseModel, Field

from src.sl_common.cents import (
    bps_to_percent_display,
    cents_to_display,
    exact_cents_to_str,
    markup_to_display,
)
from src.sl_common.enums import StakeStatus
from src.sl_staking.domain.models import ManualStakerProfile, StakeContract
from src.sl_staking.domain.settlement import staker_cost_cents, staker_share_of_cashout_cents

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class AddStakeRequest(BaseModel):
    # Exactly one of staker_user_id / manual_staker_id; checked by the service
    staker_user_id: str | None = None
    manual_staker_id: str | None = None
    stake_percentage_bps: int = Field(..., description="10000 = 100% of the action")
    markup_bps: int = Field(10_000, description="10000 = 1.00x (no markup)")


class UpdateStakeRequest(BaseModel):
    stake_percentage_bps: int
    markup_bps: int


class CreateManualStakerRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    contact_info: str | None = Field(None, max_length=200)
    notes: str | None = Field(None, max_length=1000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class StakeResponse(BaseModel):
    id: str
    session_id: str
    staker_id: str
    staker_display_name: str
    is_off_app_stake: bool
    staked_player_id: str
    stake_percentage_bps: int
    stake_percentage_display: str
    markup_bps: int
    markup_display: str
    session_buy_in_cents: int
    session_cashout_cents: int
    session_profit_cents: int
    staker_cost_cents: int
    staker_share_of_cashout_cents: int
    settlement_amount_cents: int
    settlement_amount_exact_cents: str
    settlement_amount_display: str
    status: StakeStatus
    is_tournament_session: bool
    session_game_name: str
    session_stakes_label: str
    session_date: str | None
    proposed_at: str
    accepted_at: str | None
    declined_at: str | None
    settled_at: str | None
    settlement_initiator_id: str | None
    settlement_confirmer_id: str | None
    last_updated_at: str

    @classmethod
    def from_domain(cls, stake: StakeContract, display_name: str) -> "StakeResponse":
        return cls(
            id=stake.id,
            session_id=stake.session_id,
            staker_id=stake.staker.staker_id,
            staker_display_name=display_name,
            is_off_app_stake=stake.is_off_app,
            staked_player_id=stake.staked_player_id,
            stake_percentage_bps=stake.stake_percentage_bps,
            stake_percentage_display=bps_to_percent_display(stake.stake_percentage_bps),
            markup_bps=stake.markup_bps,
            markup_display=markup_to_display(stake.markup_bps),
            session_buy_in_cents=stake.session_buy_in_cents,
            session_cashout_cents=stake.session_cashout_cents,
            session_profit_cents=stake.session_cashout_cents - stake.session_buy_in_cents,
            staker_cost_cents=staker_cost_cents(
                stake.session_buy_in_cents, stake.stake_percentage_bps, stake.markup_bps
            ),
            staker_share_of_cashout_cents=staker_share_of_cashout_cents(
                stake.session_cashout_cents, stake.stake_percentage_bps
            ),
            settlement_amount_cents=stake.settlement_amount_cents,
            settlement_amount_exact_cents=exact_cents_to_str(stake.settlement_amount_scaled),
            settlement_amount_display=cents_to_display(stake.settlement_amount_cents),
            status=stake.status,
            is_tournament_session=stake.is_tournament_session,
            session_game_name=stake.session_game_name,
            session_stakes_label=stake.session_stakes_label,
            session_date=stake.session_date.isoformat() if stake.session_date else None,
            proposed_at=stake.proposed_at.isoformat(),
            accepted_at=stake.accepted_at.isoformat() if stake.accepted_at else None,
            declined_at=stake.declined_at.isoformat() if stake.declined_at else None,
            settled_at=stake.settled_at.isoformat() if stake.settled_at else None,
            settlement_initiator_id=stake.settlement_initiator_id,
            settlement_confirmer_id=stake.settlement_confirmer_id,
            last_updated_at=stake.last_updated_at.isoformat(),
        )


class StakeListResponse(BaseModel):
    items: list[StakeResponse]


class ManualStakerResponse(BaseModel):
    id: str
    name: str
    contact_info: str | None
    notes: str | None
    created_at: str | None

    @classmethod
    def from_domain(cls, profile: ManualStakerProfile) -> "ManualStakerResponse":
        return cls(
            id=profile.id,
            name=profile.name,
            contact_info=profile.contact_info,
            notes=profile.notes,
            created_at=profile.created_at.isoformat() if profile.created_at else None,
        )


class ManualStakerListResponse(BaseModel):
    items: list[ManualStakerResponse]
