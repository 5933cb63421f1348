# tests/unit/test_stake_persistence.py
"""Unit tests for StakeRepository and ManualStakerRepository using MagicMock AsyncSession."""
from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.sl_common.cents import SETTLEMENT_SCALE
from src.sl_common.enums import StakeStatus
from src.sl_staking.domain.models import AppUserStaker, ManualStaker, StakeContract
from src.sl_staking.infrastructure.persistence import ManualStakerRepository, StakeRepository

NOW = datetime(2026, 3, 1, 20, 0, tzinfo=UTC)


def _make_stake_row(**kwargs):
    row = MagicMock()
    row.id = kwargs.get("id", "K-1")
    row.session_id = "S-1"
    row.staker_user_id = kwargs.get("staker_user_id", "staker-1")
    row.manual_staker_id = kwargs.get("manual_staker_id")
    row.staker_display_name = kwargs.get("staker_display_name")
    row.staked_player_id = "player-1"
    row.stake_percentage_bps = 5000
    row.markup_bps = 12000
    row.session_buy_in_cents = 40000
    row.session_cashout_cents = 60000
    row.settlement_amount_scaled = kwargs.get(
        "settlement_amount_scaled", Decimal(-12000 * SETTLEMENT_SCALE)
    )
    row.status = kwargs.get("status", "AWAITING_SETTLEMENT")
    row.is_tournament_session = False
    row.session_game_name = "Wynn"
    row.session_stakes_label = "$2/$5"
    row.session_date = NOW
    row.settlement_initiator_id = None
    row.settlement_confirmer_id = None
    row.proposed_at = NOW
    row.accepted_at = NOW
    row.declined_at = None
    row.settled_at = None
    row.last_updated_at = NOW
    return row


def _result(one=None, many=None):
    result = MagicMock()
    result.fetchone.return_value = one
    result.fetchall.return_value = many or []
    return result


def _stake(staker) -> StakeContract:
    return StakeContract(
        id="K-1", session_id="S-1", staker=staker, staked_player_id="player-1",
        stake_percentage_bps=5000, markup_bps=10000, session_buy_in_cents=100,
        session_cashout_cents=200, settlement_amount_scaled=-50 * SETTLEMENT_SCALE,
        status=StakeStatus.PROPOSED, proposed_at=NOW, last_updated_at=NOW,
    )


@pytest.fixture
def db():
    return MagicMock()


class TestStakeRowMapping:
    async def test_app_user_row(self, db):
        db.execute = AsyncMock(return_value=_result(one=_make_stake_row()))
        stake = await StakeRepository().get_stake(db, "K-1")

        assert stake is not None
        assert stake.staker == AppUserStaker("staker-1")
        assert stake.status == StakeStatus.AWAITING_SETTLEMENT
        assert stake.is_off_app is False

    async def test_exact_amount_comes_back_as_int(self, db):
        # half a cent: what NUMERIC hands back through asyncpg
        row = _make_stake_row(settlement_amount_scaled=Decimal(-SETTLEMENT_SCALE // 2))
        db.execute = AsyncMock(return_value=_result(one=row))
        stake = await StakeRepository().get_stake(db, "K-1")

        assert type(stake.settlement_amount_scaled) is int
        assert stake.settlement_amount_scaled == -50_000_000
        assert stake.settlement_amount_cents == -1
        assert stake.session_date == NOW

    async def test_manual_staker_row(self, db):
        row = _make_stake_row(
            staker_user_id=None, manual_staker_id="M-1", staker_display_name="Uncle Bob"
        )
        db.execute = AsyncMock(return_value=_result(one=row))
        stake = await StakeRepository().get_stake(db, "K-1")

        assert stake.staker == ManualStaker("M-1", "Uncle Bob")
        assert stake.is_off_app is True

    async def test_missing_returns_none(self, db):
        db.execute = AsyncMock(return_value=_result(one=None))
        assert await StakeRepository().get_stake(db, "nope") is None

    async def test_list_for_session_for_update(self, db):
        db.execute = AsyncMock(return_value=_result(many=[_make_stake_row(), _make_stake_row(id="K-2")]))
        stakes = await StakeRepository().list_stakes_for_session(db, "S-1", for_update=True)
        assert [s.id for s in stakes] == ["K-1", "K-2"]
        assert "FOR UPDATE" in str(db.execute.call_args.args[0])


class TestStakeParams:
    async def test_app_user_columns(self, db):
        db.execute = AsyncMock()
        await StakeRepository().create_stake(db, _stake(AppUserStaker("staker-1")))
        params = db.execute.call_args.args[1]
        assert params["staker_user_id"] == "staker-1"
        assert params["manual_staker_id"] is None
        assert params["status"] == "PROPOSED"

    async def test_manual_staker_columns(self, db):
        db.execute = AsyncMock()
        await StakeRepository().save_stake(db, _stake(ManualStaker("M-1", "Uncle Bob")))
        params = db.execute.call_args.args[1]
        assert params["staker_user_id"] is None
        assert params["manual_staker_id"] == "M-1"
        assert params["staker_display_name"] == "Uncle Bob"

    async def test_exact_amount_and_audit_columns(self, db):
        db.execute = AsyncMock()
        stake = _stake(AppUserStaker("staker-1"))
        stake.declined_at = NOW
        stake.settlement_confirmer_id = "staker-1"
        await StakeRepository().save_stake(db, stake)
        sql = str(db.execute.call_args.args[0])
        params = db.execute.call_args.args[1]
        assert params["settlement_amount_scaled"] == Decimal(-50 * SETTLEMENT_SCALE)
        assert params["declined_at"] == NOW
        assert params["settlement_confirmer_id"] == "staker-1"
        assert "declined_at = :declined_at" in sql
        assert "settlement_confirmer_id = :settlement_confirmer_id" in sql


class TestManualStakerRepository:
    async def test_get_maps_row(self, db):
        row = MagicMock()
        row.id = "M-1"
        row.name = "Uncle Bob"
        row.created_by_user_id = "player-1"
        row.contact_info = None
        row.notes = "pays in cash"
        row.created_at = NOW
        db.execute = AsyncMock(return_value=_result(one=row))

        profile = await ManualStakerRepository().get(db, "M-1")
        assert profile.name == "Uncle Bob"
        assert profile.notes == "pays in cash"

    async def test_list_for_user_empty(self, db):
        db.execute = AsyncMock(return_value=_result(many=[]))
        assert await ManualStakerRepository().list_for_user(db, "player-1") == []
