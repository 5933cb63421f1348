"""Unit tests for SessionApplicationService with in-memory repositories."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.sl_common.enums import ChipUpdateKind, GameType, SessionStatus, StakeStatus
from src.sl_common.errors import (
    EventOutOfOrderError,
    InvalidTimestampError,
    InvalidTransitionError,
    MissingGameError,
    NotSessionOwnerError,
    SessionNotFoundError,
    UninitializedSessionError,
)
from src.sl_session.application.service import SessionApplicationService
from src.sl_staking.application.service import StakingApplicationService

T0 = datetime(2026, 3, 1, 20, 0, tzinfo=UTC)
PLAYER = "player-1"


def _at(seconds: float) -> datetime:
    return T0 + timedelta(seconds=seconds)


@pytest.fixture
def staking(stake_repo, session_repo, manual_repo, directory, locks):
    return StakingApplicationService(
        repo=stake_repo, session_repo=session_repo, manual_repo=manual_repo,
        directory=directory, locks=locks,
    )


@pytest.fixture
def svc(session_repo, staking, locks):
    return SessionApplicationService(repo=session_repo, staking=staking, locks=locks)


async def _started(svc, db, buy_in: int = 30000) -> str:
    created = await svc.create_session(
        db, PLAYER, game_name="Wynn", stakes_label="$2/$5", now=_at(0)
    )
    await svc.start(db, PLAYER, created.id, buy_in, now=_at(0))
    return created.id


class TestCreateAndStart:
    async def test_create_is_setup_with_no_figures(self, svc, session_repo, db) -> None:
        resp = await svc.create_session(db, PLAYER, game_type=GameType.TOURNAMENT, game_name="WSOP")
        assert resp.status == SessionStatus.SETUP
        assert resp.current_stack_cents is None
        assert resp.current_profit_cents is None
        assert resp.chip_history_cents == []
        assert resp.id in session_repo.sessions
        db.commit.assert_awaited()

    async def test_start(self, svc, db) -> None:
        session_id = await _started(svc, db, 30000)
        view = await svc.get_session(db, PLAYER, session_id, now=_at(60))
        assert view.status == SessionStatus.ACTIVE
        assert view.current_stack_cents == 30000
        assert view.current_profit_cents == 0
        assert view.elapsed_active_seconds == 60.0

    async def test_start_can_supply_game_name(self, svc, db) -> None:
        created = await svc.create_session(db, PLAYER)
        resp = await svc.start(db, PLAYER, created.id, 10000, game_name="Aria", now=_at(0))
        assert resp.game_name == "Aria"

    async def test_start_without_game_rolls_back(self, svc, session_repo, db) -> None:
        created = await svc.create_session(db, PLAYER)
        with pytest.raises(MissingGameError):
            await svc.start(db, PLAYER, created.id, 10000)
        assert session_repo.sessions[created.id].status == SessionStatus.SETUP
        db.rollback.assert_awaited()

    async def test_chip_update_before_start_is_uninitialized(self, svc, db) -> None:
        created = await svc.create_session(db, PLAYER, game_name="Wynn")
        with pytest.raises(UninitializedSessionError):
            await svc.append_chip_update(db, PLAYER, created.id, 5000)


class TestOwnership:
    async def test_unknown_session(self, svc, db) -> None:
        with pytest.raises(SessionNotFoundError):
            await svc.pause(db, PLAYER, "nope")

    async def test_unknown_ids_leave_no_lock_behind(self, svc, locks, db) -> None:
        for n in range(20):
            with pytest.raises(SessionNotFoundError):
                await svc.append_rebuy(db, PLAYER, f"nope-{n}", 100)
        assert len(locks) == 0

    async def test_other_player_cannot_mutate(self, svc, db) -> None:
        session_id = await _started(svc, db)
        with pytest.raises(NotSessionOwnerError):
            await svc.append_rebuy(db, "intruder", session_id, 10000)

    async def test_other_player_cannot_read(self, svc, db) -> None:
        session_id = await _started(svc, db)
        with pytest.raises(NotSessionOwnerError):
            await svc.get_session(db, "intruder", session_id)


class TestEventLogOperations:
    async def test_chip_updates_are_persisted(self, svc, session_repo, db) -> None:
        session_id = await _started(svc, db)
        await svc.append_chip_update(db, PLAYER, session_id, 25000, note="lost a flip", now=_at(10))
        resp = await svc.append_chip_update(db, PLAYER, session_id, 41000, now=_at(20))

        assert resp.current_stack_cents == 41000
        assert resp.current_profit_cents == 11000
        assert [u.amount_cents for u in session_repo.appended] == [25000, 41000]
        assert resp.chip_history_cents == [30000, 25000, 41000]

    async def test_out_of_order_update_rejected(self, svc, session_repo, db) -> None:
        session_id = await _started(svc, db)
        await svc.append_chip_update(db, PLAYER, session_id, 25000, now=_at(10))
        with pytest.raises(EventOutOfOrderError):
            await svc.append_chip_update(
                db, PLAYER, session_id, 26000, timestamp=_at(5), now=_at(11)
            )
        assert len(session_repo.sessions[session_id].chip_updates) == 1

    async def test_naive_timestamp_rolls_back(self, svc, session_repo, db) -> None:
        session_id = await _started(svc, db)
        await svc.append_chip_update(db, PLAYER, session_id, 25000, now=_at(10))
        with pytest.raises(InvalidTimestampError):
            await svc.append_chip_update(
                db, PLAYER, session_id, 26000, timestamp=datetime(2026, 3, 1, 21, 0), now=_at(3600)
            )
        db.rollback.assert_awaited()
        assert len(session_repo.sessions[session_id].chip_updates) == 1

    async def test_client_timestamp_is_kept(self, svc, session_repo, db) -> None:
        session_id = await _started(svc, db)
        await svc.append_chip_update(
            db, PLAYER, session_id, 25000, timestamp=_at(30), now=_at(600)
        )
        assert session_repo.sessions[session_id].chip_updates[-1].timestamp == _at(30)

    async def test_future_update_does_not_block_rebuy(self, svc, session_repo, db) -> None:
        session_id = await _started(svc, db)
        with pytest.raises(InvalidTimestampError):
            await svc.append_chip_update(
                db, PLAYER, session_id, 31000, timestamp=_at(86400), now=_at(10)
            )
        resp = await svc.append_rebuy(db, PLAYER, session_id, 10000, now=_at(20))
        assert resp.buy_in_cents == 40000
        assert resp.current_stack_cents == 40000

    async def test_adjust_stack(self, svc, db) -> None:
        session_id = await _started(svc, db)
        resp = await svc.adjust_stack(db, PLAYER, session_id, -5000, now=_at(10))
        assert resp.current_stack_cents == 25000

    async def test_rebuy_keeps_profit(self, svc, session_repo, db) -> None:
        session_id = await _started(svc, db)
        await svc.append_chip_update(db, PLAYER, session_id, 5000, now=_at(10))
        resp = await svc.append_rebuy(db, PLAYER, session_id, 10000, now=_at(20))

        assert resp.buy_in_cents == 40000
        assert resp.current_stack_cents == 15000
        assert resp.current_profit_cents == -25000
        assert resp.rebuy_count == 1
        stored = session_repo.sessions[session_id]
        assert stored.buy_in_cents == 40000
        assert stored.chip_updates[-1].kind == ChipUpdateKind.REBUY


class TestClock:
    async def test_pause_resume_clock(self, svc, db) -> None:
        session_id = await _started(svc, db)
        await svc.pause(db, PLAYER, session_id, now=_at(100))
        await svc.resume(db, PLAYER, session_id, now=_at(600))
        view = await svc.get_session(db, PLAYER, session_id, now=_at(650))
        assert view.elapsed_active_seconds == 150.0

    async def test_end_then_finalize(self, svc, db) -> None:
        session_id = await _started(svc, db)
        await svc.begin_ending(db, PLAYER, session_id, now=_at(300))
        resp = await svc.finalize(db, PLAYER, session_id, 45000, now=_at(400))
        assert resp.status == SessionStatus.COMPLETED
        assert resp.cashout_cents == 45000
        assert resp.current_profit_cents == 15000
        assert resp.elapsed_active_seconds == 300.0

    async def test_finalize_logs_completion(self, svc, db, caplog) -> None:
        session_id = await _started(svc, db)
        with caplog.at_level("INFO", logger="src.sl_session.application.service"):
            await svc.finalize(db, PLAYER, session_id, 45000, now=_at(400))
        assert f"Session {session_id} completed" in caplog.text


class TestEdits:
    async def test_edit_cashout_requires_completed(self, svc, db) -> None:
        session_id = await _started(svc, db)
        with pytest.raises(InvalidTransitionError):
            await svc.edit_cashout(db, PLAYER, session_id, 1000)

    async def test_edit_buy_in_after_completion(self, svc, db) -> None:
        session_id = await _started(svc, db)
        await svc.finalize(db, PLAYER, session_id, 45000, now=_at(10))
        resp = await svc.edit_buy_in(db, PLAYER, session_id, 20000, now=_at(20))
        assert resp.current_profit_cents == 25000


class TestStakeRecomputation:
    async def test_live_stake_follows_the_stack(self, svc, staking, stake_repo, db) -> None:
        session_id = await _started(svc, db, 10000)
        stake = await staking.add_stake(db, PLAYER, session_id, 5000, 10000, staker_user_id="s-1")
        assert stake.settlement_amount_cents == 0

        await svc.append_chip_update(db, PLAYER, session_id, 15000, now=_at(10))
        assert stake_repo.stakes[stake.id].settlement_amount_cents == -2500

        await svc.append_chip_update(db, PLAYER, session_id, 5000, now=_at(20))
        assert stake_repo.stakes[stake.id].settlement_amount_cents == 2500

    async def test_failed_recompute_rolls_back_session_change(self, session_repo, locks, db) -> None:
        staking = MagicMock()
        staking.recompute_for_session = AsyncMock(side_effect=RuntimeError("db gone"))
        svc = SessionApplicationService(repo=session_repo, staking=staking, locks=locks)
        created = await svc.create_session(db, PLAYER, game_name="Wynn")

        with pytest.raises(RuntimeError):
            await svc.start(db, PLAYER, created.id, 30000)
        db.rollback.assert_awaited()
        assert db.commit.await_count == 1  # only create_session committed

    async def test_start_recomputes_stakes_once(self, session_repo, locks, db) -> None:
        staking = MagicMock()
        staking.recompute_for_session = AsyncMock(return_value=[])
        svc = SessionApplicationService(repo=session_repo, staking=staking, locks=locks)
        created = await svc.create_session(db, PLAYER, game_name="Wynn")
        await svc.start(db, PLAYER, created.id, 30000)
        staking.recompute_for_session.assert_awaited_once()


class TestDeleteAndList:
    async def test_delete_cancels_open_stakes(
        self, svc, staking, session_repo, stake_repo, locks, db
    ) -> None:
        session_id = await _started(svc, db)
        stake = await staking.add_stake(db, PLAYER, session_id, 5000, 10000, staker_user_id="s-1")

        await svc.delete_session(db, PLAYER, session_id)

        assert session_id not in session_repo.sessions
        assert stake_repo.stakes[stake.id].status == StakeStatus.CANCELLED
        assert len(locks) == 0

    async def test_only_owner_deletes(self, svc, session_repo, db) -> None:
        session_id = await _started(svc, db)
        with pytest.raises(NotSessionOwnerError):
            await svc.delete_session(db, "intruder", session_id)
        assert session_id in session_repo.sessions

    async def test_list_sessions(self, svc, db) -> None:
        await _started(svc, db)
        await svc.create_session(db, PLAYER, game_name="Aria")
        await svc.create_session(db, "someone-else", game_name="Aria")
        listed = await svc.list_sessions(db, PLAYER)
        assert len(listed.items) == 2
