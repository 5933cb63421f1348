"""Unit tests for LiveSessionAccumulator — derived values and the mode state machine."""

from datetime import UTC, datetime, timedelta

import pytest

from src.sl_common.enums import GameType, SessionStatus
from src.sl_common.errors import (
    InvalidAmountError,
    InvalidTransitionError,
    MissingGameError,
    UninitializedSessionError,
)
from src.sl_session.domain.accumulator import LiveSessionAccumulator
from src.sl_session.domain.models import Session

T0 = datetime(2026, 3, 1, 20, 0, tzinfo=UTC)


def _at(seconds: float) -> datetime:
    return T0 + timedelta(seconds=seconds)


def _new_session(**kwargs) -> Session:
    defaults = dict(
        id="S-1", player_id="player-1", game_type=GameType.CASH,
        game_name="Bellagio", stakes_label="$5/$10",
    )
    defaults.update(kwargs)
    return Session(**defaults)


def _started(buy_in: int = 30000) -> LiveSessionAccumulator:
    acc = LiveSessionAccumulator(_new_session())
    acc.start(buy_in, _at(0))
    return acc


class TestStart:
    def test_start_sets_buy_in_and_clock(self) -> None:
        acc = _started(30000)
        assert acc.session.status == SessionStatus.ACTIVE
        assert acc.total_buy_in() == 30000
        assert acc.current_stack() == 30000
        assert acc.current_profit() == 0
        assert acc.session.started_at == _at(0)

    def test_missing_game_rejected(self) -> None:
        acc = LiveSessionAccumulator(_new_session(game_name="  "))
        with pytest.raises(MissingGameError):
            acc.start(30000, _at(0))
        assert acc.session.status == SessionStatus.SETUP

    @pytest.mark.parametrize("buy_in", [0, -100])
    def test_non_positive_buy_in_rejected(self, buy_in: int) -> None:
        acc = LiveSessionAccumulator(_new_session())
        with pytest.raises(InvalidAmountError):
            acc.start(buy_in, _at(0))
        assert acc.session.status == SessionStatus.SETUP

    def test_cannot_start_twice(self) -> None:
        acc = _started()
        with pytest.raises(InvalidTransitionError):
            acc.start(10000, _at(1))


class TestUninitialized:
    def test_queries_fail_before_start(self) -> None:
        acc = LiveSessionAccumulator(_new_session())
        for query in (acc.total_buy_in, acc.current_stack, acc.current_profit, acc.settlement_basis):
            with pytest.raises(UninitializedSessionError):
                query()

    def test_elapsed_is_zero_before_start(self) -> None:
        assert LiveSessionAccumulator(_new_session()).elapsed_active_seconds(_at(100)) == 0.0


class TestElapsedActiveTime:
    def test_paused_time_does_not_count(self) -> None:
        acc = _started()
        acc.pause(_at(100))
        acc.resume(_at(600))
        assert acc.elapsed_active_seconds(_at(650)) == 150.0

    def test_paused_session_reads_frozen_value(self) -> None:
        acc = _started()
        acc.pause(_at(100))
        assert acc.elapsed_active_seconds(_at(5000)) == 100.0

    def test_ending_stops_the_clock(self) -> None:
        acc = _started()
        acc.begin_ending(_at(300))
        assert acc.elapsed_active_seconds(_at(900)) == 300.0

    def test_resume_from_ending_restarts_the_clock(self) -> None:
        acc = _started()
        acc.begin_ending(_at(300))
        acc.resume(_at(400))
        assert acc.session.status == SessionStatus.ACTIVE
        assert acc.elapsed_active_seconds(_at(450)) == 350.0

    def test_finalize_folds_running_interval(self) -> None:
        acc = _started()
        acc.finalize(35000, _at(1200))
        assert acc.session.elapsed_seconds == 1200.0
        assert acc.elapsed_active_seconds(_at(9999)) == 1200.0


class TestTransitions:
    def test_pause_requires_active(self) -> None:
        acc = _started()
        acc.pause(_at(1))
        with pytest.raises(InvalidTransitionError):
            acc.pause(_at(2))

    def test_resume_requires_paused_or_ending(self) -> None:
        with pytest.raises(InvalidTransitionError):
            _started().resume(_at(1))

    def test_end_from_paused(self) -> None:
        acc = _started()
        acc.pause(_at(10))
        acc.begin_ending(_at(20))
        assert acc.session.status == SessionStatus.ENDING
        assert acc.session.elapsed_seconds == 10.0

    def test_nothing_after_completed(self) -> None:
        acc = _started()
        acc.finalize(0, _at(10))
        for action in (acc.pause, acc.resume, acc.begin_ending):
            with pytest.raises(InvalidTransitionError):
                action(_at(20))
        with pytest.raises(InvalidTransitionError):
            acc.finalize(100, _at(20))


class TestFinalize:
    def test_finalize_emits_completed_fact(self) -> None:
        acc = _started(30000)
        acc.event_log.append_rebuy(10000, _at(5))
        fact = acc.finalize(60000, _at(100))
        assert fact.buy_in_cents == 40000
        assert fact.cashout_cents == 60000
        assert fact.profit_cents == 20000
        assert acc.session.status == SessionStatus.COMPLETED
        assert acc.session.profit_cents == 20000
        assert acc.session.ended_at == _at(100)

    def test_zero_cashout_allowed(self) -> None:
        acc = _started(30000)
        acc.finalize(0, _at(1))
        assert acc.current_profit() == -30000

    def test_negative_cashout_rejected(self) -> None:
        acc = _started()
        with pytest.raises(InvalidAmountError):
            acc.finalize(-1, _at(1))
        assert acc.session.status == SessionStatus.ACTIVE


class TestSettlementBasis:
    def test_live_session_uses_current_stack(self) -> None:
        acc = _started(30000)
        acc.event_log.append_chip_update(45000, timestamp=_at(10))
        assert acc.settlement_basis() == (30000, 45000)

    def test_completed_session_uses_cashout(self) -> None:
        acc = _started(30000)
        acc.event_log.append_chip_update(45000, timestamp=_at(10))
        acc.finalize(50000, _at(20))
        assert acc.settlement_basis() == (30000, 50000)
        assert acc.current_profit() == 20000


class TestEdits:
    def test_edit_buy_in_on_completed_session(self) -> None:
        acc = _started(30000)
        acc.finalize(50000, _at(10))
        acc.edit_buy_in(25000)
        assert acc.current_profit() == 25000

    def test_edit_buy_in_rejects_negative(self) -> None:
        acc = _started()
        with pytest.raises(InvalidAmountError):
            acc.edit_buy_in(-1)

    def test_edit_buy_in_rejected_during_setup(self) -> None:
        acc = LiveSessionAccumulator(_new_session())
        with pytest.raises(InvalidTransitionError):
            acc.edit_buy_in(100)

    def test_edit_cashout_only_when_completed(self) -> None:
        acc = _started()
        with pytest.raises(InvalidTransitionError):
            acc.edit_cashout(100)
        acc.finalize(60000, _at(10))
        acc.edit_cashout(50000)
        assert acc.session.cashout_cents == 50000
        assert acc.session.profit_cents == 20000
