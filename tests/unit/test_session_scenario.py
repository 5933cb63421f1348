"""End-to-end staking scenario through both application services.

    Player buys in $300, rebuys $100, cashes out $600 (profit $200).
    Staker A: 50% at 1.0x  -> owed $100
    Staker B: 20% at 1.2x  -> owed $48
    A is settled. Cashout is then corrected to $500:
        A stays at -$100 (settled, frozen)
        B becomes -$24
    Reopening A brings it in line (-$50).
"""

from datetime import UTC, datetime, timedelta

import pytest

from src.sl_common.enums import SessionStatus, StakeStatus
from src.sl_session.application.service import SessionApplicationService
from src.sl_staking.application.service import StakingApplicationService

T0 = datetime(2026, 3, 1, 20, 0, tzinfo=UTC)
PLAYER = "player-1"
STAKER_A = "staker-a"
STAKER_B = "staker-b"


def _at(seconds: float) -> datetime:
    return T0 + timedelta(seconds=seconds)


@pytest.fixture
def services(stake_repo, session_repo, manual_repo, directory, locks):
    staking = StakingApplicationService(
        repo=stake_repo, session_repo=session_repo, manual_repo=manual_repo,
        directory=directory, locks=locks,
    )
    sessions = SessionApplicationService(repo=session_repo, staking=staking, locks=locks)
    return sessions, staking


class TestStakingScenario:
    async def test_full_session_with_two_stakers(self, services, stake_repo, db) -> None:
        sessions, staking = services

        created = await sessions.create_session(
            db, PLAYER, game_name="Wynn", stakes_label="$2/$5", now=_at(0)
        )
        sid = created.id
        await sessions.start(db, PLAYER, sid, 30000, now=_at(0))

        a = await staking.add_stake(db, PLAYER, sid, 5000, 10000, staker_user_id=STAKER_A, now=_at(1))
        b = await staking.add_stake(db, PLAYER, sid, 2000, 12000, staker_user_id=STAKER_B, now=_at(2))
        await staking.accept_stake(db, STAKER_A, a.id, now=_at(3))
        await staking.accept_stake(db, STAKER_B, b.id, now=_at(4))

        await sessions.append_chip_update(db, PLAYER, sid, 2000, now=_at(1800))
        await sessions.append_rebuy(db, PLAYER, sid, 10000, now=_at(1900))
        await sessions.begin_ending(db, PLAYER, sid, now=_at(7200))
        done = await sessions.finalize(db, PLAYER, sid, 60000, now=_at(7260))

        assert done.status == SessionStatus.COMPLETED
        assert done.buy_in_cents == 40000
        assert done.current_profit_cents == 20000
        assert stake_repo.stakes[a.id].settlement_amount_cents == -10000
        assert stake_repo.stakes[b.id].settlement_amount_cents == -4800

        settled = await staking.mark_settled(db, STAKER_A, a.id, now=_at(8000))
        assert settled.status == StakeStatus.SETTLED

        edited = await sessions.edit_cashout(db, PLAYER, sid, 50000, now=_at(9000))
        assert edited.current_profit_cents == 10000
        assert stake_repo.stakes[a.id].settlement_amount_cents == -10000
        assert stake_repo.stakes[a.id].status == StakeStatus.SETTLED
        assert stake_repo.stakes[b.id].settlement_amount_cents == -2400

        reopened = await staking.reopen_stake(db, PLAYER, a.id, now=_at(9100))
        assert reopened.status == StakeStatus.AWAITING_SETTLEMENT
        assert reopened.settlement_amount_cents == -5000

    async def test_revert_edit_restores_open_amounts(self, services, stake_repo, db) -> None:
        sessions, staking = services
        created = await sessions.create_session(db, PLAYER, game_name="Wynn", now=_at(0))
        sid = created.id
        await sessions.start(db, PLAYER, sid, 40000, now=_at(0))
        b = await staking.add_stake(db, PLAYER, sid, 2000, 12000, staker_user_id=STAKER_B, now=_at(1))
        await sessions.finalize(db, PLAYER, sid, 60000, now=_at(100))
        original = stake_repo.stakes[b.id].settlement_amount_cents

        await sessions.edit_cashout(db, PLAYER, sid, 50000, now=_at(200))
        await sessions.edit_cashout(db, PLAYER, sid, 60000, now=_at(300))

        assert stake_repo.stakes[b.id].settlement_amount_cents == original == -4800
