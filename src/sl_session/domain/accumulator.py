"""LiveSessionAccumulator — derived values and the session mode state machine.

    SETUP → ACTIVE ⇄ PAUSED → ENDING → COMPLETED
                 ↖_________________/   (resume from ENDING backs out of the cash-out form)

There is no ticking timer. Active time is folded into `elapsed_seconds` each
time the clock stops (pause / begin_ending / finalize), and the running
interval is added on read while ACTIVE:

    elapsed = elapsed_seconds + (now - last_active_at)   # only while ACTIVE

Because last_active_at is persisted, a process restart or an app suspension
loses no time and counts no time twice.
"""

from datetime import datetime

from src.sl_common.datetime_utils import seconds_between, utc_now
from src.sl_common.enums import LIVE_SESSION_STATUSES, SessionStatus
from src.sl_common.errors import (
    InvalidAmountError,
    InvalidTransitionError,
    MissingGameError,
    UninitializedSessionError,
)
from src.sl_session.domain.event_log import SessionEventLog
from src.sl_session.domain.models import Session, SessionCompleted

# action -> statuses it may start from
_ALLOWED_FROM: dict[str, frozenset[SessionStatus]] = {
    "start": frozenset({SessionStatus.SETUP}),
    "pause": frozenset({SessionStatus.ACTIVE}),
    "resume": frozenset({SessionStatus.PAUSED, SessionStatus.ENDING}),
    "end": frozenset({SessionStatus.ACTIVE, SessionStatus.PAUSED}),
    "finalize": LIVE_SESSION_STATUSES,
    "edit buy-in of": LIVE_SESSION_STATUSES | {SessionStatus.COMPLETED},
    "edit cashout of": frozenset({SessionStatus.COMPLETED}),
}


class LiveSessionAccumulator:
    def __init__(self, session: Session, event_log: SessionEventLog | None = None) -> None:
        self.session = session
        self.event_log = event_log or SessionEventLog(session)

    # ------------------------------------------------------------------
    # Derived queries
    # ------------------------------------------------------------------

    def total_buy_in(self) -> int:
        self._require_initialized()
        return self.session.buy_in_cents

    def current_stack(self) -> int:
        self._require_initialized()
        return self.event_log.latest_amount()

    def current_profit(self) -> int:
        self._require_initialized()
        if self.session.status == SessionStatus.COMPLETED:
            return self.session.cashout_cents - self.session.buy_in_cents  # type: ignore[operator]
        return self.current_stack() - self.total_buy_in()

    def elapsed_active_seconds(self, now: datetime | None = None) -> float:
        s = self.session
        if s.status == SessionStatus.ACTIVE and s.last_active_at is not None:
            return s.elapsed_seconds + seconds_between(s.last_active_at, now or utc_now())
        return s.elapsed_seconds

    def settlement_basis(self) -> tuple[int, int]:
        """(buy_in, cashout) pair stakes settle against.

        Completed sessions use the recorded cashout; live sessions use the
        current stack as a provisional cashout.
        """
        self._require_initialized()
        if self.session.status == SessionStatus.COMPLETED:
            return self.session.buy_in_cents, self.session.cashout_cents  # type: ignore[return-value]
        return self.session.buy_in_cents, self.current_stack()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(self, buy_in_cents: int, now: datetime | None = None) -> None:
        self._check("start")
        if not self.session.game_name.strip():
            raise MissingGameError()
        if buy_in_cents <= 0:
            raise InvalidAmountError(f"buy-in must be > 0, got {buy_in_cents}")
        ts = now or utc_now()
        self.session.buy_in_cents = buy_in_cents
        self.session.status = SessionStatus.ACTIVE
        self.session.started_at = ts
        self.session.last_active_at = ts

    def pause(self, now: datetime | None = None) -> None:
        self._check("pause")
        ts = now or utc_now()
        self._stop_clock(ts)
        self.session.last_paused_at = ts
        self.session.status = SessionStatus.PAUSED

    def resume(self, now: datetime | None = None) -> None:
        self._check("resume")
        self.session.last_active_at = now or utc_now()
        self.session.status = SessionStatus.ACTIVE

    def begin_ending(self, now: datetime | None = None) -> None:
        self._check("end")
        self._stop_clock(now or utc_now())
        self.session.status = SessionStatus.ENDING

    def finalize(self, cashout_cents: int, now: datetime | None = None) -> SessionCompleted:
        self._check("finalize")
        if cashout_cents < 0:
            raise InvalidAmountError(f"cashout must be >= 0, got {cashout_cents}")
        ts = now or utc_now()
        self._stop_clock(ts)
        s = self.session
        s.cashout_cents = cashout_cents
        s.ended_at = ts
        s.status = SessionStatus.COMPLETED
        return SessionCompleted(
            session_id=s.id,
            player_id=s.player_id,
            buy_in_cents=s.buy_in_cents,
            cashout_cents=cashout_cents,
            profit_cents=cashout_cents - s.buy_in_cents,
            elapsed_seconds=s.elapsed_seconds,
            ended_at=ts,
        )

    def edit_buy_in(self, buy_in_cents: int) -> None:
        self._check("edit buy-in of")
        if buy_in_cents < 0:
            raise InvalidAmountError(f"buy-in must be >= 0, got {buy_in_cents}")
        self.session.buy_in_cents = buy_in_cents

    def edit_cashout(self, cashout_cents: int) -> None:
        self._check("edit cashout of")
        if cashout_cents < 0:
            raise InvalidAmountError(f"cashout must be >= 0, got {cashout_cents}")
        self.session.cashout_cents = cashout_cents

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check(self, action: str) -> None:
        if self.session.status not in _ALLOWED_FROM[action]:
            raise InvalidTransitionError("session", self.session.status.value, action)

    def _require_initialized(self) -> None:
        if self.session.status == SessionStatus.SETUP:
            raise UninitializedSessionError(self.session.id)

    def _stop_clock(self, ts: datetime) -> None:
        s = self.session
        if s.status == SessionStatus.ACTIVE and s.last_active_at is not None:
            s.elapsed_seconds += seconds_between(s.last_active_at, ts)
        s.last_active_at = None
