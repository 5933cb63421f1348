"""SessionEventLog — append-only record of chip stack snapshots for one session.

Every append validates first and mutates second, so a rejected append leaves
the session exactly as it was. A rebuy changes two facts (total buy-in and
the stack) and both are applied in the same call; callers serialize calls per
session, so no reader can observe one without the other.

Updates without a client timestamp are stamped max(now, last timestamp) and so
always pass the ordering check. Client timestamps must carry a UTC offset and
may run at most MAX_CLOCK_SKEW ahead of the server.
"""

from datetime import datetime, timedelta

from src.sl_common.cents import cents_to_display
from src.sl_common.datetime_utils import utc_now
from src.sl_common.enums import LIVE_SESSION_STATUSES, ChipUpdateKind, SessionStatus
from src.sl_common.errors import (
    DuplicateEventError,
    EventOutOfOrderError,
    InvalidAmountError,
    InvalidTimestampError,
    InvalidTransitionError,
    UninitializedSessionError,
)
from src.sl_common.id_generator import generate_id
from src.sl_session.domain.models import ChipStackUpdate, Session

# How far ahead of server time a client-supplied timestamp may be
MAX_CLOCK_SKEW = timedelta(minutes=5)


class SessionEventLog:
    def __init__(self, session: Session) -> None:
        self._session = session
        self._known_ids = {u.id for u in session.chip_updates}
        self._pending: list[ChipStackUpdate] = []

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def updates(self) -> tuple[ChipStackUpdate, ...]:
        return tuple(self._session.chip_updates)

    @property
    def rebuy_count(self) -> int:
        return sum(1 for u in self._session.chip_updates if u.kind == ChipUpdateKind.REBUY)

    @property
    def total_rebuys_cents(self) -> int:
        return sum(u.rebuy_amount_cents for u in self._session.chip_updates)

    def latest_amount(self) -> int:
        """Last snapshot, or the buy-in when nothing has been logged yet."""
        if self._session.chip_updates:
            return self._session.chip_updates[-1].amount_cents
        return self._session.buy_in_cents

    def chip_history(self) -> list[int]:
        """Stack graph points: the initial buy-in followed by every snapshot."""
        initial = self._session.buy_in_cents - self.total_rebuys_cents
        return [initial, *(u.amount_cents for u in self._session.chip_updates)]

    def drain_pending(self) -> list[ChipStackUpdate]:
        """Updates appended since construction (or the last drain), for persistence."""
        pending, self._pending = self._pending, []
        return pending

    # ------------------------------------------------------------------
    # Appends
    # ------------------------------------------------------------------

    def append_chip_update(
        self,
        amount_cents: int,
        note: str | None = None,
        timestamp: datetime | None = None,
        update_id: str | None = None,
        now: datetime | None = None,
    ) -> str:
        """Record an absolute stack.

        `timestamp` is the caller's claimed time of the count (e.g. entered
        late from the table); without one the update is stamped at `now`.
        """
        if amount_cents < 0:
            raise InvalidAmountError(f"stack must be >= 0, got {amount_cents}")
        now = now or utc_now()
        if timestamp is not None:
            self._check_client_timestamp(timestamp, now)
            ts = timestamp
        else:
            ts = self._stamp(now)
        self._check_appendable("append chip update to", ts)
        new_id = update_id or generate_id()
        if new_id in self._known_ids:
            raise DuplicateEventError(new_id)

        self._push(
            ChipStackUpdate(
                id=new_id,
                session_id=self._session.id,
                amount_cents=amount_cents,
                timestamp=ts,
                note=note.strip() if note and note.strip() else None,
            )
        )
        return new_id

    def adjust_stack(
        self, delta_cents: int, note: str | None = None, now: datetime | None = None
    ) -> str:
        """Quick +/- button: records the resulting absolute stack."""
        ts = self._stamp(now or utc_now())
        self._check_appendable("adjust stack of", ts)
        target = self.latest_amount() + delta_cents
        if target < 0:
            raise InvalidAmountError(
                f"adjustment {delta_cents} would leave a negative stack ({target})"
            )
        return self.append_chip_update(target, note=note, now=ts)

    def append_rebuy(self, amount_cents: int, now: datetime | None = None) -> str:
        if amount_cents <= 0:
            raise InvalidAmountError(f"rebuy must be > 0, got {amount_cents}")
        ts = self._stamp(now or utc_now())
        self._check_appendable("rebuy in", ts)

        update = ChipStackUpdate(
            id=generate_id(),
            session_id=self._session.id,
            amount_cents=self.latest_amount() + amount_cents,
            timestamp=ts,
            note=f"Rebuy {cents_to_display(amount_cents)}",
            kind=ChipUpdateKind.REBUY,
            rebuy_amount_cents=amount_cents,
        )
        self._session.buy_in_cents += amount_cents
        self._push(update)
        return update.id

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _stamp(self, now: datetime) -> datetime:
        """Server time for a new update, never earlier than the last one logged."""
        if self._session.chip_updates:
            return max(now, self._session.chip_updates[-1].timestamp)
        return now

    @staticmethod
    def _check_client_timestamp(ts: datetime, now: datetime) -> None:
        if ts.tzinfo is None or ts.utcoffset() is None:
            raise InvalidTimestampError(f"{ts.isoformat()} has no UTC offset")
        if ts > now + MAX_CLOCK_SKEW:
            raise InvalidTimestampError(f"{ts.isoformat()} is in the future")

    def _check_appendable(self, action: str, ts: datetime) -> None:
        status = self._session.status
        if status == SessionStatus.SETUP:
            raise UninitializedSessionError(self._session.id)
        if status not in LIVE_SESSION_STATUSES:
            raise InvalidTransitionError("session", status.value, action)
        if self._session.chip_updates and ts < self._session.chip_updates[-1].timestamp:
            raise EventOutOfOrderError(
                f"{ts.isoformat()} is before {self._session.chip_updates[-1].timestamp.isoformat()}"
            )

    def _push(self, update: ChipStackUpdate) -> None:
        self._session.chip_updates.append(update)
        self._known_ids.add(update.id)
        self._pending.append(update)
