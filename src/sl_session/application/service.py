"""SessionApplicationService — live session lifecycle and post-completion edits.

Each mutation is one unit of work, serialized per session:

    lock(session) → load FOR UPDATE → domain op → save session + new chip
    updates → recompute open stakes → commit

Any exception rolls the whole unit back, so stakes never reference a
buy-in/cashout pair the persisted session does not have.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from src.sl_common.datetime_utils import utc_now
from src.sl_common.enums import GameType, SessionStatus
from src.sl_common.errors import NotSessionOwnerError, SessionNotFoundError
from src.sl_common.id_generator import generate_id
from src.sl_session.application.locks import SessionLocks
from src.sl_session.application.schemas import SessionListResponse, SessionResponse
from src.sl_session.domain.accumulator import LiveSessionAccumulator
from src.sl_session.domain.models import Session, SessionCompleted
from src.sl_session.domain.repository import SessionRepositoryProtocol
from src.sl_session.infrastructure.persistence import SessionRepository
from src.sl_staking.application.service import StakingApplicationService

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionApplicationService:
    def __init__(
        self,
        repo: SessionRepositoryProtocol | None = None,
        staking: StakingApplicationService | None = None,
        locks: SessionLocks | None = None,
    ) -> None:
        self._repo: SessionRepositoryProtocol = repo or SessionRepository()
        self._locks = locks or SessionLocks()
        self._staking = staking or StakingApplicationService(
            session_repo=self._repo, locks=self._locks
        )

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    async def create_session(
        self,
        db: AsyncSession,
        player_id: str,
        game_type: GameType = GameType.CASH,
        game_name: str = "",
        stakes_label: str = "",
        location: str | None = None,
        tournament_base_buy_in_cents: int | None = None,
        now: datetime | None = None,
    ) -> SessionResponse:
        ts = now or utc_now()
        session = Session(
            id=generate_id(),
            player_id=player_id,
            game_type=game_type,
            game_name=game_name.strip(),
            stakes_label=stakes_label.strip(),
            location=location,
            tournament_base_buy_in_cents=tournament_base_buy_in_cents,
            created_at=ts,
            updated_at=ts,
        )
        try:
            await self._repo.create_session(db, session)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return SessionResponse.from_accumulator(LiveSessionAccumulator(session), ts)

    async def start(
        self,
        db: AsyncSession,
        player_id: str,
        session_id: str,
        buy_in_cents: int,
        game_name: str | None = None,
        now: datetime | None = None,
    ) -> SessionResponse:
        def op(acc: LiveSessionAccumulator, ts: datetime) -> None:
            if game_name is not None:
                acc.session.game_name = game_name.strip()
            acc.start(buy_in_cents, ts)

        view, _ = await self._mutate(db, player_id, session_id, op, now)
        logger.info("Session %s started: buy_in=%d", session_id, buy_in_cents)
        return view

    # ------------------------------------------------------------------
    # Clock
    # ------------------------------------------------------------------

    async def pause(
        self, db: AsyncSession, player_id: str, session_id: str, now: datetime | None = None
    ) -> SessionResponse:
        view, _ = await self._mutate(db, player_id, session_id, lambda a, ts: a.pause(ts), now)
        return view

    async def resume(
        self, db: AsyncSession, player_id: str, session_id: str, now: datetime | None = None
    ) -> SessionResponse:
        view, _ = await self._mutate(db, player_id, session_id, lambda a, ts: a.resume(ts), now)
        return view

    async def begin_ending(
        self, db: AsyncSession, player_id: str, session_id: str, now: datetime | None = None
    ) -> SessionResponse:
        view, _ = await self._mutate(
            db, player_id, session_id, lambda a, ts: a.begin_ending(ts), now
        )
        return view

    # ------------------------------------------------------------------
    # Event log
    # ------------------------------------------------------------------

    async def append_chip_update(
        self,
        db: AsyncSession,
        player_id: str,
        session_id: str,
        amount_cents: int,
        note: str | None = None,
        timestamp: datetime | None = None,
        now: datetime | None = None,
    ) -> SessionResponse:
        view, _ = await self._mutate(
            db,
            player_id,
            session_id,
            lambda a, ts: a.event_log.append_chip_update(amount_cents, note, timestamp, now=ts),
            now,
        )
        return view

    async def adjust_stack(
        self,
        db: AsyncSession,
        player_id: str,
        session_id: str,
        delta_cents: int,
        note: str | None = None,
        now: datetime | None = None,
    ) -> SessionResponse:
        view, _ = await self._mutate(
            db,
            player_id,
            session_id,
            lambda a, ts: a.event_log.adjust_stack(delta_cents, note, now=ts),
            now,
        )
        return view

    async def append_rebuy(
        self,
        db: AsyncSession,
        player_id: str,
        session_id: str,
        amount_cents: int,
        now: datetime | None = None,
    ) -> SessionResponse:
        view, _ = await self._mutate(
            db,
            player_id,
            session_id,
            lambda a, ts: a.event_log.append_rebuy(amount_cents, now=ts),
            now,
        )
        logger.info("Session %s rebuy: +%d -> buy_in=%d", session_id, amount_cents, view.buy_in_cents)
        return view

    # ------------------------------------------------------------------
    # Completion and corrections
    # ------------------------------------------------------------------

    async def finalize(
        self,
        db: AsyncSession,
        player_id: str,
        session_id: str,
        cashout_cents: int,
        now: datetime | None = None,
    ) -> SessionResponse:
        view, completed = await self._mutate(
            db, player_id, session_id, lambda a, ts: a.finalize(cashout_cents, ts), now
        )
        self._log_completed(completed)
        return view

    async def edit_buy_in(
        self,
        db: AsyncSession,
        player_id: str,
        session_id: str,
        buy_in_cents: int,
        now: datetime | None = None,
    ) -> SessionResponse:
        view, _ = await self._mutate(
            db, player_id, session_id, lambda a, ts: a.edit_buy_in(buy_in_cents), now
        )
        logger.info("Session %s buy-in edited to %d", session_id, buy_in_cents)
        return view

    async def edit_cashout(
        self,
        db: AsyncSession,
        player_id: str,
        session_id: str,
        cashout_cents: int,
        now: datetime | None = None,
    ) -> SessionResponse:
        view, _ = await self._mutate(
            db, player_id, session_id, lambda a, ts: a.edit_cashout(cashout_cents), now
        )
        logger.info("Session %s cashout edited to %d", session_id, cashout_cents)
        return view

    async def delete_session(
        self, db: AsyncSession, player_id: str, session_id: str, now: datetime | None = None
    ) -> None:
        ts = now or utc_now()
        async with self._locks.for_session(session_id):
            try:
                await self._load_owned(db, player_id, session_id)
                cancelled = await self._staking.cancel_for_session(db, session_id, ts)
                await self._repo.delete_session(db, session_id)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        logger.info("Session %s deleted, %d open stake(s) cancelled", session_id, len(cancelled))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_session(
        self, db: AsyncSession, player_id: str, session_id: str, now: datetime | None = None
    ) -> SessionResponse:
        session = await self._load_owned(db, player_id, session_id, for_update=False)
        return SessionResponse.from_accumulator(LiveSessionAccumulator(session), now or utc_now())

    async def list_sessions(
        self, db: AsyncSession, player_id: str, limit: int = 20, now: datetime | None = None
    ) -> SessionListResponse:
        ts = now or utc_now()
        sessions = await self._repo.list_sessions_for_player(db, player_id, limit)
        return SessionListResponse(
            items=[SessionResponse.from_accumulator(LiveSessionAccumulator(s), ts) for s in sessions]
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _mutate(
        self,
        db: AsyncSession,
        player_id: str,
        session_id: str,
        op: Callable[[LiveSessionAccumulator, datetime], T],
        now: datetime | None,
    ) -> tuple[SessionResponse, T]:
        ts = now or utc_now()
        async with self._locks.for_session(session_id):
            try:
                session = await self._load_owned(db, player_id, session_id)
                acc = LiveSessionAccumulator(session)
                result = op(acc, ts)
                session.updated_at = ts
                await self._repo.save_session(db, session)
                pending = acc.event_log.drain_pending()
                if pending:
                    await self._repo.append_chip_updates(db, pending)
                if session.status != SessionStatus.SETUP:
                    await self._staking.recompute_for_session(db, session, ts)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        return SessionResponse.from_accumulator(acc, ts), result

    async def _load_owned(
        self, db: AsyncSession, player_id: str, session_id: str, for_update: bool = True
    ) -> Session:
        session = await self._repo.get_session(db, session_id, for_update=for_update)
        if session is None:
            raise SessionNotFoundError(session_id)
        if session.player_id != player_id:
            raise NotSessionOwnerError(session_id)
        return session

    @staticmethod
    def _log_completed(fact: SessionCompleted) -> None:
        logger.info(
            "Session %s completed: buy_in=%d cashout=%d profit=%d elapsed=%.0fs",
            fact.session_id,
            fact.buy_in_cents,
            fact.cashout_cents,
            fact.profit_cents,
            fact.elapsed_seconds,
        )
